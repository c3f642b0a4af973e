import pytest
from itertools import product

import numpy as np
from numpy.linalg import norm
from sklearn.exceptions import ConvergenceWarning
from sklearn.linear_model import Lasso

from cdlasso import SparseIterate, DimensionMismatch, NumericDegeneracy
from cdlasso.solvers import CDOptions, lasso, lasso_raw
from cdlasso.utils import make_correlated_data


@pytest.mark.parametrize("n_samples, n_features", product([100, 200], [50, 90]))
def test_alpha_max(n_samples, n_features):
    X, y, _ = make_correlated_data(n_samples, n_features, random_state=0)
    alpha_max = norm(X.T @ y, ord=np.inf) / n_samples

    beta = SparseIterate(n_features)
    status = lasso_raw(beta, X, y, alpha_max, CDOptions(tol=1e-9))

    assert status.converged
    assert status.n_iter == 0
    assert beta.nnz == 0


@pytest.mark.parametrize("n_samples, n_features, rho",
                         product([500, 100], [30, 80], [1e-1, 1e-2]))
def test_vs_lasso_sklearn(n_samples, n_features, rho):
    X, y, _ = make_correlated_data(n_samples, n_features, random_state=0)
    alpha_max = norm(X.T @ y, ord=np.inf) / n_samples
    alpha = rho * alpha_max

    sk_lasso = Lasso(alpha, fit_intercept=False, tol=1e-10, max_iter=10_000)
    sk_lasso.fit(X, y)

    beta = SparseIterate(n_features)
    lasso_raw(beta, X, y, alpha, CDOptions(tol=1e-10))

    np.testing.assert_allclose(beta.to_dense(), sk_lasso.coef_, rtol=1e-5, atol=1e-6)


def test_kkt_weighted_penalty():
    n_samples, n_features = 80, 40
    X, y, _ = make_correlated_data(n_samples, n_features, random_state=3)
    XX, Xy = X.T @ X / n_samples, X.T @ y / n_samples
    alphas = 0.1 * norm(Xy, ord=np.inf) * np.random.RandomState(3).rand(n_features)

    beta = SparseIterate(n_features)
    status = lasso(beta, XX, Xy, alphas, CDOptions(tol=1e-12))
    assert status.converged

    w = beta.to_dense()
    grad = XX @ w - Xy
    support = w != 0
    np.testing.assert_array_less(np.abs(grad[~support]), alphas[~support] + 1e-10)
    np.testing.assert_allclose(
        grad[support], - alphas[support] * np.sign(w[support]), atol=1e-8)


def test_warm_start():
    X, y, _ = make_correlated_data(100, 30, random_state=0)
    alpha = 0.05 * norm(X.T @ y, ord=np.inf) / 100
    options = CDOptions(tol=1e-10)

    beta = SparseIterate(30)
    lasso_raw(beta, X, y, alpha, options)
    solution = beta.to_dense()

    # restarting from the solution does not move
    status = lasso_raw(beta, X, y, alpha, options)
    assert status.n_iter == 1
    np.testing.assert_allclose(beta.to_dense(), solution, atol=1e-9)


def test_zero_diagonal():
    XX = np.diag([1., 0.])
    Xy = np.array([1., 1.])
    with pytest.raises(NumericDegeneracy):
        lasso(SparseIterate(2), XX, Xy, 0.1)


def test_shapes():
    XX, Xy = np.eye(3), np.ones(3)
    with pytest.raises(DimensionMismatch):
        lasso(SparseIterate(2), XX, Xy, 0.1)
    with pytest.raises(DimensionMismatch):
        lasso(SparseIterate(3), XX, np.ones(2), 0.1)
    with pytest.raises(DimensionMismatch):
        lasso(SparseIterate(3), XX, Xy, np.ones(2))
    with pytest.raises(ValueError, match="non-negative"):
        lasso(SparseIterate(3), XX, Xy, -1.)


def test_max_iter_warning():
    X, y, _ = make_correlated_data(50, 30, random_state=0)
    alpha = 0.01 * norm(X.T @ y, ord=np.inf) / 50
    with pytest.warns(ConvergenceWarning):
        status = lasso_raw(SparseIterate(30), X, y, alpha, CDOptions(max_iter=1))
    assert not status.converged
