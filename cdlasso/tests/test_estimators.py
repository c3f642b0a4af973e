import pytest

import numpy as np
from numpy.linalg import norm
from sklearn.linear_model import Lasso as Lasso_sklearn

from cdlasso import Lasso, SqrtLasso, GroupLasso
from cdlasso.utils import make_correlated_data


n_samples = 50
n_features = 30
X, y, _ = make_correlated_data(n_samples, n_features, random_state=0)
alpha_max = norm(X.T @ y, ord=np.inf) / n_samples
alpha = 0.05 * alpha_max
tol = 1e-10


@pytest.mark.parametrize("solver", ["cd", "active_shooting"])
def test_lasso_vs_sklearn(solver):
    clf = Lasso(alpha, solver=solver, tol=tol).fit(X, y)
    sk_clf = Lasso_sklearn(alpha, fit_intercept=False, tol=tol, max_iter=10_000).fit(X, y)

    np.testing.assert_allclose(clf.coef_, sk_clf.coef_, rtol=1e-5, atol=1e-6)
    np.testing.assert_allclose(clf.predict(X), X @ clf.coef_)
    assert clf.intercept_ == 0.
    assert clf.n_features_in_ == n_features
    assert clf.status_.converged


def test_weighted_lasso():
    weights = np.abs(np.random.RandomState(0).randn(n_features))
    clf = Lasso(alpha, weights=weights, tol=tol).fit(X, y)
    clf_as = Lasso(alpha, weights=weights, solver="active_shooting", tol=tol).fit(X, y)

    np.testing.assert_allclose(clf.coef_, clf_as.coef_, atol=1e-6)


def test_lasso_path():
    clf = Lasso(alpha, n_steps=5, tol=tol)
    alphas, coefs = clf.path(X, y)

    assert coefs.shape == (n_features, 6)
    np.testing.assert_allclose(alphas[0], alpha_max)
    np.testing.assert_allclose(coefs[:, -1], clf.fit(X, y).coef_, atol=1e-7)


def test_warm_start():
    clf = Lasso(alpha, warm_start=True, tol=tol).fit(X, y)
    coef = clf.coef_.copy()
    clf.fit(X, y)
    assert clf.status_.n_iter <= 2
    np.testing.assert_allclose(clf.coef_, coef, atol=1e-9)


def test_unknown_solver():
    with pytest.raises(ValueError, match="Unknown solver"):
        Lasso(alpha, solver="newton").fit(X, y)


def test_sqrt_lasso():
    clf = SqrtLasso(alpha=0.1, tol=tol).fit(X, y)
    # the penalty level does not depend on the scale of the noise
    clf_scaled = SqrtLasso(alpha=0.1, tol=tol).fit(X, 3 * y)
    np.testing.assert_allclose(clf_scaled.coef_, 3 * clf.coef_, atol=1e-6)

    alphas, coefs = clf.path(X, y, alphas=[0.2, 0.1])
    np.testing.assert_allclose(coefs[:, -1], clf.coef_, atol=1e-6)
    np.testing.assert_allclose(clf.predict(X), X @ clf.coef_)

    clf_zero = SqrtLasso(alpha=0.1).fit(X, np.zeros(n_samples))
    np.testing.assert_equal(clf_zero.coef_, 0.)


@pytest.mark.parametrize("groups", [1, 3, [10, 20]])
def test_group_lasso(groups):
    clf = GroupLasso(groups=groups, alpha=alpha, tol=1e-12).fit(X, y)
    assert clf.coef_.shape == (n_features,)
    assert clf.status_.converged

    if groups == 1:
        lasso = Lasso(alpha, tol=tol).fit(X, y)
        np.testing.assert_allclose(clf.coef_, lasso.coef_, atol=1e-6)


def test_group_lasso_alpha_max():
    grp_size = 5
    n_groups = n_features // grp_size
    group_alpha_max = max(
        norm(X[:, g * grp_size: (g + 1) * grp_size].T @ y) for g in range(n_groups)
    ) / n_samples
    weights = np.ones(n_groups)
    clf = GroupLasso(groups=grp_size, alpha=group_alpha_max * (1 + 1e-12),
                     weights=weights).fit(X, y)
    np.testing.assert_equal(clf.coef_, 0)
