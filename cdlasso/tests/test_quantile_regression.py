import pytest

import numpy as np
from numpy.linalg import norm
from sklearn.linear_model import QuantileRegressor

from cdlasso import DimensionMismatch
from cdlasso.experimental import quantile_regression
from cdlasso.utils import make_correlated_data


def _objective(X, y, w, alpha, quantile):
    residual = y - X @ w
    pinball = np.where(residual >= 0, quantile * residual, (quantile - 1) * residual)
    return pinball.mean() + alpha * norm(w, ord=1)


@pytest.mark.parametrize("quantile", [0.3, 0.5, 0.8])
def test_vs_sklearn(quantile):
    X, y, _ = make_correlated_data(50, 10, random_state=0)
    alpha = 0.01

    w = quantile_regression(X, y, alpha, quantile)
    sk_model = QuantileRegressor(
        quantile=quantile, alpha=alpha, fit_intercept=False, solver="highs").fit(X, y)

    np.testing.assert_allclose(
        _objective(X, y, w, alpha, quantile),
        _objective(X, y, sk_model.coef_, alpha, quantile), rtol=1e-6)


def test_quantile_of_residuals():
    n_samples = 101
    X, y, _ = make_correlated_data(n_samples, 5, random_state=1)
    X = np.hstack([X, np.ones((n_samples, 1))])
    quantile = 0.8
    w = quantile_regression(X, y, 0., quantile)

    # with an unpenalized constant column, about a fraction quantile of the
    # points lie below the fit
    below = np.mean(y - X @ w < 0)
    np.testing.assert_allclose(below, quantile, atol=0.06)


def test_invalid_inputs():
    X, y = np.ones((5, 2)), np.ones(5)
    with pytest.raises(DimensionMismatch):
        quantile_regression(X, np.ones(4), 0.1)
    with pytest.raises(ValueError, match="quantile"):
        quantile_regression(X, y, 0.1, quantile=1.)
    with pytest.raises(ValueError, match="alpha"):
        quantile_regression(X, y, -0.1)
