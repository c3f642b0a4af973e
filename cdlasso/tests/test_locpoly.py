import pytest

import numpy as np

from cdlasso import SparseIterate, DimensionMismatch
from cdlasso.datafits import LeastSquares
from cdlasso.penalties import L1, WeightedL1
from cdlasso.solvers import CDOptions, coordinate_descent
from cdlasso.locpoly import (GaussianKernel, EpanechnikovKernel, make_kernel, expand_X,
                             nonzero_blocks, interpolate_coef, locpoly, locpolyl1,
                             loocv_locpoly, loocv_locpolyl1)
from cdlasso.utils import make_correlated_data


def _varying_coef_data(n_samples=60, n_features=4, random_state=0):
    rng = np.random.RandomState(random_state)
    X = rng.randn(n_samples, n_features)
    z = np.sort(rng.rand(n_samples))
    beta = np.zeros((n_samples, n_features))
    beta[:, 0] = 1 + z
    beta[:, 1] = np.sin(2 * np.pi * z)
    y = np.sum(X * beta, axis=1) + 0.1 * rng.randn(n_samples)
    return X, z, y


def test_kernels():
    kernel = GaussianKernel(2.)
    np.testing.assert_allclose(kernel(0., 0.), 1 / (2 * np.sqrt(2 * np.pi)))
    np.testing.assert_allclose(kernel([1., -1.], 0.), kernel(1., 0.))

    kernel = EpanechnikovKernel(0.5)
    np.testing.assert_allclose(kernel(np.array([0., 0.25, 0.5, 1.]), 0.),
                               [1.5, 1.125, 0., 0.])

    assert isinstance(make_kernel("gaussian", 1.), GaussianKernel)
    assert isinstance(make_kernel(EpanechnikovKernel, 1.), EpanechnikovKernel)
    with pytest.raises(ValueError, match="Unknown kernel"):
        make_kernel("triangular", 1.)
    with pytest.raises(ValueError, match="bandwidth"):
        GaussianKernel(0.)


def test_expand_X():
    X = np.array([[1., 2.], [3., 4.]])
    z = np.array([1., 3.])
    expected = np.array([[1., 0., 0., 2., 0., 0.],
                         [3., 6., 12., 4., 8., 16.]])
    np.testing.assert_allclose(expand_X(X, z, 1., 2), expected)

    out = np.empty((2, 6), order='F')
    assert expand_X(X, z, 1., 2, out=out) is out
    np.testing.assert_allclose(out, expected)


def test_nonzero_blocks():
    beta = np.array([0., 1., 0., 0., 0., 0., 2., 0., 0.])
    np.testing.assert_array_equal(
        nonzero_blocks(beta, 3, 2), [True] * 3 + [False] * 3 + [True] * 3)


def test_interpolate_coef():
    zgrid = np.array([0., 1., 3.])
    coefs = np.array([[0., 10., 30.], [1., 1., -1.]])

    np.testing.assert_allclose(interpolate_coef(zgrid, coefs, 0.25), [2.5, 1.])
    np.testing.assert_allclose(interpolate_coef(zgrid, coefs, 2.), [20., 0.])
    np.testing.assert_allclose(interpolate_coef(zgrid, coefs, 3.), [30., -1.])
    with pytest.raises(ValueError, match="outside"):
        interpolate_coef(zgrid, coefs, 3.5)


@pytest.mark.parametrize("standardize", [False, True])
def test_infinite_bandwidth_is_lasso(standardize):
    X, y, _ = make_correlated_data(40, 10, random_state=0)
    z = np.random.RandomState(0).rand(40)
    alpha = 0.05
    options = CDOptions(tol=1e-10)

    coefs = locpolyl1(X, z, y, [0.5], 0, GaussianKernel(1e8), alpha, options,
                      standardize=standardize)

    if standardize:
        penalty = WeightedL1(alpha, np.sqrt((X ** 2).mean(axis=0)))
    else:
        penalty = L1(alpha)
    x = SparseIterate(10)
    coordinate_descent(x, LeastSquares(X, y), penalty, options)

    assert coefs.shape == (10, 1)
    np.testing.assert_allclose(coefs[:, 0], x.to_dense(), rtol=1e-6, atol=1e-8)


def test_locpolyl1_recovers_support():
    X, z, y = _varying_coef_data(n_samples=200)
    zgrid = np.linspace(0.1, 0.9, 5)
    coefs = locpolyl1(X, z, y, zgrid, 1, GaussianKernel(0.2), 0.05)

    assert coefs.shape == (8, 5)
    # intercept of the first coefficient function follows 1 + z
    np.testing.assert_allclose(coefs[0], 1 + zgrid, atol=0.3)
    # unused features stay close to zero
    assert np.max(np.abs(coefs[4:])) < 0.2


def test_locpoly_matches_global_least_squares():
    X, y, _ = make_correlated_data(30, 3, random_state=1)
    z = np.random.RandomState(1).rand(30)

    coefs = locpoly(X, z, y, [0.2, 0.8], 0, GaussianKernel(1e8))
    w_ls = np.linalg.lstsq(X, y, rcond=None)[0]

    assert coefs.shape == (3, 2)
    np.testing.assert_allclose(coefs[:, 0], w_ls, rtol=1e-6)
    np.testing.assert_allclose(coefs[:, 1], w_ls, rtol=1e-6)


@pytest.mark.parametrize("kernel", ["gaussian", EpanechnikovKernel])
def test_loocv_locpoly(kernel):
    X, z, y = _varying_coef_data(n_samples=40, n_features=2)
    bandwidths = np.array([0.3, 2.])
    mse = loocv_locpoly(X, z, y, 1, bandwidths, kernel)

    assert mse.shape == (2,)
    for idx_h, h in enumerate(bandwidths):
        expected = 0.
        for i in range(40):
            mask = np.arange(40) != i
            coef = locpoly(X[mask], z[mask], y[mask], z[i], 1, make_kernel(kernel, h))
            expected += (X[i] @ coef[::2, 0] - y[i]) ** 2
        np.testing.assert_allclose(mse[idx_h], expected, rtol=1e-10)


def test_loocv_locpolyl1():
    X, z, y = _varying_coef_data(n_samples=30, n_features=3)
    bandwidths = np.array([0.2, 0.5, 5.])
    mse = loocv_locpolyl1(X, z, y, 1, bandwidths, "gaussian", 0.5)

    assert mse.shape == (3,)
    assert np.all(np.isfinite(mse))
    assert np.all(mse >= 0)


def test_loocv_locpolyl1_unpenalized_matches_locpoly():
    # without penalty every column is selected and refitted without the
    # held-out observation
    X, z, y = _varying_coef_data(n_samples=30, n_features=2)
    y[7] += 50.
    bandwidths = np.array([0.3, 1.])
    mse_l1 = loocv_locpolyl1(X, z, y, 1, bandwidths, "gaussian", 0.,
                             CDOptions(tol=1e-12))
    mse = loocv_locpoly(X, z, y, 1, bandwidths, "gaussian")

    np.testing.assert_allclose(mse_l1, mse, rtol=1e-8)


def test_shape_checks():
    X, z, y = _varying_coef_data(n_samples=10)
    with pytest.raises(DimensionMismatch):
        locpolyl1(X, z[:-1], y, [0.5], 1, GaussianKernel(1.), 0.1)
    with pytest.raises(DimensionMismatch):
        locpoly(X, z, y[:-1], [0.5], 1)
    with pytest.raises(ValueError, match="degree"):
        locpoly(X, z, y, [0.5], -1)
