"""Local polynomial regression of varying coefficient models.

The model reads ``y_i = X_i^T beta(z_i) + eps_i``. Around a point ``z0`` each
coefficient function is approximated by a polynomial in ``z - z0``, and the
coefficients of the expansion are fitted by kernel weighted least squares,
possibly with an L1 penalty.
"""
import numpy as np

from cdlasso.datafits import WeightedLeastSquares
from cdlasso.exceptions import DimensionMismatch
from cdlasso.penalties import L1, WeightedL1
from cdlasso.solvers import CDOptions, coordinate_descent
from cdlasso.sparse_iterate import SparseIterate


class GaussianKernel:
    """Gaussian smoothing kernel with bandwidth ``h``."""

    def __init__(self, h):
        if not h > 0:
            raise ValueError(f"The bandwidth must be positive, got {h}.")
        self.h = h

    def __call__(self, z, z0):
        u = (np.asarray(z, dtype=np.float64) - z0) / self.h
        return np.exp(-0.5 * u ** 2) / (np.sqrt(2 * np.pi) * self.h)

    def __repr__(self):
        return f"GaussianKernel(h={self.h})"


class EpanechnikovKernel:
    """Epanechnikov smoothing kernel with bandwidth ``h``, supported on [-h, h]."""

    def __init__(self, h):
        if not h > 0:
            raise ValueError(f"The bandwidth must be positive, got {h}.")
        self.h = h

    def __call__(self, z, z0):
        u = (np.asarray(z, dtype=np.float64) - z0) / self.h
        return np.where(np.abs(u) < 1., 0.75 * (1. - u ** 2) / self.h, 0.)

    def __repr__(self):
        return f"EpanechnikovKernel(h={self.h})"


KERNELS = {
    "gaussian": GaussianKernel,
    "epanechnikov": EpanechnikovKernel,
}


def make_kernel(kernel, h):
    """Instantiate a kernel from its name or class with bandwidth ``h``."""
    if isinstance(kernel, str):
        if kernel not in KERNELS:
            raise ValueError(
                f"Unknown kernel {kernel!r}, expected one of {sorted(KERNELS)}.")
        kernel = KERNELS[kernel]
    return kernel(h)


def expand_X(X, z, z0, degree, out=None):
    """Polynomial expansion of the design around ``z0``.

    Row ``i`` of the output is ``X_i ⊗ [1, (z_i - z0), ..., (z_i - z0) ** degree]``,
    i.e. column ``j * (degree + 1) + l`` holds ``X[:, j] * (z - z0) ** l``.

    Parameters
    ----------
    X : array, shape (n_samples, n_features)
        Design matrix.

    z : array, shape (n_samples,)
        Index variable of the varying coefficients.

    z0 : float
        Expansion point.

    degree : int
        Degree of the local polynomial.

    out : array, shape (n_samples, n_features * (degree + 1)), optional
        Preallocated output, filled in place.

    Returns
    -------
    out : array, shape (n_samples, n_features * (degree + 1))
        Expanded design.
    """
    n_samples, n_features = X.shape
    n_powers = degree + 1
    if out is None:
        out = np.empty((n_samples, n_features * n_powers), order='F')
    powers = (z - z0)[:, None] ** np.arange(n_powers)
    for j in range(n_features):
        out[:, j * n_powers: (j + 1) * n_powers] = X[:, j: j + 1] * powers
    return out


def nonzero_blocks(beta, n_features, degree):
    """Mask of the coefficients whose feature has a nonzero expansion.

    All ``degree + 1`` coefficients of feature ``j`` are selected as soon as
    one of them is nonzero.
    """
    blocks = np.asarray(beta).reshape(n_features, degree + 1) != 0
    return np.repeat(blocks.any(axis=1), degree + 1)


def interpolate_coef(zgrid, coefs, z0):
    """Linearly interpolate grid coefficients at ``z0``.

    Parameters
    ----------
    zgrid : array, shape (n_grid,)
        Increasing grid of points.

    coefs : array, shape (n_coefs, n_grid)
        Coefficients fitted at each grid point.

    z0 : float
        Point in ``[zgrid[0], zgrid[-1]]``.

    Returns
    -------
    coef : array, shape (n_coefs,)
        Interpolated coefficients.
    """
    zgrid = np.asarray(zgrid, dtype=np.float64)
    if not zgrid[0] <= z0 <= zgrid[-1]:
        raise ValueError(
            f"z0={z0} is outside of the grid [{zgrid[0]}, {zgrid[-1]}].")
    idx2 = np.searchsorted(zgrid, z0)
    if zgrid[idx2] == z0:
        return np.array(coefs[:, idx2])
    idx1 = idx2 - 1
    t = (z0 - zgrid[idx1]) / (zgrid[idx2] - zgrid[idx1])
    return (1 - t) * coefs[:, idx1] + t * coefs[:, idx2]


def locpolyl1(X, z, y, zgrid, degree, kernel, alpha, options=None,
              standardize=True):
    """L1 penalized local polynomial regression on a grid.

    At each grid point ``z0`` it solves::

        min_w sum_i K(z_i, z0) (y_i - (X_i ⊗ P_i)^T w) ** 2 / (2 sum_i K(z_i, z0))
              + alpha * sum_j s_j |w_j|

    with ``P_i = [1, (z_i - z0), ..., (z_i - z0) ** degree]`` and ``s_j`` the
    kernel weighted root mean square of expanded column ``j`` (1 when
    ``standardize`` is False). Each grid point is warm started from the
    solution at the previous one.

    Parameters
    ----------
    X : array, shape (n_samples, n_features)
        Design matrix.

    z : array, shape (n_samples,)
        Index variable.

    y : array, shape (n_samples,)
        Target vector.

    zgrid : array, shape (n_grid,)
        Evaluation points, ideally sorted so that consecutive points are close.

    degree : int
        Degree of the local polynomial.

    kernel : GaussianKernel or EpanechnikovKernel
        Smoothing kernel.

    alpha : float
        Penalty level.

    options : CDOptions, optional
        Coordinate descent configuration. ``warm_start`` is forced to True.

    standardize : bool, default True
        Scale the penalty of each column by its kernel weighted root mean square.

    Returns
    -------
    coefs : array, shape (n_features * (degree + 1), n_grid)
        Fitted coefficients, one column per grid point.
    """
    options = CDOptions() if options is None else options
    options = options._replace(warm_start=True)
    X, z, y = _check_locpoly_data(X, z, y, degree)
    zgrid = np.asarray(zgrid, dtype=np.float64).ravel()

    n_samples, n_features = X.shape
    n_expanded = n_features * (degree + 1)
    coefs = np.zeros((n_expanded, len(zgrid)))

    # buffers updated in place at each grid point, the datafit reads them
    w = np.empty(n_samples)
    wX = np.empty((n_samples, n_expanded), order='F')
    datafit = WeightedLeastSquares(wX, y, w)
    beta = SparseIterate(n_expanded)

    for idx, z0 in enumerate(zgrid):
        w[:] = kernel(z, z0)
        expand_X(X, z, z0, degree, out=wX)
        penalty = _make_penalty(alpha, w, wX, standardize)

        coordinate_descent(beta, datafit, penalty, options)
        coefs[:, idx] = beta.to_dense()
        if options.verbose:
            print(f"Grid point {idx + 1}/{len(zgrid)} (z0={z0:.4f}): "
                  f"{beta.nnz} nonzero coefficients")
    return coefs


def loocv_locpolyl1(X, z, y, degree, bandwidths, kernel, alpha, options=None,
                    standardize=True, max_sigma_iter=10, sigma_tol=1e-2,
                    n_init=10):
    """Leave-one-out prediction error of ``locpolyl1`` for several bandwidths.

    For each bandwidth and each observation ``i``, the L1 penalized fit at
    ``z_i`` is computed without observation ``i``, with a penalty level
    ``alpha * sigma`` where ``sigma`` is re-estimated from the weighted
    residuals until its relative change is below ``sigma_tol``. The selected
    features are then refitted by weighted least squares and used to predict
    ``y_i``.

    Parameters
    ----------
    X : array, shape (n_samples, n_features)
        Design matrix.

    z : array, shape (n_samples,)
        Index variable.

    y : array, shape (n_samples,)
        Target vector.

    degree : int
        Degree of the local polynomial.

    bandwidths : array, shape (n_bandwidths,)
        Candidate bandwidths.

    kernel : str or kernel class
        ``"gaussian"``, ``"epanechnikov"`` or a kernel class.

    alpha : float
        Penalty level, in units of the noise level.

    options : CDOptions, optional
        Coordinate descent configuration. ``warm_start`` is forced to True.

    standardize : bool, default True
        Scale the penalty of each column by its kernel weighted root mean square.

    max_sigma_iter : int, default 10
        Maximum number of penalized fits per held-out observation.

    sigma_tol : float, default 1e-2
        Relative tolerance on the noise level estimate.

    n_init : int, default 10
        Number of columns of the least squares fit giving the initial noise
        level estimate.

    Returns
    -------
    mse : array, shape (n_bandwidths,)
        Sum of squared leave-one-out prediction errors for each bandwidth.
        The bandwidth to use is the minimizer.
    """
    options = CDOptions() if options is None else options
    options = options._replace(warm_start=True)
    X, z, y = _check_locpoly_data(X, z, y, degree)

    n_samples, n_features = X.shape
    n_expanded = n_features * (degree + 1)
    mse = np.zeros(len(bandwidths))

    w = np.empty(n_samples)
    wX = np.empty((n_samples, n_expanded), order='F')
    datafit = WeightedLeastSquares(wX, y, w)
    beta = SparseIterate(n_expanded)

    for idx_h, h in enumerate(bandwidths):
        kern = make_kernel(kernel, h)
        for i in range(n_samples):
            z0 = z[i]
            w[:] = kern(z, z0)
            w[i] = 0.
            expand_X(X, z, z0, degree, out=wX)

            sigma = _weighted_std(
                w, _initial_residuals(w, wX, y, min(n_init, n_expanded)))
            for _ in range(max_sigma_iter):
                penalty = _make_penalty(alpha * sigma, w, wX, standardize)
                coordinate_descent(beta, datafit, penalty, options)
                new_sigma = _weighted_std(w, datafit.r)
                if abs(new_sigma - sigma) <= sigma_tol * sigma:
                    break
                sigma = new_sigma

            support = nonzero_blocks(beta.to_dense(), n_features, degree)
            y_hat = _wls_predict(wX, y, w, support, i)
            mse[idx_h] += (y_hat - y[i]) ** 2

        if options.verbose:
            print(f"Bandwidth {h:.4e}: leave-one-out error {mse[idx_h]:.6e}")
    return mse


def locpoly(X, z, y, zgrid, degree, kernel=None):
    """Unpenalized local polynomial regression on a grid.

    Parameters
    ----------
    X : array, shape (n_samples, n_features)
        Design matrix.

    z : array, shape (n_samples,)
        Index variable.

    y : array, shape (n_samples,)
        Target vector.

    zgrid : float or array, shape (n_grid,)
        Evaluation points.

    degree : int
        Degree of the local polynomial.

    kernel : GaussianKernel or EpanechnikovKernel, optional
        Smoothing kernel, defaults to ``GaussianKernel(1.)``.

    Returns
    -------
    coefs : array, shape (n_features * (degree + 1), n_grid)
        Weighted least squares coefficients, one column per grid point.
    """
    kernel = GaussianKernel(1.) if kernel is None else kernel
    X, z, y = _check_locpoly_data(X, z, y, degree)
    zgrid = np.atleast_1d(np.asarray(zgrid, dtype=np.float64))

    coefs = np.empty((X.shape[1] * (degree + 1), len(zgrid)))
    for idx, z0 in enumerate(zgrid):
        coefs[:, idx] = _locpoly_fit(X, z, y, z0, degree, kernel)
    return coefs


def loocv_locpoly(X, z, y, degree, bandwidths, kernel):
    """Leave-one-out prediction error of ``locpoly`` for several bandwidths.

    Parameters
    ----------
    X : array, shape (n_samples, n_features)
        Design matrix.

    z : array, shape (n_samples,)
        Index variable.

    y : array, shape (n_samples,)
        Target vector.

    degree : int
        Degree of the local polynomial.

    bandwidths : array, shape (n_bandwidths,)
        Candidate bandwidths.

    kernel : str or kernel class
        ``"gaussian"``, ``"epanechnikov"`` or a kernel class.

    Returns
    -------
    mse : array, shape (n_bandwidths,)
        Sum of squared leave-one-out prediction errors for each bandwidth.
    """
    X, z, y = _check_locpoly_data(X, z, y, degree)
    n_samples = X.shape[0]
    mse = np.zeros(len(bandwidths))
    mask = np.ones(n_samples, dtype=bool)

    for idx_h, h in enumerate(bandwidths):
        kern = make_kernel(kernel, h)
        for i in range(n_samples):
            mask[:] = True
            mask[i] = False
            coef = _locpoly_fit(X[mask], z[mask], y[mask], z[i], degree, kern)
            # at z0 = z_i only the constant terms of the expansion remain
            y_hat = X[i] @ coef[::degree + 1]
            mse[idx_h] += (y_hat - y[i]) ** 2
    return mse


def _check_locpoly_data(X, z, y, degree):
    X = np.asarray(X, dtype=np.float64)
    z = np.asarray(z, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    if X.ndim != 2:
        raise DimensionMismatch(f"X should be a 2D array, got shape {X.shape}.")
    n_samples = X.shape[0]
    if z.shape != (n_samples,) or y.shape != (n_samples,):
        raise DimensionMismatch(
            f"z and y should be of shape ({n_samples},), got {z.shape} and "
            f"{y.shape}.")
    if degree < 0:
        raise ValueError(f"degree must be non-negative, got {degree}.")
    return X, z, y


def _make_penalty(alpha, w, wX, standardize):
    if not standardize:
        return L1(alpha)
    loadings = np.sqrt(w @ wX ** 2 / w.sum())
    return WeightedL1(alpha, loadings)


def _locpoly_fit(X, z, y, z0, degree, kernel):
    sqrt_w = np.sqrt(kernel(z, z0))
    wX = sqrt_w[:, None] * expand_X(X, z, z0, degree)
    return np.linalg.lstsq(wX, sqrt_w * y, rcond=None)[0]


def _weighted_std(w, r):
    return np.sqrt(w @ r ** 2 / w.sum())


def _initial_residuals(w, wX, y, n_init):
    # least squares fit on the n_init columns most correlated with y
    col_norms = np.sqrt(w @ wX ** 2)
    scores = np.abs(wX.T @ (w * y))
    scores[col_norms > 0] /= col_norms[col_norms > 0]
    cols = np.argsort(scores)[::-1][:n_init]

    sqrt_w = np.sqrt(w)
    coef = np.linalg.lstsq(sqrt_w[:, None] * wX[:, cols], sqrt_w * y, rcond=None)[0]
    return y - wX[:, cols] @ coef


def _wls_predict(wX, y, w, support, i):
    # refit the selected columns without penalty and predict observation i
    if not support.any():
        return 0.
    sqrt_w = np.sqrt(w)
    Xs = wX[:, support]
    coef = np.linalg.lstsq(sqrt_w[:, None] * Xs, sqrt_w * y, rcond=None)[0]
    return Xs[i] @ coef
