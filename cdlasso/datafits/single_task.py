import numpy as np
from numpy.linalg import norm

from cdlasso.datafits.base import BaseDatafit
from cdlasso.exceptions import DimensionMismatch, NumericDegeneracy


def _check_X_y(X, y):
    X = np.asfortranarray(X, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    if X.ndim != 2:
        raise DimensionMismatch(f"X should be a 2D array, got shape {X.shape}.")
    if y.ndim != 1 or len(y) != X.shape[0]:
        raise DimensionMismatch(
            f"y should be of shape ({X.shape[0]},), got {y.shape}.")
    return X, y


def _predict(X, x):
    """Compute ``X @ x`` using only the active columns of ``x``."""
    active = x.active_indices()
    if len(active) == 0:
        return np.zeros(X.shape[0])
    return X[:, active] @ x.active_values()


class LeastSquares(BaseDatafit):
    """Least squares datafit.

    The datafit reads:

    .. math:: 1 / (2 xx  n_"samples") ||y - Xw||_2 ^ 2

    Attributes
    ----------
    r : array, shape (n_samples,)
        Residual cache, equal to ``y - X @ w`` for the current iterate.

    lipschitz : array, shape (n_features,)
        Squared norms of the columns of ``X``, computed in ``initialize``.
    """

    _penalty_required_attr = ("prox_1d",)

    def __init__(self, X, y):
        self.X, self.y = _check_X_y(X, y)
        self.r = self.y.copy()
        self.lipschitz = None

    def n_coordinates(self):
        return self.X.shape[1]

    def initialize(self, x):
        self.lipschitz = (self.X ** 2).sum(axis=0)
        self.r[:] = self.y - _predict(self.X, x)

    def value(self, x):
        return np.sum((self.y - _predict(self.X, x)) ** 2) / (2 * len(self.y))

    def gradient_scalar(self, x, j):
        return - (self.X[:, j] @ self.r) / len(self.y)

    def descend_coordinate(self, x, penalty, j):
        # w_j = argmin a / (2n) (w_j - (old_w_j + b / a)) ** 2 + pen(w_j)
        # with a = ||X_j||^2 and b = X_j^T r
        X_j = self.X[:, j]
        a = self.lipschitz[j]
        if a == 0.:
            raise NumericDegeneracy(f"Column {j} of X is zero.")
        b = X_j @ self.r

        old_w_j = x[j]
        new_w_j = penalty.prox_1d(old_w_j + b / a, len(self.y) / a, j)
        delta = new_w_j - old_w_j
        if delta != 0.:
            x[j] = new_w_j
            self.r -= delta * X_j
        return delta


class WeightedLeastSquares(BaseDatafit):
    r"""Weighted least squares datafit to handle sample weights.

    The datafit reads:

    .. math:: 1 / (2 xx  \sum_(i=1)^(n_"samples") weights_i)
        \sum_(i=1)^(n_"samples") weights_i (y_i - (Xw)_i)^ 2

    ``X`` and ``sample_weights`` are kept by reference: they can be modified
    in place between two solves, ``initialize`` refreshes every derived
    quantity.

    Attributes
    ----------
    r : array, shape (n_samples,)
        Residual cache, equal to ``y - X @ w`` for the current iterate.

    lipschitz : array, shape (n_features,)
        Weighted squared norms of the columns of ``X``.

    w_sum : float
        Sum of the sample weights.
    """

    _penalty_required_attr = ("prox_1d",)

    def __init__(self, X, y, sample_weights):
        self.X, self.y = _check_X_y(X, y)
        self.sample_weights = np.asarray(sample_weights, dtype=np.float64)
        if self.sample_weights.shape != self.y.shape:
            raise DimensionMismatch(
                f"sample_weights should be of shape {self.y.shape}, "
                f"got {self.sample_weights.shape}.")
        self.r = self.y.copy()
        self.lipschitz = None
        self.w_sum = None

    def n_coordinates(self):
        return self.X.shape[1]

    def initialize(self, x):
        if np.any(self.sample_weights < 0):
            raise ValueError("sample_weights must be non-negative.")
        self.w_sum = self.sample_weights.sum()
        if self.w_sum == 0.:
            raise NumericDegeneracy("All sample weights are zero.")
        self.lipschitz = self.sample_weights @ self.X ** 2
        self.r[:] = self.y - _predict(self.X, x)

    def value(self, x):
        residual = self.y - _predict(self.X, x)
        return (self.sample_weights @ residual ** 2) / (2 * self.sample_weights.sum())

    def gradient_scalar(self, x, j):
        return - (self.X[:, j] @ (self.sample_weights * self.r)) / self.w_sum

    def descend_coordinate(self, x, penalty, j):
        X_j = self.X[:, j]
        a = self.lipschitz[j]
        if a == 0.:
            raise NumericDegeneracy(f"Column {j} of X has zero weighted norm.")
        b = X_j @ (self.sample_weights * self.r)

        old_w_j = x[j]
        new_w_j = penalty.prox_1d(old_w_j + b / a, self.w_sum / a, j)
        delta = new_w_j - old_w_j
        if delta != 0.:
            x[j] = new_w_j
            self.r -= delta * X_j
        return delta


class SqrtLasso(BaseDatafit):
    """Square root least squares datafit.

    The datafit reads::

        ||y - Xw||_2 / sqrt(n_samples)

    Coordinate updates are exact minimizers of the datafit plus an L1
    penalty along one coordinate, derived from the subgradient optimality
    condition.
    """

    _penalty_required_attr = ("threshold",)

    def __init__(self, X, y):
        self.X, self.y = _check_X_y(X, y)
        self.r = self.y.copy()
        self.lipschitz = None

    def n_coordinates(self):
        return self.X.shape[1]

    def initialize(self, x):
        self.lipschitz = (self.X ** 2).sum(axis=0)
        self.r[:] = self.y - _predict(self.X, x)

    def value(self, x):
        return norm(self.y - _predict(self.X, x)) / np.sqrt(len(self.y))

    def gradient_scalar(self, x, j):
        norm_r = norm(self.r)
        if norm_r == 0.:
            raise NumericDegeneracy(
                "The square root datafit is not differentiable at zero residuals.")
        return - (self.X[:, j] @ self.r) / (np.sqrt(len(self.y)) * norm_r)

    def descend_coordinate(self, x, penalty, j):
        X_j = self.X[:, j]
        x_sqr = self.lipschitz[j]
        if x_sqr == 0.:
            raise NumericDegeneracy(f"Column {j} of X is zero.")
        # the datafit is scaled by 1 / sqrt(n): rescale the penalty instead
        lmbd = penalty.threshold(j) * np.sqrt(len(self.y))

        old_w_j = x[j]
        # residuals without the contribution of feature j
        if old_w_j != 0.:
            self.r += old_w_j * X_j
        s = X_j @ self.r
        r_sqr = self.r @ self.r

        if abs(s) <= lmbd * np.sqrt(r_sqr):
            new_w_j = 0.
        else:
            if lmbd ** 2 >= x_sqr:
                if old_w_j != 0.:
                    self.r -= old_w_j * X_j
                raise NumericDegeneracy(
                    f"Penalty level {lmbd:.3e} on coordinate {j} is not smaller "
                    f"than the norm of its column ({np.sqrt(x_sqr):.3e}).")
            shrink = (lmbd / np.sqrt(1 - lmbd ** 2 / x_sqr)
                      * np.sqrt(max(r_sqr - s ** 2 / x_sqr, 0.)))
            new_w_j = (s - np.sign(s) * shrink) / x_sqr

        if new_w_j != 0.:
            self.r -= new_w_j * X_j
        x[j] = new_w_j
        return new_w_j - old_w_j


class Quadratic(BaseDatafit):
    r"""Quadratic datafit where we pass the Hessian A directly.

    The datafit reads:

    .. math:: 1 / 2 x^(\top) A x + \langle b, x \rangle

    For a symmetric A. Up to a constant, it is the same as a ``LeastSquares``
    with :math:`A = 1 / (n_"samples") X^(\top)X` and
    :math:`b = - 1 / n_"samples" X^(\top)y`. It keeps no residual cache.
    """

    _penalty_required_attr = ("prox_1d",)

    def __init__(self, A, b):
        A = np.ascontiguousarray(A, dtype=np.float64)
        b = np.asarray(b, dtype=np.float64)
        if A.ndim != 2 or A.shape[0] != A.shape[1]:
            raise DimensionMismatch(f"A should be a square matrix, got shape {A.shape}.")
        if b.shape != (A.shape[1],):
            raise DimensionMismatch(
                f"b should be of shape ({A.shape[1]},), got {b.shape}.")
        if not np.allclose(A, A.T):
            raise ValueError("A should be symmetric.")
        self.A, self.b = A, b

    def n_coordinates(self):
        return len(self.b)

    def initialize(self, x):
        pass

    def value(self, x):
        active = x.active_indices()
        w_active = x.active_values()
        return (0.5 * w_active @ self.A[np.ix_(active, active)] @ w_active
                + self.b[active] @ w_active)

    def gradient_scalar(self, x, j):
        return x.dot(self.A[j]) + self.b[j]

    def descend_coordinate(self, x, penalty, j):
        a = self.A[j, j]
        if a <= 0.:
            raise NumericDegeneracy(
                f"Diagonal entry {j} of A is not positive: {a:.3e}.")
        step = 1. / a
        old_w_j = x[j]
        new_w_j = penalty.prox_1d(old_w_j - step * self.gradient_scalar(x, j), step, j)
        delta = new_w_j - old_w_j
        if delta != 0.:
            x[j] = new_w_j
        return delta
