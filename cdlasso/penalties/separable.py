import numpy as np
from numba import float64

from cdlasso.penalties.base import BasePenalty
from cdlasso.utils.prox_funcs import ST
from cdlasso.utils.validation import check_length


class L1(BasePenalty):
    """:math:`ell_1` penalty, with the same level ``alpha`` on every coordinate."""

    def __init__(self, alpha):
        if alpha < 0:
            raise ValueError("alpha must be non-negative.")
        self.alpha = alpha

    def get_spec(self):
        spec = (
            ('alpha', float64),
        )
        return spec

    def params_to_dict(self):
        return dict(alpha=self.alpha)

    def value(self, w):
        """Compute L1 penalty value."""
        return self.alpha * np.sum(np.abs(w))

    def threshold(self, j):
        """Penalty level of coordinate ``j``."""
        return self.alpha

    def prox_1d(self, value, stepsize, j):
        """Compute proximal operator of the L1 penalty (soft-thresholding operator)."""
        return ST(value, self.alpha * stepsize)

    def apply(self, x, j, stepsize):
        """Soft-threshold ``x[j]`` in place and return its new value."""
        x[j] = self.prox_1d(x[j], stepsize, j)
        return x[j]

    def is_penalized(self, n_features):
        """Return a binary mask with the penalized features."""
        return np.ones(n_features, dtype=np.bool_)

    def check_n_features(self, n_features):
        pass

    def alpha_max(self, gradient0):
        """Return penalization value for which 0 is solution."""
        if len(gradient0) == 0:
            return 0.
        return np.max(np.abs(gradient0))


class WeightedL1(BasePenalty):
    """Weighted L1 penalty.

    Coordinate ``j`` is penalized with level ``alpha * weights[j]``. A zero
    weight leaves the coordinate unpenalized.
    """

    def __init__(self, alpha, weights):
        if alpha < 0:
            raise ValueError("alpha must be non-negative.")
        self.alpha = alpha
        self.weights = weights.astype(np.float64)
        if np.any(self.weights < 0):
            raise ValueError("weights must be non-negative.")

    def get_spec(self):
        spec = (
            ('alpha', float64),
            ('weights', float64[:]),
        )
        return spec

    def params_to_dict(self):
        return dict(alpha=self.alpha, weights=self.weights)

    def value(self, w):
        """Compute the weighted L1 penalty."""
        return self.alpha * np.sum(np.abs(w) * self.weights)

    def threshold(self, j):
        """Penalty level of coordinate ``j``."""
        return self.alpha * self.weights[j]

    def prox_1d(self, value, stepsize, j):
        """Compute the proximal operator of weighted L1 (weighted soft-thresholding)."""
        return ST(value, self.alpha * stepsize * self.weights[j])

    def apply(self, x, j, stepsize):
        """Soft-threshold ``x[j]`` in place and return its new value."""
        x[j] = self.prox_1d(x[j], stepsize, j)
        return x[j]

    def is_penalized(self, n_features):
        """Return a binary mask with the penalized features."""
        return self.weights != 0

    def check_n_features(self, n_features):
        check_length(self.weights, n_features, "weights")

    def alpha_max(self, gradient0):
        """Return penalization value for which 0 is solution.

        Unpenalized coordinates are ignored.
        """
        nnz_weights = self.weights != 0
        if not np.any(nnz_weights):
            return 0.
        return np.max(np.abs(gradient0[nnz_weights] / self.weights[nnz_weights]))
