import numpy as np
from numpy.linalg import norm
from numba import float64, int32

from cdlasso.exceptions import DimensionMismatch
from cdlasso.penalties.base import BasePenalty
from cdlasso.utils.prox_funcs import BST
from cdlasso.utils.validation import check_length


class GroupL2(BasePenalty):
    r"""Weighted Group L2 penalty.

    The penalty reads

    .. math::
        alpha sum_{g=1}^{n_"groups"} "weights"_g xx ||w_{[g]}||

    with :math:`w_{[g]}` being the coefficients of the g-th group.

    Attributes
    ----------
    alpha : float
        The regularization parameter.

    weights : array, shape (n_groups,)
        The weights of the groups. A zero weight leaves the group unpenalized.

    grp_ptr : array, shape (n_groups + 1,)
        The group pointers such that two consecutive elements delimit
        the indices of a group in ``grp_indices``.

    grp_indices : array, shape (n_features,)
        The group indices stacked contiguously
        ([grp1_indices, grp2_indices, ...]).
    """

    def __init__(self, alpha, weights, grp_ptr, grp_indices):
        if alpha < 0:
            raise ValueError("alpha must be non-negative.")
        if np.any(weights < 0):
            raise ValueError("weights must be non-negative.")
        self.alpha, self.weights = alpha, weights
        self.grp_ptr, self.grp_indices = grp_ptr, grp_indices

    def get_spec(self):
        spec = (
            ('alpha', float64),
            ('weights', float64[:]),
            ('grp_ptr', int32[:]),
            ('grp_indices', int32[:]),
        )
        return spec

    def params_to_dict(self):
        return dict(alpha=self.alpha, weights=self.weights,
                    grp_ptr=self.grp_ptr, grp_indices=self.grp_indices)

    def value(self, w):
        """Value of penalty at vector ``w``."""
        alpha, weights = self.alpha, self.weights
        grp_ptr, grp_indices = self.grp_ptr, self.grp_indices
        n_grp = len(grp_ptr) - 1

        sum_weighted_L2 = 0.
        for g in range(n_grp):
            grp_g_indices = grp_indices[grp_ptr[g]: grp_ptr[g+1]]
            w_g = w[grp_g_indices]

            sum_weighted_L2 += alpha * weights[g] * norm(w_g)

        return sum_weighted_L2

    def prox_1group(self, value, stepsize, g):
        """Compute the proximal operator of group ``g`` (block soft-thresholding)."""
        return BST(value, self.alpha * stepsize * self.weights[g])

    def check_n_features(self, n_features):
        n_groups = len(self.grp_ptr) - 1
        check_length(self.weights, n_groups, "weights")
        check_length(self.grp_indices, n_features, "grp_indices")
        if not np.array_equal(np.sort(self.grp_indices), np.arange(n_features)):
            raise DimensionMismatch(
                "groups must form a partition of the {} features.".format(
                    n_features))

    def alpha_max(self, grad_norms):
        """Return penalization value for which 0 is solution.

        ``grad_norms[g]`` is the norm of the gradient of the datafit at 0
        restricted to group ``g``. Unpenalized groups are ignored.
        """
        nnz_weights = self.weights != 0
        if not np.any(nnz_weights):
            return 0.
        return np.max(grad_norms[nnz_weights] / self.weights[nnz_weights])
