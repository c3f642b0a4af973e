import pytest

import numpy as np
from numpy.linalg import norm

from cdlasso import SparseIterate, DimensionMismatch
from cdlasso.penalties import L1, WeightedL1, GroupL2
from cdlasso.utils import ST, BST, compiled_clone, grp_converter


@pytest.mark.parametrize("z, u", [(3., 1.), (-3., 1.), (0.5, 1.), (-1., 1.),
                                  (1., 1.), (2., 0.)])
def test_soft_thresholding(z, u):
    expected = 0. if abs(z) <= u else z - np.sign(z) * u
    assert ST(z, u) == expected


def test_soft_thresholding_at_zero_level():
    for z in np.random.RandomState(0).randn(10):
        assert ST(z, 0.) == z


def test_block_soft_thresholding():
    v = np.array([3., 4.])
    np.testing.assert_allclose(BST(v, 1.), 0.8 * v)
    np.testing.assert_array_equal(BST(v, 5.), np.zeros(2))
    # no division by zero on a zero block
    np.testing.assert_array_equal(BST(np.zeros(3), 0.), np.zeros(3))


def test_l1_apply():
    x = SparseIterate.from_dense([3., -0.5, 0.])
    penalty = L1(2.)
    assert penalty.apply(x, 0, 0.5) == 2.
    assert penalty.apply(x, 1, 0.5) == 0.
    np.testing.assert_array_equal(x.to_dense(), [2., 0., 0.])


def test_weighted_l1_apply():
    x = SparseIterate.from_dense([3., 3.])
    penalty = WeightedL1(1., np.array([1., 0.]))
    assert penalty.apply(x, 0, 1.) == 2.
    # unpenalized coordinate is left untouched
    assert penalty.apply(x, 1, 1.) == 3.
    assert penalty.threshold(0) == 1.
    assert penalty.threshold(1) == 0.


def test_alpha_max_ignores_unpenalized():
    gradient0 = np.array([10., 1., -2.])
    penalty = WeightedL1(1., np.array([0., 0.5, 1.]))
    assert penalty.alpha_max(gradient0) == 2.
    assert L1(1.).alpha_max(gradient0) == 10.
    assert WeightedL1(1., np.zeros(3)).alpha_max(gradient0) == 0.


def test_penalty_values():
    w = np.array([1., -2., 0., 2.])
    assert L1(0.5).value(w) == 2.5
    assert WeightedL1(1., np.array([1., 0., 3., 1.])).value(w) == 3.

    grp_indices, grp_ptr = grp_converter(2, 4)
    penalty = GroupL2(2., np.array([1., 0.5]), grp_ptr, grp_indices)
    np.testing.assert_allclose(penalty.value(w), 2 * norm([1, -2]) + 2.)


def test_invalid_parameters():
    with pytest.raises(ValueError, match="alpha must be non-negative"):
        L1(-1.)
    with pytest.raises(ValueError, match="weights must be non-negative"):
        WeightedL1(1., np.array([1., -1.]))

    penalty = WeightedL1(1., np.ones(3))
    with pytest.raises(DimensionMismatch):
        penalty.check_n_features(4)


def test_group_partition_check():
    grp_indices, grp_ptr = grp_converter([[0, 1], [1, 2]], 3)
    penalty = GroupL2(1., np.ones(2), grp_ptr, grp_indices)
    with pytest.raises(DimensionMismatch):
        penalty.check_n_features(4)

    grp_indices, grp_ptr = grp_converter([[0, 2], [1, 1]], 4)
    penalty = GroupL2(1., np.ones(2), grp_ptr, grp_indices)
    with pytest.raises(DimensionMismatch, match="partition"):
        penalty.check_n_features(4)


def test_compiled_clone_prox():
    penalty = WeightedL1(2., np.array([1., 0.5]))
    compiled = compiled_clone(penalty)
    for j in range(2):
        assert compiled.prox_1d(3., 0.5, j) == penalty.prox_1d(3., 0.5, j)

    grp_indices, grp_ptr = grp_converter(2, 4)
    group_penalty = compiled_clone(GroupL2(1., np.ones(2), grp_ptr, grp_indices))
    np.testing.assert_allclose(
        group_penalty.prox_1group(np.array([3., 4.]), 1., 0), [2.4, 3.2])


def test_set_params():
    penalty = L1(1.)
    assert penalty.set_params(alpha=3.) is penalty
    assert penalty.params_to_dict() == dict(alpha=3.)


def test_is_penalized():
    np.testing.assert_array_equal(L1(1.).is_penalized(3), [True, True, True])
    penalty = WeightedL1(1., np.array([0., 2., 0.]))
    np.testing.assert_array_equal(penalty.is_penalized(3), [False, True, False])
