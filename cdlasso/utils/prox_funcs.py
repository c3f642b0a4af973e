import numpy as np
from numba import njit
from numpy.linalg import norm


@njit
def ST(x, u):
    """Soft-thresholding of scalar x at level u."""
    if x > u:
        return x - u
    elif x < - u:
        return x + u
    else:
        return 0.


@njit
def BST(x, u):
    """Block soft-thresholding of vector x at level u.

    A zero vector is mapped to the zero vector, whatever the level.
    """
    norm_x = norm(x)
    if norm_x == 0. or norm_x <= u:
        return np.zeros_like(x)
    return (1 - u / norm_x) * x
