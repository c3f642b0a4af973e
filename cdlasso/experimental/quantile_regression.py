import numpy as np
from scipy import sparse
from scipy.optimize import linprog

from cdlasso.exceptions import DimensionMismatch


def quantile_regression(X, y, alpha, quantile=0.5):
    r"""L1 penalized quantile regression solved as a linear program.

    The problem reads::

        min_w 1 / n_samples sum_i rho_quantile(y_i - X_i^T w) + alpha * ||w||_1

    with ``rho_q(t) = q * max(t, 0) + (1 - q) * max(-t, 0)``. Splitting
    ``w = t1 - t2`` and ``y - Xw = u - v`` with nonnegative variables gives
    a linear program handed to ``scipy.optimize.linprog``.

    Parameters
    ----------
    X : array, shape (n_samples, n_features)
        Design matrix.

    y : array, shape (n_samples,)
        Target vector.

    alpha : float
        Penalty level.

    quantile : float, default 0.5
        Quantile in ]0, 1[. 0.5 gives the least absolute deviation fit.

    Returns
    -------
    w : array, shape (n_features,)
        Coefficient vector.

    Raises
    ------
    RuntimeError
        If the linear programming backend fails.
    """
    X = np.asarray(X, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    if X.ndim != 2 or y.shape != (X.shape[0],):
        raise DimensionMismatch(
            f"Incompatible shapes: X {X.shape} and y {y.shape}.")
    if not 0 < quantile < 1:
        raise ValueError(f"quantile should be in ]0, 1[, got {quantile}.")
    if alpha < 0:
        raise ValueError(f"alpha must be non-negative, got {alpha}.")
    n_samples, n_features = X.shape

    # variables: [t1, t2, u, v]
    c = np.concatenate([
        np.full(2 * n_features, alpha),
        np.full(n_samples, quantile / n_samples),
        np.full(n_samples, (1 - quantile) / n_samples),
    ])
    eye = sparse.eye(n_samples, format="csr")
    X_sp = sparse.csr_matrix(X)
    A_eq = sparse.hstack([X_sp, -X_sp, eye, -eye], format="csr")

    res = linprog(c, A_eq=A_eq, b_eq=y, bounds=(0, None), method="highs")
    if res.status != 0:
        raise RuntimeError(f"The LP solver failed: {res.message}")
    return res.x[:n_features] - res.x[n_features: 2 * n_features]
