import warnings

import numpy as np
from numba import njit
from sklearn.exceptions import ConvergenceWarning

from cdlasso.exceptions import DimensionMismatch, NumericDegeneracy
from cdlasso.penalties import WeightedL1
from cdlasso.solvers.base import CDOptions, SolverStatus
from cdlasso.utils.jit_compilation import compiled_clone
from cdlasso.utils.validation import check_gram, check_penalty_vector


def lasso(beta, XX, Xy, alphas, options=None, max_inner_iter=1000):
    r"""Active shooting Lasso solver working on Gram statistics.

    It minimizes:

    .. math:: 1 / 2 w^T "XX" w - "Xy"^T w + sum_j "alphas"_j |w_j|

    which, with ``XX = X.T @ X / n_samples`` and ``Xy = X.T @ y / n_samples``, is
    the Lasso problem up to a constant. Coordinates are updated on the active
    set only, and the active set is grown one coordinate at a time with the
    coordinate violating the optimality conditions the most.

    Parameters
    ----------
    beta : SparseIterate
        Coefficient vector, used as initialization and updated in place.

    XX : array, shape (n_features, n_features)
        Scaled Gram matrix.

    Xy : array, shape (n_features,)
        Scaled correlations with the target.

    alphas : float or array, shape (n_features,)
        Penalty level of each coordinate.

    options : CDOptions, optional
        ``max_iter`` bounds the number of active set updates, ``tol`` the
        largest coordinate change of the inner loop. ``warm_start`` and
        ``n_steps`` are ignored.

    max_inner_iter : int, default 1000
        Maximum number of passes over the active set between two updates of
        the active set.

    Returns
    -------
    status : SolverStatus
        Convergence flag, number of active set updates and largest coordinate
        change of the last inner pass.
    """
    options = CDOptions() if options is None else options
    XX, Xy = check_gram(XX, Xy)
    n_features = len(Xy)
    if len(beta) != n_features:
        raise DimensionMismatch(
            f"beta should be of length {n_features}, got {len(beta)}.")
    alphas = check_penalty_vector(alphas, n_features)
    penalty = compiled_clone(WeightedL1(1., alphas))
    unpenalized = alphas == 0
    for j in beta.active_indices():
        if XX[j, j] <= 0.:
            raise NumericDegeneracy(
                f"Diagonal entry {j} of the Gram matrix is not positive.")

    stop_crit = 0.
    if beta.nnz == 0:
        if not _add_violating_index(beta, XX, Xy, penalty):
            if options.verbose:
                print("0 is optimal, no violating index.")
            return SolverStatus(True, 0, 0.)

    for t in range(options.max_iter):
        ws = beta.active_indices()
        w_ws = beta.active_values()
        n_inner, stop_crit = _minimize_active_set(
            XX, Xy, penalty, ws, w_ws, max_inner_iter, options.tol)
        for idx, j in enumerate(ws):
            beta[j] = w_ws[idx]
        beta.drop_zeros(keep=unpenalized)

        if options.verbose:
            print(
                f"Iteration {t+1}: {n_inner} inner passes, "
                f"stopping crit: {stop_crit:.2e}, active set size: {beta.nnz}"
            )

        if not _add_violating_index(beta, XX, Xy, penalty):
            return SolverStatus(stop_crit <= options.tol, t + 1, stop_crit)

    warnings.warn(
        f"Active shooting did not converge after {options.max_iter} active set "
        f"updates. Active set size: {beta.nnz}.",
        ConvergenceWarning
    )
    return SolverStatus(False, options.max_iter, stop_crit)


def lasso_raw(beta, X, y, alphas, options=None, max_inner_iter=1000):
    """Active shooting Lasso solver on raw data.

    Computes ``XX = X.T @ X / n_samples`` and ``Xy = X.T @ y / n_samples``, then
    calls ``lasso``. See ``lasso`` for the parameters.
    """
    X = np.asarray(X, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    if X.ndim != 2 or y.shape != (X.shape[0],):
        raise DimensionMismatch(
            f"Incompatible shapes: X {X.shape} and y {y.shape}.")
    n_samples = X.shape[0]
    return lasso(beta, X.T @ X / n_samples, X.T @ y / n_samples, alphas,
                 options=options, max_inner_iter=max_inner_iter)


def _add_violating_index(beta, XX, Xy, penalty):
    # seed the index violating the KKT conditions the most at machine epsilon
    is_active = np.zeros(len(beta), dtype=np.bool_)
    is_active[beta.active_indices()] = True
    j = _find_violating_index(
        XX, Xy, penalty, beta.active_indices(), beta.active_values(), is_active)
    if j < 0:
        return False
    if XX[j, j] <= 0.:
        raise NumericDegeneracy(
            f"Diagonal entry {j} of the Gram matrix is not positive.")
    beta[j] = np.finfo(np.float64).eps
    return True


@njit
def _gradient_j(XX, Xy, ws, w_ws, j):
    # (XX w)_j - Xy_j, w being supported on ws
    grad_j = - Xy[j]
    for idx in range(len(ws)):
        grad_j += XX[ws[idx], j] * w_ws[idx]
    return grad_j


@njit
def _find_violating_index(XX, Xy, penalty, ws, w_ws, is_active):
    best_j = -1
    best_violation = 0.
    for j in range(len(Xy)):
        if is_active[j]:
            continue
        abs_grad_j = abs(_gradient_j(XX, Xy, ws, w_ws, j))
        if abs_grad_j > penalty.alpha * penalty.weights[j] and abs_grad_j > best_violation:
            best_violation = abs_grad_j
            best_j = j
    return best_j


@njit
def _minimize_active_set(XX, Xy, penalty, ws, w_ws, max_inner_iter, tol):
    # cyclic coordinate descent restricted to ws, updates w_ws in place
    max_delta = 0.
    for n_iter in range(max_inner_iter):
        max_delta = 0.
        for idx in range(len(ws)):
            j = ws[idx]
            old_w_j = w_ws[idx]
            # gradient of the problem without the contribution of j
            grad_j = _gradient_j(XX, Xy, ws, w_ws, j) - XX[j, j] * old_w_j
            step = 1. / XX[j, j]
            w_ws[idx] = penalty.prox_1d(- grad_j * step, step, j)
            max_delta = max(max_delta, abs(w_ws[idx] - old_w_j))

        if max_delta <= tol:
            return n_iter + 1, max_delta
    return max_inner_iter, max_delta
