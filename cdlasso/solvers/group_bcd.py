import warnings

import numpy as np
from numba import njit
from numpy.linalg import norm
from sklearn.exceptions import ConvergenceWarning

from cdlasso.exceptions import DimensionMismatch, NumericDegeneracy
from cdlasso.penalties import GroupL2
from cdlasso.solvers.base import CDOptions, SolverStatus
from cdlasso.utils.data import grp_converter
from cdlasso.utils.jit_compilation import compiled_clone
from cdlasso.utils.validation import check_gram, check_penalty_vector


def group_lasso(beta, XX, Xy, groups, alphas, options=None, max_inner_iter=1000):
    r"""Active shooting group Lasso solver working on Gram statistics.

    It minimizes:

    .. math:: 1 / 2 w^T "XX" w - "Xy"^T w + sum_g "alphas"_g ||w_{[g]}||

    Groups are added to the active set one at a time, picking the group
    violating the optimality conditions the most. Each active group is
    updated by proximal gradient descent with the fixed step
    ``1 / lambda_max(XX_{[g], [g]})``.

    Parameters
    ----------
    beta : array, shape (n_features,)
        Coefficient vector, used as initialization and updated in place.

    XX : array, shape (n_features, n_features)
        Scaled Gram matrix ``X.T @ X / n_samples``.

    Xy : array, shape (n_features,)
        Scaled correlations ``X.T @ y / n_samples``.

    groups : int | list of ints | list of lists of ints
        Partition of the features, see ``grp_converter``.

    alphas : float or array, shape (n_groups,)
        Penalty level of each group.

    options : CDOptions, optional
        ``max_iter`` bounds the number of active set updates, ``tol`` the
        largest coefficient change of the inner loops. ``warm_start`` and
        ``n_steps`` are ignored.

    max_inner_iter : int, default 1000
        Maximum number of passes over the active groups, and of proximal
        gradient steps on a single group.

    Returns
    -------
    status : SolverStatus
        Convergence flag, number of active set updates and largest
        coefficient change of the last pass over the active groups.
    """
    options = CDOptions() if options is None else options
    XX, Xy = check_gram(XX, Xy)
    n_features = len(Xy)
    if len(beta) != n_features:
        raise DimensionMismatch(
            f"beta should be of length {n_features}, got {len(beta)}.")

    grp_indices, grp_ptr = grp_converter(groups, n_features)
    n_groups = len(grp_ptr) - 1
    penalty = GroupL2(1., check_penalty_vector(alphas, n_groups), grp_ptr, grp_indices)
    penalty.check_n_features(n_features)
    penalty = compiled_clone(penalty)

    # XX is fixed during the solve: step sizes are computed once
    lipschitz = _group_lipschitz(XX, grp_ptr, grp_indices)

    if n_features == 0 or np.max(np.abs(beta)) < options.tol:
        beta[:] = 0.
        is_active = np.zeros(n_groups, dtype=np.bool_)
        if not _add_violating_group(beta, XX, Xy, penalty, is_active, lipschitz):
            if options.verbose:
                print("0 is optimal, no violating group.")
            return SolverStatus(True, 0, 0.)
    else:
        is_active = _find_groups(beta, grp_ptr, grp_indices)
        for g in np.flatnonzero(is_active):
            _check_lipschitz(lipschitz, g)

    stop_crit = 0.
    for t in range(options.max_iter):
        old_is_active = is_active.copy()
        ws = np.flatnonzero(is_active)
        n_inner, stop_crit = _minimize_active_groups(
            beta, XX, Xy, penalty, ws, lipschitz, max_inner_iter, options.tol)

        is_active = _find_groups(beta, grp_ptr, grp_indices)
        _add_violating_group(beta, XX, Xy, penalty, is_active, lipschitz)

        if options.verbose:
            p_obj = 0.5 * beta @ XX @ beta - Xy @ beta + penalty.value(beta)
            print(
                f"Iteration {t+1}: {p_obj:.10f}, {n_inner} inner passes, "
                f"stopping crit: {stop_crit:.2e}, active groups: {is_active.sum()}"
            )

        if np.array_equal(old_is_active, is_active):
            return SolverStatus(stop_crit <= options.tol, t + 1, stop_crit)

    warnings.warn(
        f"Active shooting did not converge after {options.max_iter} active set "
        f"updates. Active groups: {is_active.sum()}.",
        ConvergenceWarning
    )
    return SolverStatus(False, options.max_iter, stop_crit)


def group_lasso_raw(beta, X, y, groups, alphas, options=None, max_inner_iter=1000):
    """Active shooting group Lasso solver on raw data.

    Computes ``XX = X.T @ X / n_samples`` and ``Xy = X.T @ y / n_samples``, then
    calls ``group_lasso``. See ``group_lasso`` for the parameters.
    """
    X = np.asarray(X, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    if X.ndim != 2 or y.shape != (X.shape[0],):
        raise DimensionMismatch(
            f"Incompatible shapes: X {X.shape} and y {y.shape}.")
    n_samples = X.shape[0]
    return group_lasso(beta, X.T @ X / n_samples, X.T @ y / n_samples, groups,
                       alphas, options=options, max_inner_iter=max_inner_iter)


def _group_lipschitz(XX, grp_ptr, grp_indices):
    n_groups = len(grp_ptr) - 1
    lipschitz = np.zeros(n_groups)
    for g in range(n_groups):
        grp_g_indices = grp_indices[grp_ptr[g]: grp_ptr[g+1]]
        if len(grp_g_indices):
            lipschitz[g] = np.linalg.eigvalsh(
                XX[np.ix_(grp_g_indices, grp_g_indices)])[-1]
    return lipschitz


def _check_lipschitz(lipschitz, g):
    if lipschitz[g] <= 0.:
        raise NumericDegeneracy(f"The Gram block of group {g} is zero.")


def _add_violating_group(beta, XX, Xy, penalty, is_active, lipschitz):
    g = _find_violating_group(beta, XX, Xy, penalty, is_active)
    if g < 0:
        return False
    _check_lipschitz(lipschitz, g)
    is_active[g] = True
    return True


@njit
def _find_groups(beta, grp_ptr, grp_indices):
    n_groups = len(grp_ptr) - 1
    is_active = np.zeros(n_groups, dtype=np.bool_)
    for g in range(n_groups):
        for idx in range(grp_ptr[g], grp_ptr[g+1]):
            if beta[grp_indices[idx]] != 0.:
                is_active[g] = True
                break
    return is_active


@njit
def _group_residual(XX, Xy, beta, grp_g_indices):
    # Xy_g - XX_{g, :} beta + XX_{g, g} beta_g: correlation with the residuals
    # computed without the contribution of group g
    res = np.empty(len(grp_g_indices))
    for i in range(len(grp_g_indices)):
        j = grp_g_indices[i]
        res_i = Xy[j]
        for k in range(len(beta)):
            res_i -= XX[j, k] * beta[k]
        for k in grp_g_indices:
            res_i += XX[j, k] * beta[k]
        res[i] = res_i
    return res


@njit
def _find_violating_group(beta, XX, Xy, penalty, is_active):
    grp_ptr, grp_indices = penalty.grp_ptr, penalty.grp_indices
    best_g = -1
    best_violation = 0.
    for g in range(len(grp_ptr) - 1):
        if is_active[g]:
            continue
        grp_g_indices = grp_indices[grp_ptr[g]: grp_ptr[g+1]]
        norm_res = norm(_group_residual(XX, Xy, beta, grp_g_indices))
        if norm_res > penalty.alpha * penalty.weights[g] and norm_res > best_violation:
            best_violation = norm_res
            best_g = g
    return best_g


@njit
def _minimize_one_group(w_g, XX, grp_g_indices, res_g, penalty, g, step,
                        max_iter, tol):
    # proximal gradient on 1/2 w^T XX_g w - res_g^T w + pen_g(w), fixed step
    grp_size = len(grp_g_indices)
    XX_g = np.empty((grp_size, grp_size))
    for i in range(grp_size):
        for k in range(grp_size):
            XX_g[i, k] = XX[grp_g_indices[i], grp_g_indices[k]]

    z = np.empty(grp_size)
    for _ in range(max_iter):
        for i in range(grp_size):
            grad_i = - res_g[i]
            for k in range(grp_size):
                grad_i += XX_g[i, k] * w_g[k]
            z[i] = w_g[i] - step * grad_i
        new_w_g = penalty.prox_1group(z, step, g)

        max_delta = np.max(np.abs(new_w_g - w_g))
        w_g = new_w_g
        if max_delta <= tol:
            break
    return w_g


@njit
def _minimize_active_groups(beta, XX, Xy, penalty, ws, lipschitz, max_inner_iter, tol):
    # block coordinate descent restricted to the groups in ws, updates beta in place
    grp_ptr, grp_indices = penalty.grp_ptr, penalty.grp_indices
    max_delta = 0.
    for n_iter in range(max_inner_iter):
        max_delta = 0.
        for g in ws:
            grp_g_indices = grp_indices[grp_ptr[g]: grp_ptr[g+1]]
            res_g = _group_residual(XX, Xy, beta, grp_g_indices)
            old_w_g = beta[grp_g_indices]

            if norm(res_g) <= penalty.alpha * penalty.weights[g]:
                new_w_g = np.zeros(len(grp_g_indices))
            else:
                new_w_g = _minimize_one_group(
                    old_w_g.copy(), XX, grp_g_indices, res_g, penalty, g,
                    1. / lipschitz[g], max_inner_iter, tol)

            for idx in range(len(grp_g_indices)):
                max_delta = max(max_delta, abs(new_w_g[idx] - old_w_g[idx]))
                beta[grp_g_indices[idx]] = new_w_g[idx]

        if max_delta <= tol:
            return n_iter + 1, max_delta
    return max_inner_iter, max_delta
