import warnings
from copy import copy

import numpy as np
from sklearn.exceptions import ConvergenceWarning

from cdlasso.exceptions import DimensionMismatch
from cdlasso.solvers.base import CDOptions, SolverStatus
from cdlasso.utils.validation import check_attrs


def coordinate_descent(x, datafit, penalty, options=None):
    r"""Minimize ``datafit + penalty`` by cyclic coordinate descent.

    The problem reads:

    .. math:: min_w "datafit"(w) + "penalty"(w)

    ``x`` is modified in place. With ``options.warm_start`` the descent starts
    from ``x`` at the target penalty. Otherwise ``x`` is reset to zero and the
    penalty is decreased geometrically from ``alpha_max`` to its target value,
    each problem being warm started from the previous solution.

    Parameters
    ----------
    x : SparseIterate
        Coefficient vector, updated in place.

    datafit : instance of LeastSquares, WeightedLeastSquares, SqrtLasso or Quadratic
        Datafitting term. Its caches are reset by the solver.

    penalty : instance of L1 or WeightedL1
        Proximal operator of the penalty.

    options : CDOptions, optional
        Solver configuration. Defaults to ``CDOptions()``.

    Returns
    -------
    status : SolverStatus
        Convergence flag, number of passes and largest coordinate change of
        the last pass, for the problem at the target penalty.

    Raises
    ------
    DimensionMismatch
        If ``len(x)`` or the penalty weights do not match the number of
        coordinates of ``datafit``.
    """
    options = CDOptions() if options is None else options
    _check_problem(x, datafit, penalty)

    if options.warm_start:
        datafit.initialize(x)
        return _cd_inner(x, datafit, penalty, options)

    x.clear()
    datafit.initialize(x)

    status = None
    for alpha in geometric_alphas(alpha_max(x, datafit, penalty), penalty.alpha,
                                  options.n_steps):
        if options.verbose:
            print(f"Solving at alpha={alpha:.4e}")
        path_penalty = copy(penalty).set_params(alpha=alpha)
        status = _cd_inner(x, datafit, path_penalty, options)
    return status


def coordinate_descent_path(x, datafit, penalty, alphas=None, options=None):
    """Compute the solution path of ``datafit + penalty`` along ``alphas``.

    Parameters
    ----------
    x : SparseIterate
        Coefficient vector, used as initialization and updated in place. It
        holds the solution at the smallest alpha on exit.

    datafit : instance of LeastSquares, WeightedLeastSquares, SqrtLasso or Quadratic
        Datafitting term.

    penalty : instance of L1 or WeightedL1
        Proximal operator of the penalty. Its ``alpha`` is the last value of
        the path when ``alphas`` is None.

    alphas : array, shape (n_alphas,), default None
        Penalty levels. They are sorted in decreasing order. If None, the
        geometric path from ``alpha_max`` down to ``penalty.alpha`` with
        ``options.n_steps`` steps is used.

    options : CDOptions, optional
        Solver configuration, ``warm_start`` is ignored.

    Returns
    -------
    alphas : array, shape (n_alphas,)
        The alphas along the path where models are computed.

    coefs : array, shape (n_features, n_alphas)
        Coefficients along the path.

    statuses : list of SolverStatus
        Outcome of the solve at each alpha.
    """
    options = CDOptions() if options is None else options
    _check_problem(x, datafit, penalty)

    datafit.initialize(x)
    if alphas is None:
        if x.nnz:
            # alpha_max is defined at 0
            x.clear()
            datafit.initialize(x)
        alphas = np.fromiter(
            geometric_alphas(alpha_max(x, datafit, penalty), penalty.alpha,
                             options.n_steps), dtype=np.float64)
    else:
        alphas = np.sort(np.asarray(alphas, dtype=np.float64))[::-1]

    coefs = np.zeros((len(x), len(alphas)))
    statuses = []
    for i, alpha in enumerate(alphas):
        if options.verbose:
            print(f"##### Computing alpha {i + 1}/{len(alphas)}: {alpha:.4e}")
        path_penalty = copy(penalty).set_params(alpha=alpha)
        statuses.append(_cd_inner(x, datafit, path_penalty, options))
        coefs[:, i] = x.to_dense()
    return alphas, coefs, statuses


def alpha_max(x, datafit, penalty):
    """Smallest penalty level for which 0 is a solution.

    ``datafit`` must have been initialized at ``x = 0``. It is 0 when the
    residuals vanish at ``x = 0``.
    """
    r = getattr(datafit, "r", None)
    if r is not None and not np.any(r):
        return 0.
    gradient0 = np.array([datafit.gradient_scalar(x, j) for j in range(len(x))])
    return penalty.alpha_max(gradient0)


def geometric_alphas(alpha_max, alpha, n_steps):
    """Yield a geometric sequence of penalties from ``alpha_max`` to ``alpha``.

    ``n_steps + 1`` values are produced, both ends included. Only ``alpha`` is
    produced when it is zero or not smaller than ``alpha_max``.
    """
    if alpha <= 0 or alpha >= alpha_max:
        yield alpha
        return
    ratio = (alpha / alpha_max) ** (1. / n_steps)
    for k in range(n_steps):
        yield alpha_max * ratio ** k
    yield alpha


def _check_problem(x, datafit, penalty):
    check_attrs(penalty, "coordinate_descent",
                datafit._penalty_required_attr + ("is_penalized",))
    n_coordinates = datafit.n_coordinates()
    if len(x) != n_coordinates:
        raise DimensionMismatch(
            f"x should be of length {n_coordinates}, got {len(x)}.")
    penalty.check_n_features(n_coordinates)


def _full_pass(x, datafit, penalty, unpenalized):
    max_delta = 0.
    for j in range(len(x)):
        max_delta = max(max_delta, abs(datafit.descend_coordinate(x, penalty, j)))
    x.drop_zeros(keep=unpenalized)
    return max_delta


def _active_pass(x, datafit, penalty, unpenalized):
    max_delta = 0.
    for j in x.active_indices():
        max_delta = max(max_delta, abs(datafit.descend_coordinate(x, penalty, j)))
    x.drop_zeros(keep=unpenalized)
    return max_delta


def _cd_inner(x, datafit, penalty, options):
    # assumes that datafit is initialized at x
    # convergence requires two consecutive passes with a change below tol,
    # at least one of them being a full pass
    unpenalized = ~penalty.is_penalized(len(x))
    do_full_pass = True
    prev_converged = False
    max_delta = np.inf
    for t in range(options.max_iter):
        if do_full_pass:
            max_delta = _full_pass(x, datafit, penalty, unpenalized)
        else:
            max_delta = _active_pass(x, datafit, penalty, unpenalized)
        converged = max_delta < options.tol

        if options.verbose > 1:
            p_obj = datafit.value(x) + penalty.value(x.to_dense())
            pass_type = "full" if do_full_pass else "active"
            print(
                f"Iteration {t+1} ({pass_type} pass): {p_obj:.10f}, "
                f"max change: {max_delta:.2e}, active set size: {x.nnz}"
            )

        if converged and prev_converged:
            if options.verbose:
                print(f"Converged after {t + 1} passes, max change: {max_delta:.2e}")
            return SolverStatus(True, t + 1, max_delta)

        if do_full_pass:
            # confirm on the active set, or keep iterating on it
            do_full_pass = False
        elif converged:
            # active set settled, check the remaining coordinates
            do_full_pass = True
        prev_converged = converged

    warnings.warn(
        f"Coordinate descent did not converge after {options.max_iter} passes. "
        f"Last max change: {max_delta:.2e}, tolerance: {options.tol:.2e}. "
        "Consider increasing max_iter or the tolerance.",
        ConvergenceWarning
    )
    return SolverStatus(False, options.max_iter, max_delta)
