from collections import namedtuple


_CDOptionsBase = namedtuple(
    "_CDOptionsBase", ["max_iter", "tol", "warm_start", "n_steps", "verbose"])


class CDOptions(_CDOptionsBase):
    """Immutable configuration of the coordinate descent solvers.

    Attributes
    ----------
    max_iter : int, default 2000
        Maximum number of passes over the coordinates (outer iterations for
        the active-shooting solvers).

    tol : float, default 1e-7
        Tolerance on the largest coordinate change of a pass.

    warm_start : bool, default True
        Start from the supplied iterate at the target penalty. When ``False``
        the iterate is reset to zero and a continuation path is followed from
        ``alpha_max`` down to the target penalty.

    n_steps : int, default 50
        Number of geometric steps of the continuation path.

    verbose : int, default 0
        Amount of verbosity. 0/False is silent.
    """

    __slots__ = ()

    def __new__(cls, max_iter=2000, tol=1e-7, warm_start=True, n_steps=50,
                verbose=0):
        if max_iter < 0:
            raise ValueError(f"max_iter must be non-negative, got {max_iter}.")
        if tol < 0:
            raise ValueError(f"tol must be non-negative, got {tol}.")
        if n_steps < 1:
            raise ValueError(f"n_steps must be at least 1, got {n_steps}.")
        return super().__new__(cls, max_iter, tol, warm_start, n_steps, verbose)


SolverStatus = namedtuple("SolverStatus", ["converged", "n_iter", "stop_crit"])
SolverStatus.__doc__ = """Outcome of a solve.

Attributes
----------
converged : bool
    Whether the stopping criterion was met before the iteration cap.

n_iter : int
    Number of passes (or outer iterations) performed.

stop_crit : float
    Largest coordinate change of the last pass.
"""
