from .base import CDOptions, SolverStatus
from .cd_solver import (coordinate_descent, coordinate_descent_path, alpha_max,
                        geometric_alphas)
from .gram_cd import lasso, lasso_raw
from .group_bcd import group_lasso, group_lasso_raw


__all__ = [CDOptions, SolverStatus, coordinate_descent, coordinate_descent_path,
           alpha_max, geometric_alphas, lasso, lasso_raw, group_lasso,
           group_lasso_raw]
