__version__ = '0.1dev'

from cdlasso.sparse_iterate import SparseIterate  # noqa F401
from cdlasso.exceptions import DimensionMismatch, NumericDegeneracy  # noqa F401
from cdlasso.solvers import CDOptions, SolverStatus, coordinate_descent  # noqa F401
from cdlasso.estimators import Lasso, SqrtLasso, GroupLasso  # noqa F401
