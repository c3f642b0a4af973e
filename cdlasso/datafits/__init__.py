from .base import BaseDatafit
from .single_task import (LeastSquares, WeightedLeastSquares, SqrtLasso,
                          Quadratic)


__all__ = [BaseDatafit, LeastSquares, WeightedLeastSquares, SqrtLasso, Quadratic]
