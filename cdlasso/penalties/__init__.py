from .base import BasePenalty
from .separable import L1, WeightedL1
from .block_separable import GroupL2


__all__ = [BasePenalty, L1, WeightedL1, GroupL2]
