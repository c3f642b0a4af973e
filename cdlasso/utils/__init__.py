from .data import make_correlated_data, grp_converter
from .jit_compilation import compiled_clone
from .prox_funcs import ST, BST


__all__ = [make_correlated_data, grp_converter, compiled_clone, ST, BST]
