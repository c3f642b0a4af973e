class DimensionMismatch(ValueError):
    """Shapes or lengths of the inputs of a solver are inconsistent.

    Raised before any mutation of the caller's buffers.
    """


class NumericDegeneracy(ArithmeticError):
    """A coordinate or block update is numerically undefined.

    Raised for a zero curvature, a zero-Lipschitz group block, or when the
    square-root Lasso update would require ``lambda ** 2 >= ||X_k||^2``.
    """
