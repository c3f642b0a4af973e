from .quantile_regression import quantile_regression


__all__ = [quantile_regression]
