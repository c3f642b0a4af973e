import re

import numpy as np

from cdlasso.exceptions import DimensionMismatch


def check_attrs(obj, solver_name, required_attr):
    """Check whether a datafit or penalty is usable by a solver.

    Parameters
    ----------
    obj : Instance of Datafit or Penalty
        The instance Datafit (or Penalty) to check.

    solver_name : str
        Name of the solver, used in the error message.

    required_attr : List or tuple of strings
        The attributes that ``obj`` must have.

    Raises
    ------
        AttributeError
            if any of the attribute in ``required_attr`` is missing
            from ``obj`` attributes.
    """
    missing_attrs = []

    # if `attr` is a list check that at least one of them
    # is within `obj` attributes
    for attr in required_attr:
        attributes = attr if not isinstance(attr, str) else (attr,)

        for a in attributes:
            if hasattr(obj, a):
                break
        else:
            missing_attrs.append(_join_attrs_with_or(attributes))

    if len(missing_attrs):
        required_attr = [_join_attrs_with_or(attrs) for attrs in required_attr]

        name_matcher = re.compile(r"\.(\w+)'>")
        obj_name = name_matcher.search(str(obj.__class__)).group(1)

        err_message = (f"{obj_name} is not compatible with solver {solver_name}."
                       f" It must implement {' and '.join(required_attr)}.\n"
                       f"Missing {' and '.join(missing_attrs)}.")

        raise AttributeError(err_message)


def _join_attrs_with_or(attrs):
    if isinstance(attrs, str):
        return f"`{attrs}`"

    if len(attrs) == 1:
        return f"`{attrs[0]}`"

    out = " or ".join([f"`{a}`" for a in attrs])
    return f"({out})"


def check_length(arr, expected, name):
    """Raise ``DimensionMismatch`` if ``len(arr) != expected``."""
    if len(arr) != expected:
        raise DimensionMismatch(
            f"{name} should be of length {expected}, got {len(arr)}.")


def check_gram(XX, Xy):
    """Validate the sufficient statistics ``XX = X.T @ X / n``, ``Xy = X.T @ y / n``.

    Returns
    -------
    XX : array, shape (n_features, n_features)
        C-contiguous float64 copy (or view) of ``XX``.

    Xy : array, shape (n_features,)
        Contiguous float64 ``Xy``.
    """
    XX = np.ascontiguousarray(XX, dtype=np.float64)
    Xy = np.ascontiguousarray(Xy, dtype=np.float64)
    if XX.ndim != 2 or XX.shape[0] != XX.shape[1]:
        raise DimensionMismatch(f"XX should be a square matrix, got shape {XX.shape}.")
    if Xy.ndim != 1:
        raise DimensionMismatch(f"Xy should be a vector, got shape {Xy.shape}.")
    check_length(Xy, XX.shape[0], "Xy")
    return XX, Xy


def check_penalty_vector(alphas, n_elements, name="alphas"):
    """Broadcast a scalar penalty and check a penalty vector.

    Raises
    ------
    DimensionMismatch
        if the vector does not have ``n_elements`` entries.

    ValueError
        if any penalty is negative.
    """
    alphas = np.asarray(alphas, dtype=np.float64)
    if alphas.ndim == 0:
        alphas = np.full(n_elements, float(alphas))
    check_length(alphas, n_elements, name)
    if np.any(alphas < 0):
        raise ValueError(f"{name} must be non-negative.")
    return np.ascontiguousarray(alphas)
