from functools import lru_cache

from numba.experimental import jitclass


@lru_cache()
def jit_cached_compile(klass, spec):
    """Jit compile class and cache compilation.

    Parameters
    ----------
    klass : class
        Un instantiated Penalty.

    spec : tuple
        A tuple of (name, dtype) for every attribute of a jitclass.

    Returns
    -------
    Instance of Penalty
        Return a jitclass.
    """
    return jitclass(spec)(klass)


def compiled_clone(instance):
    """Compile instance to a jitclass.

    Used to hand a proximal operator to the ``@njit`` kernels of the
    active-shooting solvers.

    Parameters
    ----------
    instance : Instance of Penalty
        Penalty object.

    Returns
    -------
    Instance of Penalty
        Return a jitclass.
    """
    return jit_cached_compile(
        instance.__class__,
        instance.get_spec(),
    )(**instance.params_to_dict())
