class BaseDatafit:
    """Base class for coordinate-differentiable datafits.

    A datafit owns its data and, for residual based losses, a residual cache
    which must be consistent with the iterate between two calls to
    ``descend_coordinate``.
    """

    def initialize(self, x):
        """Pre-computations before a sequence of coordinate updates from ``x``.

        Parameters
        ----------
        x : SparseIterate
            Current iterate.
        """

    def n_coordinates(self):
        """Number of coordinates over which coordinate descent iterates."""

    def value(self, x):
        """Value of datafit at iterate ``x``.

        Parameters
        ----------
        x : SparseIterate
            Current iterate.

        Returns
        -------
        value : float
            The datafit value at ``x``.
        """

    def gradient_scalar(self, x, j):
        """Coordinate ``j`` of the gradient of the datafit at ``x``."""

    def descend_coordinate(self, x, penalty, j):
        """Minimize datafit + penalty along coordinate ``j``, in place.

        Parameters
        ----------
        x : SparseIterate
            Current iterate, updated in place.

        penalty : instance of L1 or WeightedL1
            Proximal operator of the penalty.

        j : int
            Coordinate to update.

        Returns
        -------
        delta : float
            Signed change applied to ``x[j]``.
        """
