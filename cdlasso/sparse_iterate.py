import numpy as np


class SparseIterate:
    """Sparse coefficient vector with an explicit active set.

    Values are stored densely but only the coordinates of the active set are
    considered when iterating, computing products or pruning. A coordinate
    outside the active set always holds exactly zero.

    Parameters
    ----------
    n_features : int
        Dimension of the vector. It is fixed for the lifetime of the object.

    Attributes
    ----------
    nnz : int
        Size of the active set. It can be larger than the number of nonzero
        values until ``drop_zeros`` is called.
    """

    def __init__(self, n_features):
        if n_features < 0:
            raise ValueError(
                f"n_features must be non-negative, got {n_features}.")
        self._values = np.zeros(n_features)
        # position of each coordinate in `_active`, -1 when inactive
        self._position = np.full(n_features, -1, dtype=np.int64)
        self._active = []

    @classmethod
    def from_dense(cls, w):
        """Build an iterate holding the nonzero entries of ``w``."""
        w = np.asarray(w, dtype=np.float64)
        x = cls(len(w))
        for j in np.flatnonzero(w):
            x[j] = w[j]
        return x

    def __len__(self):
        return len(self._values)

    @property
    def nnz(self):
        return len(self._active)

    def _check_index(self, j):
        if not 0 <= j < len(self._values):
            raise IndexError(
                f"index {j} is out of bounds for SparseIterate of length "
                f"{len(self._values)}")

    def __getitem__(self, j):
        self._check_index(j)
        return self._values[j]

    def __setitem__(self, j, value):
        self._check_index(j)
        if self._position[j] < 0:
            if value == 0:
                return
            self._position[j] = len(self._active)
            self._active.append(int(j))
        self._values[j] = value

    def __iter__(self):
        return iter(self.active_indices())

    def active_indices(self):
        """Return the active coordinates, in order of activation."""
        return np.array(self._active, dtype=np.int64)

    def active_values(self):
        """Return the values of the active coordinates, aligned with ``active_indices``."""
        return self._values[self._active]

    def drop_zeros(self, keep=None):
        """Remove from the active set the coordinates holding an exact zero.

        Parameters
        ----------
        keep : array of bool, shape (n_features,), optional
            Coordinates flagged True stay active even when zero.
        """
        if keep is None:
            kept = [j for j in self._active if self._values[j] != 0]
        else:
            kept = [j for j in self._active if self._values[j] != 0 or keep[j]]
        if len(kept) == len(self._active):
            return
        self._position[self._active] = -1
        self._active = kept
        self._position[kept] = np.arange(len(kept))

    def clear(self):
        """Set every coordinate to zero and empty the active set."""
        self._values[self._active] = 0.
        self._position[self._active] = -1
        self._active = []

    def dot(self, v):
        """Inner product with a dense vector, restricted to the active set."""
        if not self._active:
            return 0.
        return self._values[self._active] @ np.asarray(v)[self._active]

    def to_dense(self):
        """Return a dense copy of the vector."""
        return self._values.copy()

    def __repr__(self):
        return f"SparseIterate(n_features={len(self)}, nnz={self.nnz})"
