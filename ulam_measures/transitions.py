"""
Transition counting over visited bins (Ulam-Galerkin discretization).

Each point of a trajectory is encoded to a bin id, and consecutive pairs
(b_t, b_{t+1}) are tallied. Rows and columns of the count matrix range only
over bins the trajectory actually visits, in order of first visit, so
memory grows with the trajectory rather than with the number of bins.
"""

from dataclasses import dataclass, field
from typing import Dict

import numpy as np
from scipy import sparse

from .binning import as_state_space
from .encoding import OUT_OF_RANGE, RectangularBinEncoding


MIN_POINTS = 2


@dataclass
class TransitionCounts:
    """
    Observed transitions of one trajectory.

    Attributes:
        bin_sequence: Bin id of every trajectory point (-1 if outside).
        visited_bins: Distinct visited ids in order of first visit.
        counts: CSR matrix, counts[i, j] = number of steps from
            visited_bins[i] to visited_bins[j].
        n_missed: Number of points that fell outside the binning.
    """
    bin_sequence: np.ndarray
    visited_bins: np.ndarray
    counts: sparse.csr_matrix
    n_missed: int = 0
    _index: Dict[int, int] = field(default_factory=dict, repr=False)

    @property
    def n_visited(self) -> int:
        return len(self.visited_bins)

    def index_of(self, bin_id: int) -> int:
        """Row/column of `bin_id` in the count matrix."""
        try:
            return self._index[int(bin_id)]
        except KeyError:
            raise KeyError(f"Bin {bin_id} was not visited by the trajectory") from None


def count_transitions(trajectory, encoding: RectangularBinEncoding) -> TransitionCounts:
    """
    Encode a trajectory and count transitions between visited bins.

    Steps into or out of a point outside the binning are dropped; they are
    not treated as self-loops.

    Args:
        trajectory: Ordered points of shape (N, D), or (N,) when D == 1.
        encoding: Encoder defining the partition.

    Returns:
        TransitionCounts for the trajectory.
    """
    X = as_state_space(trajectory, dimension=encoding.dimension)
    if X.shape[0] < MIN_POINTS:
        raise ValueError(
            f"Need at least {MIN_POINTS} trajectory points to count transitions, got {X.shape[0]}"
        )

    bin_sequence = encoding.encode_all(X)

    index: Dict[int, int] = {}
    positions = np.full(len(bin_sequence), -1, dtype=np.int64)
    for t, b in enumerate(bin_sequence.tolist()):
        if b == OUT_OF_RANGE:
            continue
        positions[t] = index.setdefault(b, len(index))

    src = positions[:-1]
    dst = positions[1:]
    keep = (src >= 0) & (dst >= 0)

    n = len(index)
    counts = sparse.coo_matrix(
        (np.ones(int(keep.sum())), (src[keep], dst[keep])), shape=(n, n)
    ).tocsr()

    return TransitionCounts(
        bin_sequence=bin_sequence,
        visited_bins=np.fromiter(index.keys(), dtype=np.int64, count=n),
        counts=counts,
        n_missed=int(np.sum(bin_sequence == OUT_OF_RANGE)),
        _index=index,
    )
