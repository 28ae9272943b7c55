"""
Encoding of points as integer bin identifiers.

A RectangularBinEncoding maps a D-dimensional point to a single integer in
[1, n_bins] by locating each coordinate among the edges of its axis and
combining the per-axis indices row-major (last axis varies fastest).
Points outside the partition get the sentinel -1. Decoding inverts the
combination and returns the lower corner of the bin.
"""

import numpy as np
from typing import Tuple

from .binning import (
    RectangularBinning,
    DimensionMismatchError,
    as_binning,
    as_state_space,
)


OUT_OF_RANGE = -1


class RectangularBinEncoding:
    """
    Bijection between points of a rectangular partition and bin ids.

    Args:
        binning: RectangularBinning, FixedRectangularBinning, or an
            int/float shorthand for RectangularBinning.
        x: Reference dataset (N, D). Required for data-derived binnings;
            for fixed binnings it is only checked for dimension.

    Attributes:
        edges: Tuple of per-axis edge arrays.
        histsize: Number of bins per axis.
        dimension: Number of axes D.
        n_bins: Total number of bins, prod(histsize).
        precise: Precision flag of the underlying binning.
    """

    def __init__(self, binning, x=None):
        binning = as_binning(binning)

        if isinstance(binning, RectangularBinning):
            if x is None:
                raise ValueError(
                    "A data-derived RectangularBinning needs a reference dataset `x`"
                )
            edges = binning.edges(x)
        else:
            edges = binning.edges()
            if x is not None:
                as_state_space(x, dimension=binning.dimension)

        self.binning = binning
        self.precise = binning.precise
        self.edges: Tuple[np.ndarray, ...] = edges
        self.histsize: Tuple[int, ...] = tuple(len(e) - 1 for e in edges)
        self.dimension = len(edges)
        self.n_bins = int(np.prod(self.histsize))

    def encode_all(self, points) -> np.ndarray:
        """
        Encode every row of `points`.

        Args:
            points: Array of shape (N, D), or (N,) when D == 1.

        Returns:
            int64 array of shape (N,) with ids in [1, n_bins] or -1.
        """
        X = as_state_space(points, dimension=self.dimension)
        n = X.shape[0]
        idx = np.empty((n, self.dimension), dtype=np.int64)
        for i, e in enumerate(self.edges):
            # greatest edge <= x; NaN sorts past the last edge
            idx[:, i] = np.searchsorted(e, X[:, i], side='right') - 1

        inside = np.all((idx >= 0) & (idx < np.asarray(self.histsize)), axis=1)
        ids = np.full(n, OUT_OF_RANGE, dtype=np.int64)
        if np.any(inside):
            ids[inside] = np.ravel_multi_index(tuple(idx[inside].T), self.histsize) + 1
        return ids

    def encode(self, point) -> int:
        """Encode a single point to its bin id, or -1 if it lies outside."""
        p = np.atleast_1d(np.asarray(point, dtype=float))
        if p.ndim != 1 or p.shape[0] != self.dimension:
            raise DimensionMismatchError(
                f"Point has shape {p.shape} but the binning has dimension {self.dimension}"
            )
        return int(self.encode_all(p.reshape(1, -1))[0])

    def _check_ids(self, ids: np.ndarray):
        bad = (ids < 1) | (ids > self.n_bins)
        if np.any(bad):
            raise ValueError(
                f"Cannot decode bin {int(ids[bad][0])}: out of bounds of the "
                f"binning with {self.n_bins} bins"
            )

    def decode_all(self, ids) -> np.ndarray:
        """
        Lower corners of the given bins.

        Args:
            ids: Sequence of bin ids in [1, n_bins].

        Returns:
            Array of shape (len(ids), D).
        """
        ids = np.asarray(ids, dtype=np.int64).ravel()
        self._check_ids(ids)
        cart = np.unravel_index(ids - 1, self.histsize)
        out = np.empty((len(ids), self.dimension))
        for i, e in enumerate(self.edges):
            out[:, i] = e[cart[i]]
        return out

    def decode(self, bin_id: int) -> np.ndarray:
        """Lower corner of bin `bin_id` as an array of shape (D,)."""
        return self.decode_all([bin_id])[0]

    def outcome_space(self) -> np.ndarray:
        """Lower corners of all bins, in id order (lexicographically sorted)."""
        return self.decode_all(np.arange(1, self.n_bins + 1))

    def __eq__(self, other):
        if not isinstance(other, RectangularBinEncoding):
            return NotImplemented
        return (self.histsize == other.histsize
                and all(np.array_equal(a, b) for a, b in zip(self.edges, other.edges)))

    def __hash__(self):
        return hash(tuple(e.tobytes() for e in self.edges))

    def __repr__(self):
        shape = 'x'.join(str(h) for h in self.histsize)
        return f"RectangularBinEncoding({shape} bins, precise={self.precise})"
