"""
Rectangular partitions of a D-dimensional state space.

Two ways of declaring a partition into axis-aligned boxes:

- RectangularBinning: the range along each axis is taken from a reference
  dataset, and the user gives either the number of bins or the bin width
  (one value for every axis, or one value per axis).
- FixedRectangularBinning: the bin edges along each axis are given
  explicitly and do not depend on any data.

Data-derived edges always extend two floating-point steps past the data
maximum, so the maximum is interior to the partition in either mode. The
`precise` flag controls how exactly that upper boundary is kept. With
precise=True the last edge is guaranteed to lie above the maximum (for
widths an extra bin is appended if rounding leaves it short). With
precise=False widths are laid out as computed, and for fixed edges no
margin is added, so a point on the last edge is not encoded.
"""

import numbers

import numpy as np
from typing import Optional, Sequence, Tuple, Union


# Number of floating-point steps added past the maximum in precise mode.
N_EPS = 2


class DimensionMismatchError(ValueError):
    """Raised when data and binning disagree on the state-space dimension."""


def _nextfloat(value: float, n: int = N_EPS) -> float:
    for _ in range(n):
        value = np.nextafter(value, np.inf)
    return float(value)


def _is_int(v) -> bool:
    return isinstance(v, numbers.Integral) and not isinstance(v, (bool, np.bool_))


def _is_float(v) -> bool:
    return isinstance(v, numbers.Real) and not _is_int(v) and not isinstance(v, (bool, np.bool_))


def _check_edges(edges: np.ndarray, axis: int) -> np.ndarray:
    if edges.ndim != 1 or len(edges) < 2:
        raise ValueError(f"Axis {axis} needs at least two edges, got {edges.shape}")
    if not np.all(np.isfinite(edges)):
        raise ValueError(f"Edges along axis {axis} must be finite")
    if np.any(np.diff(edges) <= 0):
        raise ValueError(
            f"Edges along axis {axis} are not strictly increasing "
            f"(range [{edges[0]}, {edges[-1]}] with {len(edges) - 1} bins)"
        )
    return edges


def as_state_space(x, dimension: Optional[int] = None) -> np.ndarray:
    """
    Coerce input data to a float array of shape (N, D).

    A 1-D array is read as a scalar time series (N, 1).

    Args:
        x: Array-like of shape (N, D) or (N,).
        dimension: Expected D. If given and different, raises
            DimensionMismatchError.

    Returns:
        Float array of shape (N, D).
    """
    X = np.asarray(x, dtype=float)
    if X.ndim == 1:
        X = X.reshape(-1, 1)
    elif X.ndim != 2:
        raise ValueError(f"Expected data of shape (N, D) or (N,), got {X.shape}")
    if dimension is not None and X.shape[1] != dimension:
        raise DimensionMismatchError(
            f"Data has dimension {X.shape[1]} but the binning has dimension {dimension}"
        )
    return X


class RectangularBinning:
    """
    Data-derived rectangular partition.

    Args:
        binning: How to subdivide each axis of the data range.
            - int: number of bins along every axis
            - float: bin width along every axis
            - sequence of ints: number of bins per axis
            - sequence of floats: bin width per axis
        precise: If True, width-based edges get one more bin whenever
            rounding leaves the last edge at or below the data maximum.
            Count-based edges always end just above the maximum.

    Example:
        >>> b = RectangularBinning(10, precise=True)
        >>> edges = b.edges(data)
    """

    def __init__(self, binning: Union[int, float, Sequence], precise: bool = False):
        if _is_int(binning):
            if binning < 1:
                raise ValueError(f"Number of bins must be >= 1, got {binning}")
            mode = 'count'
        elif _is_float(binning):
            if not binning > 0:
                raise ValueError(f"Bin width must be > 0, got {binning}")
            mode = 'width'
        else:
            values = list(binning)
            if len(values) == 0:
                raise ValueError("Per-axis binning must not be empty")
            if all(_is_int(v) for v in values):
                if any(v < 1 for v in values):
                    raise ValueError(f"Number of bins must be >= 1 on every axis, got {values}")
                mode = 'counts'
            elif all(_is_float(v) for v in values):
                if any(not v > 0 for v in values):
                    raise ValueError(f"Bin widths must be > 0 on every axis, got {values}")
                mode = 'widths'
            else:
                raise ValueError(
                    f"Per-axis binning must be all ints or all floats, got {values}"
                )
            binning = tuple(values)

        self.binning = binning
        self.precise = bool(precise)
        self._mode = mode

    @property
    def dimension(self) -> Optional[int]:
        """Dimension fixed by a per-axis binning, or None if it follows the data."""
        if self._mode in ('counts', 'widths'):
            return len(self.binning)
        return None

    def _per_axis(self, dimension: int) -> list:
        if self._mode in ('count', 'width'):
            return [self.binning] * dimension
        if len(self.binning) != dimension:
            raise DimensionMismatchError(
                f"Binning is given for {len(self.binning)} axes but data has dimension {dimension}"
            )
        return list(self.binning)

    def edges(self, x) -> Tuple[np.ndarray, ...]:
        """
        Compute per-axis bin edges from the range of a reference dataset.

        Args:
            x: Reference data of shape (N, D) or (N,).

        Returns:
            Tuple of D strictly increasing edge arrays.
        """
        X = as_state_space(x)
        if X.shape[0] == 0:
            raise ValueError("Cannot derive a binning from an empty dataset")
        mini = X.min(axis=0)
        maxi = X.max(axis=0)
        values = self._per_axis(X.shape[1])
        by_count = self._mode in ('count', 'counts')

        edges = []
        for i, value in enumerate(values):
            lo, hi = float(mini[i]), float(maxi[i])
            top = _nextfloat(hi)

            if by_count:
                width = (top - lo) / value
                e = lo + width * np.arange(value + 1)
                e[-1] = top
            else:
                n = max(1, int(np.ceil((top - lo) / value)))
                e = lo + value * np.arange(n + 1)
                if self.precise and e[-1] <= hi:
                    e = np.append(e, e[-1] + value)

            edges.append(_check_edges(e, i))
        return tuple(edges)

    def __eq__(self, other):
        # Compares the declaration, not edges: RectangularBinning(4) and
        # RectangularBinning([4, 4]) differ here but give equal encoders on 2-D data.
        if not isinstance(other, RectangularBinning):
            return NotImplemented
        return self.binning == other.binning and self.precise == other.precise

    def __hash__(self):
        return hash((self.binning, self.precise))

    def __repr__(self):
        return f"RectangularBinning({self.binning!r}, precise={self.precise})"


class FixedRectangularBinning:
    """
    Rectangular partition with explicit, data-independent edges.

    Args:
        ranges: Either a single increasing edge sequence (used for every
            axis) or a sequence of per-axis edge sequences.
        dimension: Number of axes when `ranges` is a single edge sequence.
            Defaults to 1. Must not be given with per-axis edges.
        precise: If True, the final edge of every axis is moved two
            floating-point steps up so a point exactly on the upper bound
            falls in the last bin.
    """

    def __init__(self, ranges, dimension: Optional[int] = None, precise: bool = False):
        first = ranges[0] if len(ranges) > 0 else None
        if first is not None and np.ndim(first) == 0:
            n_axes = 1 if dimension is None else dimension
            if not _is_int(n_axes) or n_axes < 1:
                raise ValueError(f"dimension must be a positive int, got {dimension}")
            axes = [np.asarray(ranges, dtype=float)] * n_axes
        else:
            if dimension is not None:
                raise ValueError("dimension is only used with a single edge sequence")
            axes = [np.asarray(r, dtype=float) for r in ranges]
            if len(axes) == 0:
                raise ValueError("FixedRectangularBinning needs at least one axis")

        self.precise = bool(precise)
        self.ranges = tuple(_check_edges(e.copy(), i) for i, e in enumerate(axes))

        edges = []
        for e in self.ranges:
            e = e.copy()
            if self.precise:
                e[-1] = _nextfloat(e[-1])
            edges.append(e)
        self._edges = tuple(edges)

    @property
    def dimension(self) -> int:
        return len(self._edges)

    def edges(self, x=None) -> Tuple[np.ndarray, ...]:
        """Return the per-axis edges. `x` is accepted for API symmetry and ignored."""
        return self._edges

    def __eq__(self, other):
        if not isinstance(other, FixedRectangularBinning):
            return NotImplemented
        return (len(self._edges) == len(other._edges)
                and all(np.array_equal(a, b) for a, b in zip(self._edges, other._edges)))

    def __hash__(self):
        return hash(tuple(e.tobytes() for e in self._edges))

    def __repr__(self):
        spans = ', '.join(f"[{e[0]}, {e[-1]}]x{len(e) - 1}" for e in self.ranges)
        return f"FixedRectangularBinning({spans}, precise={self.precise})"


def as_binning(binning) -> Union[RectangularBinning, FixedRectangularBinning]:
    """
    Accept a binning object or an int/float/sequence shorthand.

    Shorthands become RectangularBinning(binning) with precise=False.
    """
    if isinstance(binning, (RectangularBinning, FixedRectangularBinning)):
        return binning
    return RectangularBinning(binning)
