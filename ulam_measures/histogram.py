"""
Visitation-frequency probabilities on a rectangular binning.

ValueBinning counts how many points fall in each bin and normalizes. It
shares its encoder with the transfer-operator estimator, so both report
outcomes as lower bin corners.
"""

import numpy as np
from typing import Tuple

from .binning import as_binning
from .encoding import OUT_OF_RANGE, RectangularBinEncoding


class ValueBinning:
    """
    Histogram probabilities over a rectangular partition.

    Args:
        binning: RectangularBinning, FixedRectangularBinning, or an
            int/float shorthand for RectangularBinning.
    """

    def __init__(self, binning):
        self.binning = as_binning(binning)

    def encoding(self, x) -> RectangularBinEncoding:
        return RectangularBinEncoding(self.binning, x)

    def codify(self, x) -> np.ndarray:
        """Bin id of every point of `x` (-1 for points outside)."""
        return self.encoding(x).encode_all(x)

    def probabilities_and_outcomes(self, x) -> Tuple[np.ndarray, np.ndarray]:
        """
        Relative frequency of every non-empty bin.

        Args:
            x: Data of shape (N, D) or (N,).

        Returns:
            Tuple of (probabilities, outcomes) sorted by bin id. Points
            outside the binning are not counted.
        """
        encoding = self.encoding(x)
        ids = encoding.encode_all(x)
        ids = ids[ids != OUT_OF_RANGE]
        if len(ids) == 0:
            raise ValueError("No point of the data falls inside the binning")
        bins, counts = np.unique(ids, return_counts=True)
        return counts / counts.sum(), encoding.decode_all(bins)

    def probabilities(self, x) -> np.ndarray:
        return self.probabilities_and_outcomes(x)[0]

    def outcomes(self, x) -> np.ndarray:
        return self.probabilities_and_outcomes(x)[1]

    def outcome_space(self, x=None) -> np.ndarray:
        """Lower corners of every bin of the partition induced on `x`."""
        return self.encoding(x).outcome_space()

    def __eq__(self, other):
        if not isinstance(other, ValueBinning):
            return NotImplemented
        return self.binning == other.binning

    def __hash__(self):
        return hash(self.binning)

    def __repr__(self):
        return f"ValueBinning({self.binning!r})"
