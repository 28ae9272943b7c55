"""
Core transfer-operator pipeline.

Provides the TransferOperator estimator class and the transfer_operator() /
invariant_measure() functions: encode a trajectory on a rectangular
partition, count transitions between visited bins, normalize to a
row-stochastic operator and extract its invariant measure.
"""

import logging
from dataclasses import dataclass

import numpy as np
from scipy import sparse
from typing import Optional, Tuple

from .binning import FixedRectangularBinning, as_binning, as_state_space
from .encoding import RectangularBinEncoding
from .invariant import (
    DEFAULT_MAX_ITER,
    DEFAULT_SEED,
    DEFAULT_TOLERANCE,
    InvariantMeasure,
    InvariantMeasureConfig,
    solve_invariant_measure,
    stochastic_matrix,
)
from .transitions import MIN_POINTS, TransitionCounts, count_transitions


logger = logging.getLogger(__name__)

IMPRECISE_WARNING = "`binning.precise == False`. You may be getting points outside the binning."


@dataclass
class TransferOperatorApproximation:
    """
    Finite (Ulam) approximation of the transfer operator of one trajectory.

    Attributes:
        encoding: Encoder used to discretize the trajectory.
        transitions: Raw transition counts and bin sequence.
        transfer_matrix: Row-stochastic CSR matrix over visited bins.
        dangling: Mask of rows that were resolved by random teleportation.
    """
    encoding: RectangularBinEncoding
    transitions: TransitionCounts
    transfer_matrix: sparse.csr_matrix
    dangling: np.ndarray

    @property
    def bins(self) -> np.ndarray:
        return self.transitions.visited_bins

    @property
    def bin_sequence(self) -> np.ndarray:
        return self.transitions.bin_sequence


def _build_encoding(trajectory, binning) -> RectangularBinEncoding:
    if isinstance(binning, RectangularBinEncoding):
        return binning
    binning = as_binning(binning)
    if isinstance(binning, FixedRectangularBinning):
        return RectangularBinEncoding(binning)
    X = as_state_space(trajectory, dimension=binning.dimension)
    if X.shape[0] < MIN_POINTS:
        raise ValueError(
            f"Need at least {MIN_POINTS} trajectory points, got {X.shape[0]}"
        )
    return RectangularBinEncoding(binning, X)


def _report_misses(encoding: RectangularBinEncoding, n_missed: int, n_points: int,
                   warn_precise: bool):
    if n_missed == 0:
        return
    if not encoding.precise:
        if warn_precise:
            logger.warning(
                f"{IMPRECISE_WARNING} {n_missed} of {n_points} points fell outside all bins."
            )
    else:
        logger.info(
            f"{n_missed} of {n_points} points fell outside the binning and were skipped"
        )


def transfer_operator(trajectory,
                      binning,
                      rng=DEFAULT_SEED,
                      warn_precise: bool = True) -> TransferOperatorApproximation:
    """
    Approximate the transfer operator of a trajectory on a rectangular binning.

    Args:
        trajectory: Ordered points of shape (N, D), or (N,) for a scalar series.
        binning: RectangularBinning (edges derived from `trajectory`),
            FixedRectangularBinning, an int/float shorthand, or a prebuilt
            RectangularBinEncoding.
        rng: Random generator for dangling rows: an int seed (default
            DEFAULT_SEED) or a np.random.RandomState, which is advanced.
        warn_precise: Log a warning if an imprecise binning leaves points
            outside all bins.

    Returns:
        TransferOperatorApproximation.
    """
    encoding = _build_encoding(trajectory, binning)
    transitions = count_transitions(trajectory, encoding)

    n_points = len(transitions.bin_sequence)
    _report_misses(encoding, transitions.n_missed, n_points, warn_precise)
    if transitions.n_visited == 0:
        raise ValueError(f"None of the {n_points} trajectory points fall inside the binning")

    P, dangling = stochastic_matrix(transitions.counts, rng)
    return TransferOperatorApproximation(
        encoding=encoding,
        transitions=transitions,
        transfer_matrix=P,
        dangling=dangling,
    )


def invariant_measure(approx: TransferOperatorApproximation,
                      tol: float = DEFAULT_TOLERANCE,
                      max_iter: int = DEFAULT_MAX_ITER) -> InvariantMeasure:
    """
    Invariant measure of a (possibly cached) transfer operator approximation.

    Args:
        approx: Result of transfer_operator().
        tol: L1 convergence tolerance of the power iteration.
        max_iter: Maximum number of power iterations.

    Returns:
        InvariantMeasure over approx.bins.
    """
    config = InvariantMeasureConfig(tol=tol, max_iter=max_iter)
    return solve_invariant_measure(approx.transfer_matrix, approx.bins, config)


def transfer_operator_probabilities(trajectory,
                                    binning,
                                    rng=DEFAULT_SEED,
                                    tol: float = DEFAULT_TOLERANCE,
                                    max_iter: int = DEFAULT_MAX_ITER,
                                    warn_precise: bool = True) -> Tuple[np.ndarray, np.ndarray]:
    """
    Invariant-measure probabilities of a trajectory (functional interface).

    Args:
        trajectory: Ordered points of shape (N, D), or (N,).
        binning: Binning, shorthand, or RectangularBinEncoding.
        rng: Random generator for dangling rows.
        tol: L1 convergence tolerance.
        max_iter: Maximum number of power iterations.
        warn_precise: Warn about points outside an imprecise binning.

    Returns:
        Tuple of (probabilities, outcomes): probabilities of shape (n,)
        summing to 1, and outcomes of shape (n, D) holding the lower
        corner of each visited bin, both in order of first visit.
    """
    approx = transfer_operator(trajectory, binning, rng=rng, warn_precise=warn_precise)
    measure = invariant_measure(approx, tol=tol, max_iter=max_iter)
    return measure.probabilities, approx.encoding.decode_all(measure.bins)


class TransferOperator:
    """
    Transfer-operator probabilities estimator.

    Estimates the invariant measure of the Ulam approximation of the
    transfer (Perron-Frobenius) operator over the bins a trajectory visits.

    Args:
        binning: RectangularBinning, FixedRectangularBinning, an int/float
            shorthand for RectangularBinning, or a RectangularBinEncoding.
        rng: Random generator used for dangling rows. An int seed gives
            identical results on every call (default DEFAULT_SEED); a
            np.random.RandomState instance is shared and advanced across calls.
        tol: L1 convergence tolerance of the power iteration.
        max_iter: Maximum number of power iterations.
        warn_precise: Warn when an imprecise binning leaves points outside.

    Example:
        >>> from ulam_measures import TransferOperator, RectangularBinning
        >>> to = TransferOperator(RectangularBinning(5, precise=True), rng=1234)
        >>> probs, outcomes = to.estimate(trajectory)
    """

    def __init__(self,
                 binning,
                 rng=DEFAULT_SEED,
                 tol: float = DEFAULT_TOLERANCE,
                 max_iter: int = DEFAULT_MAX_ITER,
                 warn_precise: bool = True):
        if not isinstance(binning, RectangularBinEncoding):
            binning = as_binning(binning)
        self.binning = binning
        self.rng = rng
        self.config = InvariantMeasureConfig(tol=tol, max_iter=max_iter)
        self.warn_precise = warn_precise

        # Results (populated after fit)
        self._approx: Optional[TransferOperatorApproximation] = None
        self._measure: Optional[InvariantMeasure] = None
        self._outcomes: Optional[np.ndarray] = None

    def fit(self, trajectory) -> 'TransferOperator':
        """
        Build the operator for `trajectory` and solve for its invariant measure.

        Returns:
            self (for method chaining).
        """
        self._approx = transfer_operator(
            trajectory, self.binning, rng=self.rng, warn_precise=self.warn_precise)
        self._measure = solve_invariant_measure(
            self._approx.transfer_matrix, self._approx.bins, self.config)
        self._outcomes = self._approx.encoding.decode_all(self._measure.bins)
        return self

    def estimate(self, trajectory) -> Tuple[np.ndarray, np.ndarray]:
        """Fit and return (probabilities, outcomes)."""
        self.fit(trajectory)
        return self._measure.probabilities, self._outcomes

    def probabilities(self, trajectory) -> np.ndarray:
        """Fit and return only the probability vector."""
        return self.estimate(trajectory)[0]

    def get_probabilities(self) -> np.ndarray:
        self._check_fitted()
        return self._measure.probabilities

    def get_outcomes(self) -> np.ndarray:
        """Lower corners of the visited bins, aligned with get_probabilities()."""
        self._check_fitted()
        return self._outcomes

    def get_invariant_measure(self) -> InvariantMeasure:
        self._check_fitted()
        return self._measure

    def get_approximation(self) -> TransferOperatorApproximation:
        self._check_fitted()
        return self._approx

    def get_transfer_matrix(self) -> sparse.csr_matrix:
        self._check_fitted()
        return self._approx.transfer_matrix

    def get_bin_sequence(self) -> np.ndarray:
        self._check_fitted()
        return self._approx.bin_sequence

    def get_visited_bins(self) -> np.ndarray:
        self._check_fitted()
        return self._approx.bins

    def _check_fitted(self):
        if self._measure is None:
            raise RuntimeError("TransferOperator has not been fitted yet. Call .fit() first.")

    def __repr__(self):
        return f"TransferOperator({self.binning!r})"
