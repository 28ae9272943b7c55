"""
Ulam Measures: probabilities and invariant measures on rectangular
partitions of state space.

This package discretizes D-dimensional data on axis-aligned bins and
estimates either visitation frequencies or the invariant measure of the
Ulam approximation of the transfer (Perron-Frobenius) operator.

Usage:
    from ulam_measures import TransferOperator, RectangularBinning

    to = TransferOperator(RectangularBinning(10, precise=True), rng=1234)
    probs, outcomes = to.estimate(trajectory)

    P = to.get_transfer_matrix()
    bins = to.get_visited_bins()
"""

from .binning import (
    RectangularBinning,
    FixedRectangularBinning,
    DimensionMismatchError,
    as_binning,
    as_state_space,
)
from .encoding import RectangularBinEncoding, OUT_OF_RANGE
from .transitions import TransitionCounts, count_transitions
from .invariant import (
    InvariantMeasure,
    InvariantMeasureConfig,
    stochastic_matrix,
    power_iteration,
    solve_invariant_measure,
)
from .core import (
    TransferOperator,
    TransferOperatorApproximation,
    transfer_operator,
    invariant_measure,
    transfer_operator_probabilities,
)
from .histogram import ValueBinning

__all__ = [
    'RectangularBinning',
    'FixedRectangularBinning',
    'DimensionMismatchError',
    'as_binning',
    'as_state_space',
    'RectangularBinEncoding',
    'OUT_OF_RANGE',
    'TransitionCounts',
    'count_transitions',
    'InvariantMeasure',
    'InvariantMeasureConfig',
    'stochastic_matrix',
    'power_iteration',
    'solve_invariant_measure',
    'TransferOperator',
    'TransferOperatorApproximation',
    'transfer_operator',
    'invariant_measure',
    'transfer_operator_probabilities',
    'ValueBinning',
]

__version__ = '0.1.0'
