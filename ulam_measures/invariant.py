"""
Invariant measure of a finite transfer operator.

The count matrix from count_transitions() is turned into a row-stochastic
matrix P. Rows without outgoing transitions (dangling bins: the trajectory
ended there, or only ever arrived there) send all their mass to one
randomly drawn visited bin, a sparse form of PageRank's dangling-node
fix. The invariant measure is the fixed point of p <- p P, found by power
iteration from the uniform distribution.

References:
    - Ulam, S. (1960). A Collection of Mathematical Problems.
    - Froyland, G. (2001). Extracting dynamical behaviour via Markov models.
    - Langville, A. & Meyer, C. (2006). Google's PageRank and Beyond.
"""

import logging
from dataclasses import dataclass

import numpy as np
from scipy import sparse
from sklearn.utils import check_random_state
from typing import Optional, Tuple


logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 1e-8
DEFAULT_MAX_ITER = 2000
DEFAULT_SEED = 42


@dataclass
class InvariantMeasureConfig:
    """Stopping rule for the power iteration."""
    tol: float = DEFAULT_TOLERANCE       # L1 change between iterates
    max_iter: int = DEFAULT_MAX_ITER

    def __post_init__(self):
        if not self.tol > 0:
            raise ValueError(f"tol must be > 0, got {self.tol}")
        if int(self.max_iter) != self.max_iter or self.max_iter < 1:
            raise ValueError(f"max_iter must be a positive int, got {self.max_iter}")
        self.max_iter = int(self.max_iter)


@dataclass
class InvariantMeasure:
    """
    Stationary distribution over visited bins.

    Attributes:
        probabilities: Nonnegative vector summing to 1.
        bins: Bin id of each entry, in visiting order.
        converged: Whether the L1 change fell below tol.
        n_iter: Number of power-iteration steps taken.
    """
    probabilities: np.ndarray
    bins: np.ndarray
    converged: bool
    n_iter: int

    def __iter__(self):
        # p, bins = measure
        return iter((self.probabilities, self.bins))


def stochastic_matrix(counts: sparse.spmatrix,
                      rng=DEFAULT_SEED) -> Tuple[sparse.csr_matrix, np.ndarray]:
    """
    Normalize a transition count matrix into a row-stochastic matrix.

    Each row is divided by its sum. A dangling row (zero sum) becomes a
    single transition of weight 1 to a visited bin drawn uniformly from the
    other n - 1 bins, so P keeps one entry per dangling row. Targets are
    drawn in increasing row order; nothing is drawn when no row dangles.

    Args:
        counts: Square sparse count matrix (n, n).
        rng: Int seed or np.random.RandomState. None means DEFAULT_SEED,
            never the global numpy generator.

    Returns:
        Tuple of (P, dangling) where P is CSR with unit row sums and
        dangling is a boolean mask of the rows that were replaced.
    """
    counts = sparse.csr_matrix(counts, dtype=float)
    n = counts.shape[0]
    if counts.shape != (n, n):
        raise ValueError(f"Count matrix must be square, got {counts.shape}")
    if n == 0:
        return counts, np.zeros(0, dtype=bool)

    row_sums = np.asarray(counts.sum(axis=1)).ravel()
    dangling = row_sums == 0

    inv = np.zeros(n)
    inv[~dangling] = 1.0 / row_sums[~dangling]
    P = sparse.diags(inv) @ counts

    n_dangling = int(dangling.sum())
    if n_dangling:
        rows = np.flatnonzero(dangling)
        if n > 1:
            random_state = check_random_state(DEFAULT_SEED if rng is None else rng)
            targets = random_state.randint(n - 1, size=n_dangling)
            # skip over the row itself
            targets[targets >= rows] += 1
        else:
            targets = rows
        P = P + sparse.csr_matrix((np.ones(n_dangling), (rows, targets)), shape=(n, n))

    return sparse.csr_matrix(P), dangling


def power_iteration(P: sparse.spmatrix,
                    tol: float = DEFAULT_TOLERANCE,
                    max_iter: int = DEFAULT_MAX_ITER) -> Tuple[np.ndarray, bool, int]:
    """
    Left fixed point of a row-stochastic matrix by power iteration.

    Starts from the uniform distribution and repeats p <- p P until the L1
    change drops below `tol` or `max_iter` steps have been taken. The last
    iterate is returned either way; check the `converged` flag.

    Args:
        P: Row-stochastic matrix (n, n).
        tol: L1 convergence tolerance.
        max_iter: Maximum number of iterations.

    Returns:
        Tuple of (p, converged, n_iter) with p summing to 1.
    """
    n = P.shape[0]
    if n == 0:
        raise ValueError("Cannot compute an invariant measure over zero bins")
    if max_iter < 1:
        raise ValueError(f"max_iter must be >= 1, got {max_iter}")

    PT = sparse.csr_matrix(P).T.tocsr()
    p = np.full(n, 1.0 / n)
    converged = False
    n_iter = 0

    while n_iter < max_iter:
        n_iter += 1
        nxt = PT @ p
        delta = np.abs(nxt - p).sum()
        p = nxt
        if delta < tol:
            converged = True
            break

    if converged:
        logger.debug(f"Power iteration converged after {n_iter} steps over {n} bins")
    else:
        logger.warning(
            f"Power iteration did not converge in {max_iter} steps "
            f"(last L1 change {delta:.3e}, tol {tol:.1e}); returning last iterate"
        )

    p = np.clip(p, 0.0, None)
    return p / p.sum(), converged, n_iter


def solve_invariant_measure(P: sparse.spmatrix,
                            bins: np.ndarray,
                            config: Optional[InvariantMeasureConfig] = None) -> InvariantMeasure:
    """Run power_iteration on P and pair the result with its bin ids."""
    config = config if config is not None else InvariantMeasureConfig()
    if P.shape[0] != len(bins):
        raise ValueError(
            f"Operator has {P.shape[0]} rows but {len(bins)} bins were given"
        )
    p, converged, n_iter = power_iteration(P, tol=config.tol, max_iter=config.max_iter)
    return InvariantMeasure(
        probabilities=p,
        bins=np.asarray(bins),
        converged=converged,
        n_iter=n_iter,
    )
