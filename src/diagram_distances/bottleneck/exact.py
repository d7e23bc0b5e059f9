"""
Bottleneck distance by bisection over a threshold graph.

The bottleneck value of a square distance matrix is the smallest entry t
such that the bipartite graph {(b, i) : d[b, i] <= t} has a perfect
matching. Candidates are the distinct entries of the matrix; each probe is
one Hopcroft-Karp run.
"""

from typing import Optional, Tuple

import numpy as np
from scipy.sparse import csr_matrix
from scipy.sparse.csgraph import maximum_bipartite_matching


def threshold_matching(distances: np.ndarray, threshold: float) -> Optional[np.ndarray]:
    """
    Returns the item matched to each bidder using only edges with
    distance <= threshold, or None when no perfect matching exists.
    """
    graph = csr_matrix(distances <= threshold)
    matching = maximum_bipartite_matching(graph, perm_type='column')
    if (matching < 0).any():
        return None
    return matching


def matching_lower_bound(distances: np.ndarray) -> float:
    """Every bidder and every item must be matched somewhere: the largest row/column minimum."""
    if distances.size == 0:
        return 0.0
    return float(max(distances.min(axis=1).max(), distances.min(axis=0).max()))


def bottleneck_bisection(
    distances: np.ndarray,
    tol: float = 0.0,
    lower: Optional[float] = None,
    upper: Optional[float] = None,
) -> Tuple[float, np.ndarray]:
    """
    Args:
        distances: (n, n) ground distances between bidders and items.
        tol: relative error. 0 bisects down to the exact value; otherwise
            the search stops once the feasible candidate is within a
            factor (1 + tol) of the largest infeasible one.
        lower: known lower bound on the answer (defaults to matching_lower_bound).
        upper: value known to admit a perfect matching, e.g. the largest
            matched distance of an auction.

    Returns:
        (value, matching) where matching[b] is the item of bidder b.
    """
    n = distances.shape[0]
    if n == 0:
        return 0.0, np.zeros(0, dtype=np.int64)

    if lower is None:
        lower = matching_lower_bound(distances)
    candidates = np.unique(distances)
    candidates = candidates[candidates >= lower]
    if upper is not None:
        candidates = candidates[candidates <= upper]
    if candidates.size == 0:
        raise ValueError(f"No candidate distance in [{lower}, {upper}].")

    # candidates[hi] is feasible; every candidate below candidates[lo] is not
    lo, hi = 0, len(candidates) - 1
    best = threshold_matching(distances, candidates[hi])
    if best is None:
        raise ValueError(f"Upper bound {candidates[hi]} does not admit a perfect matching.")

    while lo < hi:
        if tol > 0 and candidates[hi] <= (1.0 + tol) * candidates[lo]:
            break
        mid = (lo + hi) // 2
        matching = threshold_matching(distances, candidates[mid])
        if matching is None:
            lo = mid + 1
        else:
            hi = mid
            best = matching

    return float(candidates[hi]), best
