
import itertools
import math
import numpy as np
import scipy.optimize
from typing import Tuple

from diagram_distances import bottleneck_distance, wasserstein_distance
from diagram_distances.utils import as_diagram_points, distance_matrix, pad_diagrams

# Colors for output
GREEN = "\033[92m"
RED = "\033[91m"
RESET = "\033[0m"
YELLOW = "\033[33m"

def log(msg, color=RESET, **kwargs):
    print(f"{color}{msg}{RESET}", **kwargs)

def padded_distances(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    bidders, items = pad_diagrams(as_diagram_points(x, "x"), as_diagram_points(y, "y"))
    return distance_matrix(bidders, items, math.inf).numpy()

def run_baseline_wasserstein(x: np.ndarray, y: np.ndarray, p: float) -> float:
    """
    Runs scipy's Hungarian solver on the padded cost matrix as ground truth.
    """
    cost = padded_distances(x, y) ** p
    if cost.size == 0:
        return 0.0
    row_ind, col_ind = scipy.optimize.linear_sum_assignment(cost)
    return float(cost[row_ind, col_ind].sum() ** (1.0 / p))

def run_baseline_bottleneck(x: np.ndarray, y: np.ndarray) -> float:
    """
    Binary search over candidate thresholds, feasibility by Hungarian
    solver on a 0/inf cost matrix.
    """
    dist = padded_distances(x, y)
    if dist.size == 0:
        return 0.0
    candidates = np.unique(dist)

    def can_match(delta):
        cost = np.where(dist <= delta, 0.0, 1.0)
        row_ind, col_ind = scipy.optimize.linear_sum_assignment(cost)
        return cost[row_ind, col_ind].sum() == 0.0

    left, right = 0, len(candidates) - 1
    while left < right:
        mid = (left + right) // 2
        if can_match(candidates[mid]):
            right = mid
        else:
            left = mid + 1
    return float(candidates[left])

def random_diagram(rng, n, scale=10.0) -> np.ndarray:
    births = rng.uniform(0, scale, size=n)
    deaths = births + rng.exponential(scale / 10, size=n)
    return np.stack([births, deaths], axis=1)

def verify_wasserstein(rng, n: int, m: int, p: float, tol: float = 1e-4) -> Tuple[bool, float]:
    x, y = random_diagram(rng, n), random_diagram(rng, m)
    expected = run_baseline_wasserstein(x, y, p)
    try:
        got = wasserstein_distance(x, y, tol=tol, p=p)
    except Exception as e:
        log(f"    [FAIL] Crash: {e}", RED)
        return False, math.nan

    # Auction never beats the optimum and stays within the relative error
    rel = (got - expected) / expected if expected > 0 else got
    ok = -1e-9 <= rel <= tol + 1e-9
    return ok, rel

def verify_bottleneck(rng, n: int, m: int, tol: float) -> Tuple[bool, float]:
    x, y = random_diagram(rng, n), random_diagram(rng, m)
    expected = run_baseline_bottleneck(x, y)
    got = bottleneck_distance(x, y, tol=tol)
    rel = (got - expected) / expected if expected > 0 else got
    ok = (got == expected) if tol == 0 else (-1e-12 <= rel <= tol)
    return ok, rel

def run_all():
    rng = np.random.default_rng(1234)
    failures = 0

    log("\n--- Testing Wasserstein (vs Hungarian) ---", YELLOW)
    for (n, m), p in itertools.product([(5, 5), (20, 15), (60, 40)], [1.0, 2.0, 3.0]):
        log(f"  n={n} m={m} p={p}...", end="")
        ok, rel = verify_wasserstein(rng, n, m, p)
        failures += not ok
        log(f" {'[PASS]' if ok else '[FAIL]'} rel.err={rel:.2e}", GREEN if ok else RED)

    log("\n--- Testing Bottleneck (vs threshold search) ---", YELLOW)
    for (n, m), tol in itertools.product([(5, 5), (20, 15), (60, 40)], [0.0, 1e-2]):
        log(f"  n={n} m={m} tol={tol}...", end="")
        ok, rel = verify_bottleneck(rng, n, m, tol)
        failures += not ok
        log(f" {'[PASS]' if ok else '[FAIL]'} rel.err={rel:.2e}", GREEN if ok else RED)

    if failures:
        log(f"\n{failures} check(s) failed", RED)
    else:
        log("\nAll checks passed", GREEN)

if __name__ == "__main__":
    run_all()
