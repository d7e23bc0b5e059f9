"""
Pairwise distances within a collection of persistence diagrams.

Every unordered pair (i, j), i < j, is an independent auction. Pairs are
spread over a pool of workers and each result lands in its own slot of a
condensed distance vector, so the output does not depend on the number of
workers.
"""

import math
import os
import time
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple

import numpy as np
from scipy.spatial.distance import squareform

from .config import DEFAULTS
from .distances import _bottleneck, _check_power, _check_tolerance, _wasserstein
from .logger import get_logger
from .utils import DiagramPoints, as_diagram_points

log = get_logger(__name__)

EXECUTORS = {
    'thread': ThreadPoolExecutor,
    'process': ProcessPoolExecutor,
}


@dataclass
class PairwiseDistances:
    """
    Symmetric distance structure over ``size`` diagrams.

    ``values`` is the condensed lower triangle in the order
    (0, 1), (0, 2), ..., (0, n-1), (1, 2), ..., the layout used by
    ``scipy.spatial.distance.squareform``.
    """
    values: np.ndarray
    size: int
    labels: List[Any]
    method: str

    def __post_init__(self):
        expected = self.size * (self.size - 1) // 2
        if len(self.values) != expected:
            raise ValueError(f"Expected {expected} distances for size {self.size}, got {len(self.values)}")

    def __len__(self):
        return self.size

    def __getitem__(self, key: Tuple[int, int]) -> float:
        i, j = key
        if not (0 <= i < self.size and 0 <= j < self.size):
            raise IndexError(f"Invalid pair ({i}, {j}) for {self.size} diagrams")
        if i == j:
            return 0.0
        return float(self.values[condensed_index(self.size, i, j)])

    def to_matrix(self) -> np.ndarray:
        return squareform(self.values, checks=False) if self.size > 1 else np.zeros((self.size, self.size))


def condensed_index(n: int, i: int, j: int) -> int:
    """Slot of pair (i, j) in a condensed vector over n items."""
    if i == j or not (0 <= i < n and 0 <= j < n):
        raise IndexError(f"Invalid pair ({i}, {j}) for {n} diagrams")
    if i > j:
        i, j = j, i
    return n * i - i * (i + 1) // 2 + (j - i - 1)


def _prepare_collection(x, validate: bool, dimension: int) -> Tuple[List[DiagramPoints], List[Any]]:
    if isinstance(x, Mapping):
        labels = list(x.keys())
        items = list(x.values())
    else:
        items = list(x)
        labels = list(range(len(items)))
    diagrams = [
        as_diagram_points(item, name=f"x[{label}]", validate=validate, dimension=dimension)
        for label, item in zip(labels, items)
    ]
    return diagrams, labels


def _pair_distance(distance_fn: Callable[[DiagramPoints, DiagramPoints], float], pair) -> float:
    x, y = pair
    return distance_fn(x, y)


def pairwise_distances(
    diagrams: Sequence[DiagramPoints],
    distance_fn: Callable[[DiagramPoints, DiagramPoints], float],
    workers: Optional[int] = 1,
    executor: str = 'thread',
) -> np.ndarray:
    """
    Fills the condensed distance vector of ``diagrams`` under ``distance_fn``.

    ``workers=1`` runs in the calling thread; ``None`` uses every CPU.
    ``distance_fn`` must be picklable when ``executor='process'``.
    """
    if workers is None:
        workers = os.cpu_count() or 1
    if workers < 1:
        raise ValueError(f"workers must be >= 1, got {workers}")
    if executor not in EXECUTORS:
        raise ValueError(f"Executor '{executor}' not available. Options: {list(EXECUTORS.keys())}")

    n = len(diagrams)
    pairs = [(i, j) for i in range(n) for j in range(i + 1, n)]
    values = np.zeros(len(pairs), dtype=np.float64)
    task = partial(_pair_distance, distance_fn)
    inputs = ((diagrams[i], diagrams[j]) for i, j in pairs)

    if workers == 1 or len(pairs) <= 1:
        for slot, pair in enumerate(inputs):
            values[slot] = task(pair)
        return values

    chunksize = max(1, math.ceil(len(pairs) / (4 * workers)))
    pool: Executor
    with EXECUTORS[executor](max_workers=workers) as pool:
        # map yields in submission order, so slot k is pair k
        for slot, value in enumerate(pool.map(task, inputs, chunksize=chunksize)):
            values[slot] = value
    return values


def _run(x, method: str, distance_fn, validate: bool, dimension: int, workers, executor) -> PairwiseDistances:
    diagrams, labels = _prepare_collection(x, validate=validate, dimension=dimension)
    start = time.perf_counter()
    log.info(
        "pairwise_distances_start",
        method=method,
        size=len(diagrams),
        workers=workers,
        executor=executor,
    )
    values = pairwise_distances(diagrams, distance_fn, workers=workers, executor=executor)
    log.info(
        "pairwise_distances_complete",
        method=method,
        size=len(diagrams),
        elapsed_s=round(time.perf_counter() - start, 4),
    )
    return PairwiseDistances(values=values, size=len(diagrams), labels=labels, method=method)


def bottleneck_pairwise_distances(
    x,
    tol: float = DEFAULTS.tolerance,
    validate: bool = True,
    dimension: int = 0,
    workers: Optional[int] = 1,
    executor: str = 'thread',
) -> PairwiseDistances:
    """
    Pairwise Bottleneck distances within a collection of persistence diagrams.

    Parameters
    ----------
    x : sequence or mapping
        Diagrams (matrices or diagram objects). A mapping supplies labels.
    tol : float
        Relative error; 0 computes exact distances.
    validate : bool
        Reject matrices containing a death prior to its birth.
    dimension : int
        Homology dimension extracted from diagram objects.
    workers : int or None
        Parallel degree; 1 runs sequentially, None uses every CPU.
    executor : {'thread', 'process'}
        Kind of worker pool.

    Returns
    -------
    PairwiseDistances
        Condensed distances with ``method == 'bottleneck'``.
    """
    _check_tolerance(tol, strict=False)
    distance_fn = partial(_bottleneck, tol=tol)
    return _run(x, 'bottleneck', distance_fn, validate, dimension, workers, executor)


def wasserstein_pairwise_distances(
    x,
    tol: float = DEFAULTS.tolerance,
    p: float = DEFAULTS.power,
    validate: bool = True,
    dimension: int = 0,
    workers: Optional[int] = 1,
    executor: str = 'thread',
) -> PairwiseDistances:
    """
    Pairwise p-Wasserstein distances within a collection of persistence diagrams.

    Same parameters as :func:`bottleneck_pairwise_distances`, plus the
    Wasserstein power ``p``. Powers above 20 produce Bottleneck distances
    and a result tagged ``method == 'bottleneck'``.
    """
    _check_power(p)
    if p > DEFAULTS.max_wasserstein_power:
        return bottleneck_pairwise_distances(
            x, tol=tol, validate=validate, dimension=dimension, workers=workers, executor=executor
        )
    _check_tolerance(tol, strict=True)
    distance_fn = partial(_wasserstein, tol=tol, p=p)
    return _run(x, 'wasserstein', distance_fn, validate, dimension, workers, executor)
