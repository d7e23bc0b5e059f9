"""
Distances between two persistence diagrams.

A matching between diagrams D1 and D2 is a bijection of multisets where both
diagrams carry every diagonal point with infinite multiplicity. The
p-Wasserstein distance is

    W_p(D1, D2) = inf_M ( sum_{x in D1} ||x - M(x)||^p )^(1/p)

and the Bottleneck distance is its limit p -> inf,

    B(D1, D2) = inf_M sup_{x in D1} ||x - M(x)||.

The norm between points is the infinity norm. Diagrams are (k, 2) matrices
of (birth, death) pairs, or diagram objects (``.pairs`` indexed by
homology dimension, or a ``{dimension: pairs}`` mapping).
"""

import math
from typing import Any

from .auction import wasserstein_auction
from .bottleneck import bottleneck_matching_distance
from .config import DEFAULTS, AuctionParams
from .utils import DiagramPoints, as_diagram_points, essential_cost, pad_diagrams


def _bottleneck(x: DiagramPoints, y: DiagramPoints, tol: float) -> float:
    essential = essential_cost(x.essential, y.essential, power=None)
    if math.isinf(essential):
        return math.inf
    bidders, items = pad_diagrams(x, y)
    finite = bottleneck_matching_distance(bidders, items, tol=tol, internal_p=DEFAULTS.internal_p)
    return max(finite, essential)


def _wasserstein(x: DiagramPoints, y: DiagramPoints, tol: float, p: float) -> float:
    if p > DEFAULTS.max_wasserstein_power:
        # Power means this large are numerically indistinguishable from the max
        return _bottleneck(x, y, tol)

    essential = essential_cost(x.essential, y.essential, power=p)
    if math.isinf(essential):
        return math.inf
    bidders, items = pad_diagrams(x, y)
    params = AuctionParams(wasserstein_power=p, delta=tol, internal_p=DEFAULTS.internal_p)
    result = wasserstein_auction(bidders, items, params)
    return (result.cost + essential) ** (1.0 / p)


def _check_tolerance(tol: float, strict: bool):
    if tol < 0 or (strict and tol == 0):
        bound = "strictly positive" if strict else "non-negative"
        raise ValueError(f"tol must be {bound}, got {tol}")


def _check_power(p: float):
    if p < 1:
        raise ValueError(f"p must be >= 1, got {p}")


def bottleneck_distance(
    x: Any,
    y: Any,
    tol: float = DEFAULTS.tolerance,
    validate: bool = True,
    dimension: int = 0,
) -> float:
    """
    Compute the Bottleneck distance between two persistence diagrams.

    Parameters
    ----------
    x, y : array-like or diagram object
        Persistence diagrams as (n x 2) matrices of (birth, death) pairs, or
        objects exposing pairs per homology dimension.
    tol : float
        Relative error. 0 computes the exact distance.
    validate : bool
        Reject matrices containing a death prior to its birth.
    dimension : int
        Homology dimension extracted from diagram objects.

    Returns
    -------
    float
        Bottleneck distance (``inf`` if the diagrams have different numbers
        of essential points).
    """
    _check_tolerance(tol, strict=False)
    dx = as_diagram_points(x, name="x", validate=validate, dimension=dimension)
    dy = as_diagram_points(y, name="y", validate=validate, dimension=dimension)
    return _bottleneck(dx, dy, tol)


def wasserstein_distance(
    x: Any,
    y: Any,
    tol: float = DEFAULTS.tolerance,
    p: float = DEFAULTS.power,
    validate: bool = True,
    dimension: int = 0,
) -> float:
    """
    Compute the p-Wasserstein distance between two persistence diagrams.

    Parameters
    ----------
    x, y : array-like or diagram object
        See :func:`bottleneck_distance`.
    tol : float
        Relative error, strictly positive.
    p : float
        Wasserstein power (p >= 1). Powers above 20 return the Bottleneck
        distance.
    validate : bool
        Reject matrices containing a death prior to its birth.
    dimension : int
        Homology dimension extracted from diagram objects.

    Returns
    -------
    float
        Wasserstein distance.
    """
    _check_tolerance(tol, strict=p <= DEFAULTS.max_wasserstein_power)
    _check_power(p)
    dx = as_diagram_points(x, name="x", validate=validate, dimension=dimension)
    dy = as_diagram_points(y, name="y", validate=validate, dimension=dimension)
    return _wasserstein(dx, dy, tol, p)
