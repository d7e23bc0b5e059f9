import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

import numpy as np
import torch

from .errors import DiagramValidationError


@dataclass
class DiagramPoints:
    """
    Finite, non-degenerate points of one diagram plus its essential points.

    ``ids`` hold the row of each point in the caller's matrix, before any
    filtering, so matchings can be reported in the caller's terms.
    """
    points: np.ndarray  # (k, 2) finite (birth, death), birth < death
    ids: np.ndarray  # (k,)
    essential: np.ndarray  # (e, 2) points with an infinite coordinate

    def __len__(self):
        return len(self.points)


@dataclass
class PointSet:
    """
    One side of an auction: normal points followed by diagonal projections.

    Diagonal points store the projection of the point they stand for and
    the id ``-1 - j`` where ``j`` is that point's row in the other diagram.
    """
    coords: np.ndarray  # (n, 2)
    is_diagonal: np.ndarray  # (n,) bool
    ids: np.ndarray  # (n,) int

    def __len__(self):
        return len(self.coords)


def get_pairs(diagram: Any, dimension: int = 0) -> np.ndarray:
    """
    Extracts the (birth, death) pairs of one homology dimension.

    Accepts either an object exposing ``pairs`` (a sequence indexed by
    dimension) or a mapping ``{dimension: array}``. A dimension the diagram
    does not have yields an empty (0, 2) array.
    """
    pairs = diagram.pairs if hasattr(diagram, "pairs") else diagram
    try:
        block = pairs[dimension]
    except (IndexError, KeyError):
        return np.zeros((0, 2))
    block = np.asarray(block, dtype=np.float64)
    if block.size == 0:
        return np.zeros((0, 2))
    return block.reshape(-1, 2)


def is_diagram_object(x: Any) -> bool:
    return hasattr(x, "pairs") or isinstance(x, Mapping)


def check_2column_matrix(x: np.ndarray, name: str = "x") -> Optional[int]:
    """
    Returns the first row whose death precedes its birth (or is NaN), else None.

    Raises DiagramValidationError when ``x`` is not a 2-column matrix.
    """
    if x.ndim != 2 or x.shape[1] != 2:
        raise DiagramValidationError(name, reason=f"must be a 2-column matrix, got shape {x.shape}")
    bad = (x[:, 1] < x[:, 0]) | np.isnan(x).any(axis=1)
    rows = np.flatnonzero(bad)
    return int(rows[0]) if rows.size else None


def as_diagram_points(x: Any, name: str = "x", validate: bool = True, dimension: int = 0) -> DiagramPoints:
    """
    Coerces ``x`` to DiagramPoints.

    Diagram objects are extracted at ``dimension`` and trusted; raw matrices
    are validated when ``validate`` is set. Points with birth >= death are
    dropped in both cases.
    """
    if is_diagram_object(x):
        matrix = get_pairs(x, dimension=dimension)
    else:
        matrix = np.asarray(x, dtype=np.float64)
        if matrix.size == 0:
            matrix = np.zeros((0, 2))
        row = check_2column_matrix(matrix, name=name)
        if validate and row is not None:
            raise DiagramValidationError(name, row=row)

    ids = np.arange(len(matrix))
    keep = matrix[:, 0] < matrix[:, 1]
    matrix, ids = matrix[keep], ids[keep]
    finite = np.isfinite(matrix).all(axis=1)
    return DiagramPoints(points=matrix[finite], ids=ids[finite], essential=matrix[~finite])


def persistence_lp(points: np.ndarray, internal_p: float) -> np.ndarray:
    """L_p distance from each (birth, death) point to its diagonal projection."""
    half = 0.5 * (points[:, 1] - points[:, 0])
    if math.isinf(internal_p):
        return half
    return half * 2.0 ** (1.0 / internal_p)


def diagonal_projection(points: np.ndarray) -> np.ndarray:
    mid = 0.5 * (points[:, 0] + points[:, 1])
    return np.stack([mid, mid], axis=1)


def pad_diagrams(x: DiagramPoints, y: DiagramPoints) -> Tuple[PointSet, PointSet]:
    """
    Balances two diagrams for the auction.

    Bidders are the points of ``x`` followed by the projections of ``y``;
    items are the points of ``y`` followed by the projections of ``x``.
    """
    bidders = PointSet(
        coords=np.concatenate([x.points, diagonal_projection(y.points)]).reshape(-1, 2),
        is_diagonal=np.concatenate([np.zeros(len(x), bool), np.ones(len(y), bool)]),
        ids=np.concatenate([x.ids, -1 - y.ids]).astype(np.int64),
    )
    items = PointSet(
        coords=np.concatenate([y.points, diagonal_projection(x.points)]).reshape(-1, 2),
        is_diagonal=np.concatenate([np.zeros(len(y), bool), np.ones(len(x), bool)]),
        ids=np.concatenate([y.ids, -1 - x.ids]).astype(np.int64),
    )
    return bidders, items


def dist_lp(a: np.ndarray, a_diagonal: bool, b: np.ndarray, b_diagonal: bool, internal_p: float) -> float:
    """
    Ground distance between two padded points.

    Two diagonal points are at distance 0; a normal point is at its
    persistence distance from any diagonal point.
    """
    if a_diagonal and b_diagonal:
        return 0.0
    if b_diagonal:
        return float(persistence_lp(a.reshape(1, 2), internal_p)[0])
    if a_diagonal:
        return float(persistence_lp(b.reshape(1, 2), internal_p)[0])
    diff = np.abs(np.asarray(a) - np.asarray(b))
    if math.isinf(internal_p):
        return float(diff.max())
    return float((diff ** internal_p).sum() ** (1.0 / internal_p))


def distance_matrix(bidders: PointSet, items: PointSet, internal_p: float) -> torch.Tensor:
    """Vectorised ``dist_lp`` over all bidder/item pairs, as a float64 tensor (n, m)."""
    a = torch.as_tensor(bidders.coords, dtype=torch.float64).reshape(-1, 2)
    b = torch.as_tensor(items.coords, dtype=torch.float64).reshape(-1, 2)
    a_diag = torch.as_tensor(bidders.is_diagonal, dtype=torch.bool)
    b_diag = torch.as_tensor(items.is_diagonal, dtype=torch.bool)

    diff = a[:, None, :] - b[None, :, :]
    if math.isinf(internal_p):
        normal = diff.abs().amax(dim=-1)
    else:
        normal = torch.linalg.vector_norm(diff, ord=internal_p, dim=-1)

    pers_a = torch.as_tensor(persistence_lp(bidders.coords.reshape(-1, 2), internal_p), dtype=torch.float64)
    pers_b = torch.as_tensor(persistence_lp(items.coords.reshape(-1, 2), internal_p), dtype=torch.float64)

    dist = torch.where(b_diag[None, :], pers_a[:, None].expand_as(normal), normal)
    dist = torch.where(a_diag[:, None], pers_b[None, :].expand_as(normal), dist)
    dist = torch.where(a_diag[:, None] & b_diag[None, :], torch.zeros_like(dist), dist)
    return dist


def essential_cost(x: np.ndarray, y: np.ndarray, power: Optional[float]) -> float:
    """
    Cost of matching the essential (infinite) points of two diagrams.

    Points are grouped by which coordinate is infinite; within a group the
    finite coordinates are matched in sorted order. Returns the sum of
    ``|difference| ** power``, or the largest difference when ``power`` is
    None (Bottleneck), and ``inf`` when group sizes differ.
    """
    def families(points):
        birth_inf = np.isinf(points[:, 0])
        death_inf = np.isinf(points[:, 1])
        return [
            points[~birth_inf & death_inf, 0],   # (b, +inf)
            points[birth_inf & ~death_inf, 1],   # (-inf, d)
            points[birth_inf & death_inf, 0],    # (-inf, +inf)
        ]

    total = 0.0
    for fx, fy in zip(families(x), families(y)):
        if len(fx) != len(fy):
            return math.inf
        if len(fx) == 0:
            continue
        diff = np.abs(np.sort(fx) - np.sort(fy))
        # (-inf, +inf) points always match at zero cost
        diff = np.nan_to_num(diff, nan=0.0)
        if power is None:
            total = max(total, float(diff.max()))
        else:
            total += float((diff ** power).sum())
    return total
