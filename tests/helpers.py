import numpy as np
import scipy.optimize

from diagram_distances.utils import PointSet, as_diagram_points, distance_matrix, pad_diagrams


def random_diagram(rng, n, scale=10.0):
    births = rng.uniform(0, scale, size=n)
    deaths = births + rng.uniform(0.01, scale / 2, size=n)
    return np.stack([births, deaths], axis=1)


def point_set(coords, diagonal=None):
    coords = np.asarray(coords, dtype=np.float64).reshape(-1, 2)
    if diagonal is None:
        diagonal = np.zeros(len(coords), dtype=bool)
    return PointSet(coords=coords, is_diagonal=np.asarray(diagonal, dtype=bool), ids=np.arange(len(coords)))


def padded(x, y):
    return pad_diagrams(as_diagram_points(x, "x"), as_diagram_points(y, "y"))


def scipy_wasserstein(x, y, p=1.0):
    """Reference W_p from the Hungarian solver on the padded cost matrix."""
    bidders, items = padded(x, y)
    if len(bidders) == 0:
        return 0.0
    cost = distance_matrix(bidders, items, float("inf")).numpy() ** p
    row_ind, col_ind = scipy.optimize.linear_sum_assignment(cost)
    return float(cost[row_ind, col_ind].sum() ** (1.0 / p))
