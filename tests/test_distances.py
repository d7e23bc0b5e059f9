import itertools
import math

import numpy as np
import pytest

from diagram_distances import (
    DiagramValidationError,
    bottleneck_distance,
    wasserstein_distance,
)
from diagram_distances.bottleneck import bottleneck_bisection, bottleneck_matching_distance
from diagram_distances.utils import distance_matrix

from helpers import padded, random_diagram, scipy_wasserstein


def brute_force_bottleneck(x, y):
    bidders, items = padded(x, y)
    dist = distance_matrix(bidders, items, math.inf).numpy()
    n = len(bidders)
    return min(max(dist[b, i] for b, i in enumerate(perm)) for perm in itertools.permutations(range(n)))


class Diagram:
    """Minimal diagram object: pairs indexed by homology dimension."""

    def __init__(self, *pairs):
        self.pairs = [np.asarray(p, dtype=float) for p in pairs]


def test_padded_example():
    x = [[0, 2], [0, 3]]
    y = [[0, 2]]
    # (0, 3) -> (0, 2) and (0, 2) -> diagonal beats leaving (0, 3) alone (1.5)
    assert bottleneck_distance(x, y, tol=0.0) == 1.0
    assert wasserstein_distance(x, y, p=1.0) == pytest.approx(1.5, rel=1e-4)
    assert wasserstein_distance(x, y, p=2.0) == pytest.approx(math.sqrt(2.0), rel=1e-4)


def test_point_against_empty_diagram():
    assert bottleneck_distance([[0, 1]], np.zeros((0, 2)), tol=0.0) == 0.5
    assert wasserstein_distance([[0, 1]], [], p=2.0) == pytest.approx(0.5)
    assert bottleneck_distance([], []) == 0.0
    assert wasserstein_distance([], []) == 0.0


def test_self_distance_is_zero(diagram_pair):
    x, _ = diagram_pair
    assert wasserstein_distance(x, x) == 0.0
    assert wasserstein_distance(x, x, p=2.0) == 0.0
    assert bottleneck_distance(x, x, tol=0.0) == 0.0


@pytest.mark.parametrize("p", [1.0, 2.0])
def test_wasserstein_matches_hungarian(diagram_pair, p):
    x, y = diagram_pair
    tol = 1e-4
    optimal = scipy_wasserstein(x, y, p=p)
    value = wasserstein_distance(x, y, tol=tol, p=p)
    assert optimal - 1e-9 <= value <= optimal * (1 + tol) + 1e-9


def test_symmetry(diagram_pair):
    x, y = diagram_pair
    assert bottleneck_distance(x, y, tol=0.0) == bottleneck_distance(y, x, tol=0.0)
    assert wasserstein_distance(x, y, tol=1e-5) == pytest.approx(wasserstein_distance(y, x, tol=1e-5), rel=1e-4)


def test_exact_bottleneck_matches_brute_force():
    rng = np.random.default_rng(3)
    for _ in range(5):
        x = random_diagram(rng, 3)
        y = random_diagram(rng, 3)
        assert bottleneck_distance(x, y, tol=0.0) == pytest.approx(brute_force_bottleneck(x, y), abs=0)


def test_approximate_bottleneck_within_tolerance(diagram_pair):
    x, y = diagram_pair
    exact = bottleneck_distance(x, y, tol=0.0)
    for tol in (1e-3, 0.1, 0.5):
        approx = bottleneck_distance(x, y, tol=tol)
        assert exact <= approx <= exact * (1 + tol)


def test_exact_bottleneck_is_repeatable(diagram_pair):
    x, y = diagram_pair
    values = {bottleneck_distance(x, y, tol=0.0) for _ in range(3)}
    assert len(values) == 1


def test_wasserstein_decreases_towards_bottleneck(diagram_pair):
    x, y = diagram_pair
    tol = 1e-3
    bottleneck = bottleneck_distance(x, y, tol=0.0)
    powers = [1.0, 2.0, 4.0, 8.0]
    values = [wasserstein_distance(x, y, tol=tol, p=p) for p in powers]

    for value in values:
        assert value >= bottleneck - 1e-9
    for larger, smaller in zip(values, values[1:]):
        assert smaller <= larger * (1 + tol)
    # Ratio to the bottleneck shrinks towards 1
    assert values[-1] / bottleneck <= values[0] / bottleneck
    n = len(x) + len(y)
    assert values[-1] <= n ** (1 / powers[-1]) * bottleneck * (1 + tol)


def test_large_power_redirects_to_bottleneck(diagram_pair):
    x, y = diagram_pair
    assert wasserstein_distance(x, y, tol=1e-4, p=25.0) == bottleneck_distance(x, y, tol=1e-4)


@pytest.mark.parametrize(
    "x, y, expected",
    [
        ([[0, 1e8]], [[0, 1e8 + 1e-4]], 1e-4),
        ([[0, 1000], [5, 900], [1, 2]], [[0, 1000 + 1e-9], [5, 900], [1, 2]], 1e-9),
    ],
)
def test_nearly_identical_diagrams_at_large_scale(x, y, expected):
    assert wasserstein_distance(x, y) == pytest.approx(expected, rel=1e-3)
    assert wasserstein_distance(x, y, p=2.0) == pytest.approx(expected, rel=1e-3)


def test_death_before_birth_is_rejected():
    with pytest.raises(DiagramValidationError) as excinfo:
        wasserstein_distance([[0, 1], [1, 0]], [[0, 2]])
    assert excinfo.value.argument == "x"
    assert excinfo.value.row == 1

    with pytest.raises(DiagramValidationError) as excinfo:
        bottleneck_distance([[0, 1]], [[1, 0]])
    assert excinfo.value.argument == "y"


def test_validation_can_be_disabled():
    # The reversed point is dropped like any other point with birth >= death
    assert bottleneck_distance([[1, 0], [0, 2]], [[0, 2]], tol=0.0, validate=False) == 0.0


def test_wrong_shape_is_rejected():
    with pytest.raises(DiagramValidationError):
        bottleneck_distance([[0, 1, 2]], [[0, 1]])


def test_degenerate_points_are_ignored():
    assert bottleneck_distance([[1, 1], [0, 2]], [[0, 2]], tol=0.0) == 0.0


def test_parameter_checks():
    with pytest.raises(ValueError):
        wasserstein_distance([[0, 1]], [[0, 2]], tol=0.0)
    with pytest.raises(ValueError):
        wasserstein_distance([[0, 1]], [[0, 2]], p=0.5)
    with pytest.raises(ValueError):
        bottleneck_distance([[0, 1]], [[0, 2]], tol=-1.0)


def test_diagram_objects_use_dimension():
    x = Diagram([[0, 1]], [[0, 4]])
    y = Diagram([[0, 1]], [[1, 3]])
    assert bottleneck_distance(x, y, tol=0.0, dimension=0) == 0.0
    assert bottleneck_distance(x, y, tol=0.0, dimension=1) == 1.0
    # Missing dimension is an empty diagram
    assert bottleneck_distance(x, y, tol=0.0, dimension=2) == 0.0
    mapping = {0: [[0, 1]], 1: [[0, 4]]}
    assert wasserstein_distance(mapping, y, dimension=1) == pytest.approx(1.0)


def test_essential_points():
    x = [[0, 1], [0, math.inf]]
    y = [[0, 1], [1, math.inf]]
    assert bottleneck_distance(x, y, tol=0.0) == 1.0
    assert wasserstein_distance(x, y) == pytest.approx(1.0)
    assert bottleneck_distance(x, [[0, 1]]) == math.inf
    assert wasserstein_distance(x, [[0, 1]]) == math.inf


def test_bottleneck_matching_ids():
    bidders, items = padded([[0, 2], [0, 3]], [[0, 2]])
    value, matching = bottleneck_matching_distance(bidders, items, tol=0.0, return_matching=True)
    assert value == 1.0
    # (0, 3) has to take (0, 2); the rest pair up with diagonal points
    assert (1, 0) in matching
    assert sorted(b for b, _ in matching) == [-1, 0, 1]
    assert sorted(i for _, i in matching) == [-2, -1, 0]


def test_bisection_respects_bounds():
    dist = np.array([[1.0, 4.0], [3.0, 2.0]])
    assert bottleneck_bisection(dist)[0] == 2.0
    with pytest.raises(ValueError):
        bottleneck_bisection(dist, upper=1.5)
