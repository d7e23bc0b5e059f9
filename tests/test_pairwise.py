import numpy as np
import pytest
from scipy.spatial.distance import squareform

from diagram_distances import (
    DiagramValidationError,
    PairwiseDistances,
    bottleneck_distance,
    bottleneck_pairwise_distances,
    wasserstein_distance,
    wasserstein_pairwise_distances,
)
from diagram_distances.auction import wasserstein_auction
from diagram_distances.config import AuctionParams
from diagram_distances.errors import ConvergenceError
from diagram_distances.pairwise import condensed_index, pairwise_distances
from diagram_distances.utils import as_diagram_points, pad_diagrams

from helpers import random_diagram


@pytest.fixture
def collection(rng):
    return [random_diagram(rng, n) for n in (5, 8, 3, 6)]


def test_identical_diagrams_are_at_distance_zero():
    diagram = np.array([[0.0, 1.0], [0.5, 2.0], [1.0, 4.0]])
    for result in (
        bottleneck_pairwise_distances([diagram] * 3, tol=0.0),
        wasserstein_pairwise_distances([diagram] * 3),
    ):
        assert result.size == 3
        assert len(result.values) == 3
        assert np.all(result.values == 0.0)
    assert result.method == "wasserstein"


@pytest.mark.parametrize("method", ["bottleneck", "wasserstein"])
def test_entries_match_single_pair_calls(collection, method):
    if method == "bottleneck":
        result = bottleneck_pairwise_distances(collection, tol=0.0)
        single = lambda a, b: bottleneck_distance(a, b, tol=0.0)
    else:
        result = wasserstein_pairwise_distances(collection, p=2.0)
        single = lambda a, b: wasserstein_distance(a, b, p=2.0)

    assert result.method == method
    assert result.labels == [0, 1, 2, 3]
    n = len(collection)
    for i in range(n):
        for j in range(i + 1, n):
            assert result[i, j] == single(collection[i], collection[j])
            assert result[j, i] == result[i, j]
        assert result[i, i] == 0.0


@pytest.mark.parametrize("workers", [2, 3])
def test_output_independent_of_worker_count(collection, workers):
    sequential = wasserstein_pairwise_distances(collection, workers=1)
    parallel = wasserstein_pairwise_distances(collection, workers=workers)
    assert np.array_equal(sequential.values, parallel.values)

    sequential = bottleneck_pairwise_distances(collection, tol=0.0, workers=1)
    parallel = bottleneck_pairwise_distances(collection, tol=0.0, workers=workers)
    assert np.array_equal(sequential.values, parallel.values)


def test_to_matrix_is_symmetric(collection):
    result = bottleneck_pairwise_distances(collection, tol=0.0)
    matrix = result.to_matrix()
    assert matrix.shape == (4, 4)
    assert np.array_equal(matrix, matrix.T)
    assert np.all(np.diag(matrix) == 0.0)
    assert np.array_equal(squareform(matrix), result.values)


def test_condensed_index_matches_scipy_layout():
    n = 5
    matrix = np.zeros((n, n))
    slot = 0
    for i in range(n):
        for j in range(i + 1, n):
            assert condensed_index(n, i, j) == slot
            assert condensed_index(n, j, i) == slot
            matrix[i, j] = matrix[j, i] = slot + 1
            slot += 1
    assert np.array_equal(squareform(matrix), np.arange(1, slot + 1))
    with pytest.raises(IndexError):
        condensed_index(n, 2, 2)


def test_mapping_supplies_labels(collection):
    labelled = {name: diagram for name, diagram in zip("abcd", collection)}
    result = bottleneck_pairwise_distances(labelled)
    assert result.labels == ["a", "b", "c", "d"]
    assert result.size == 4


def test_large_power_gives_bottleneck(collection):
    result = wasserstein_pairwise_distances(collection, p=30.0, tol=1e-4)
    assert result.method == "bottleneck"
    assert np.array_equal(result.values, bottleneck_pairwise_distances(collection, tol=1e-4).values)


def test_invalid_diagram_names_its_position(collection):
    collection[2] = np.array([[0.0, 1.0], [2.0, 1.0]])
    with pytest.raises(DiagramValidationError) as excinfo:
        wasserstein_pairwise_distances(collection)
    assert excinfo.value.argument == "x[2]"
    assert excinfo.value.row == 1


def test_single_and_empty_collections():
    assert bottleneck_pairwise_distances([np.array([[0.0, 1.0]])]).values.size == 0
    empty = wasserstein_pairwise_distances([])
    assert empty.size == 0
    assert empty.to_matrix().shape == (0, 0)


def test_parameter_checks(collection):
    with pytest.raises(ValueError):
        bottleneck_pairwise_distances(collection, workers=0)
    with pytest.raises(ValueError):
        bottleneck_pairwise_distances(collection, executor="gpu")
    with pytest.raises(ValueError):
        wasserstein_pairwise_distances(collection, tol=0.0)


def test_result_size_is_checked():
    with pytest.raises(ValueError):
        PairwiseDistances(values=np.zeros(2), size=3, labels=[0, 1, 2], method="bottleneck")


def test_out_of_range_pair_is_rejected(collection):
    result = bottleneck_pairwise_distances(collection[:3])
    for key in [(99, 99), (3, 0), (-1, 1)]:
        with pytest.raises(IndexError):
            result[key]


def single_phase_wasserstein(x, y):
    bidders, items = pad_diagrams(x, y)
    return wasserstein_auction(bidders, items, AuctionParams(delta=0.0, max_num_phases=1)).distance


@pytest.mark.parametrize("workers", [1, 2])
def test_convergence_error_aborts_batch(collection, workers):
    diagrams = [as_diagram_points(d) for d in collection]
    with pytest.raises(ConvergenceError):
        pairwise_distances(diagrams, single_phase_wasserstein, workers=workers)


def test_process_executor_matches_sequential():
    rng = np.random.default_rng(5)
    small = [random_diagram(rng, n) for n in (3, 4, 2)]
    sequential = wasserstein_pairwise_distances(small, workers=1)
    parallel = wasserstein_pairwise_distances(small, workers=2, executor="process")
    assert np.array_equal(sequential.values, parallel.values)
