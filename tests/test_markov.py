"""Tests for Markov (MCL) aggregation and its matrix steps."""
import numpy as np
import pytest
import scipy.sparse as sp

from aggregraph.aggregation.markov import (
    MarkovAggregator,
    add_loops,
    expand,
    extract_clusters,
    inflate,
    normalize_rows,
)

from conftest import make_graph, partition_ids


def _dense(matrix):
    return np.asarray(matrix.todense())


class TestMatrixSteps:
    """Tests for the sparse matrix helpers."""

    def test_add_loops(self):
        matrix = add_loops(sp.csr_matrix((3, 3)), 1.0)
        assert np.allclose(_dense(matrix), np.eye(3))

    def test_add_loops_non_positive_gain(self):
        matrix = sp.csr_matrix(np.array([[0.0, 1.0], [1.0, 0.0]]))
        assert add_loops(matrix, 0.0) is matrix

    def test_normalize_rows(self):
        """Nonempty rows sum to one and empty rows stay empty."""
        matrix = sp.csr_matrix(np.array([[1.0, 3.0, 0.0], [0.0, 0.0, 0.0], [2.0, 2.0, 4.0]]))
        sums = _dense(normalize_rows(matrix)).sum(axis=1)
        assert sums == pytest.approx([1.0, 0.0, 1.0])

    def test_expand_squares(self):
        matrix = sp.csr_matrix(np.array([[0.5, 0.5], [1.0, 0.0]]))
        assert np.allclose(_dense(expand(matrix)), np.array([[0.75, 0.25], [0.5, 0.5]]))

    def test_inflate_keeps_rows_stochastic(self):
        """Inflation re-normalizes every nonempty row."""
        matrix = normalize_rows(sp.csr_matrix(np.array([
            [1.0, 2.0, 3.0],
            [1.0, 1.0, 0.0],
            [0.0, 0.0, 0.0],
        ])))
        inflated, residual = inflate(matrix, 2.0, 0.001)
        sums = _dense(inflated).sum(axis=1)
        assert sums == pytest.approx([1.0, 1.0, 0.0])
        assert residual > 0.0

    def test_inflate_prunes_small_entries(self):
        matrix = sp.csr_matrix(np.array([[0.99, 0.01], [0.5, 0.5]]))
        inflated, _ = inflate(matrix, 2.0, 0.001)
        assert _dense(inflated)[0, 1] == 0.0
        assert _dense(inflated)[0, 0] == pytest.approx(1.0)

    def test_inflate_converged_matrix_has_zero_residual(self):
        _, residual = inflate(sp.identity(3, format="csr"), 2.0, 0.001)
        assert residual == pytest.approx(0.0)

    def test_inflate_all_empty(self):
        _, residual = inflate(sp.csr_matrix((2, 2)), 2.0, 0.001)
        assert residual == 0.0

    def test_extract_clusters_transitive(self):
        """0-1 and 1-2 entries chain into one cluster; 3 stays alone."""
        matrix = sp.csr_matrix(np.array([
            [1.0, 1.0, 0.0, 0.0],
            [0.0, 1.0, 0.0, 0.0],
            [0.0, 1.0, 1.0, 0.0],
            [0.0, 0.0, 0.0, 1.0],
        ]))
        assert extract_clusters(matrix) == [[0, 1, 2], [3]]

    def test_extract_clusters_merges_groups(self):
        matrix = sp.csr_matrix(np.array([
            [0.0, 1.0, 0.0, 0.0],
            [0.0, 0.0, 0.0, 0.0],
            [0.0, 0.0, 0.0, 1.0],
            [0.0, 1.0, 0.0, 0.0],
        ]))
        assert extract_clusters(matrix) == [[0, 1, 2, 3]]


class TestMarkovAggregator:
    """Tests for MarkovAggregator."""

    def test_two_triangles(self, two_triangles):
        node_map, link_map = two_triangles
        aggregator = MarkovAggregator()
        aggregator.set_graph(node_map, link_map)
        clusters = aggregator.run()
        assert partition_ids(clusters) == {frozenset("abc"), frozenset("def")}

    def test_isolated_node_gets_own_cluster(self):
        node_map, link_map = make_graph(
            [("a", "T", 1.0), ("b", "T", 1.0), ("c", "T", 1.0)],
            [("a", "b")],
        )
        aggregator = MarkovAggregator()
        aggregator.set_graph(node_map, link_map)
        clusters = aggregator.run()
        assert partition_ids(clusters) == {frozenset("ab"), frozenset("c")}

    def test_empty_graph(self, empty_graph):
        aggregator = MarkovAggregator()
        aggregator.set_graph(*empty_graph)
        assert aggregator.run() == []

    def test_max_iterations_bound(self, bridged_triangles, caplog):
        """An iteration bound stops the loop with a warning."""
        node_map, link_map = bridged_triangles
        aggregator = MarkovAggregator(max_iterations=0)
        aggregator.set_graph(node_map, link_map)
        with caplog.at_level("WARNING"):
            clusters = aggregator.run()
        assert "without converging" in caplog.text
        assert sum(len(cluster) for cluster in clusters) == len(node_map)
