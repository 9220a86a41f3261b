"""Tests for KSnap aggregation."""
import pytest

from aggregraph.aggregation.ksnap import KSnapAggregator

from conftest import make_graph, partition_ids


@pytest.fixture
def star_graph():
    """Three A nodes, one of which links to the only B node."""
    return make_graph(
        [("a1", "A", 1.0), ("a2", "A", 1.0), ("a3", "A", 1.0), ("b1", "B", 1.0)],
        [("a1", "b1")],
    )


def _run(graph, resolution):
    node_map, link_map = graph
    aggregator = KSnapAggregator(resolution=resolution)
    aggregator.set_graph(node_map, link_map)
    return aggregator, aggregator.run()


class TestKSnapAggregator:
    """Tests for KSnapAggregator."""

    def test_zero_resolution_groups_by_type(self, typed_graph):
        """Without iterations the partition is exactly the type groups."""
        _, clusters = _run(typed_graph, 0)
        assert partition_ids(clusters) == {frozenset("abc"), frozenset("xy")}

    def test_negative_resolution_rejected(self):
        with pytest.raises(ValueError):
            KSnapAggregator(resolution=-1)

    def test_participation_ratio(self, star_graph):
        """Cross endpoints of a group pair over their combined size."""
        aggregator, _ = _run(star_graph, 0)
        assert aggregator.participation_ratio(0, 1) == pytest.approx(0.5)

    def test_split_along_cross_links(self, star_graph):
        """The linked A node is split off from the rest of its type."""
        _, clusters = _run(star_graph, 5)
        assert partition_ids(clusters) == {
            frozenset({"a2", "a3"}),
            frozenset({"a1"}),
            frozenset({"b1"}),
        }

    def test_splits_keep_single_type(self, typed_graph):
        """Refinement never mixes node types within a group."""
        _, clusters = _run(typed_graph, 10)
        for cluster in clusters:
            assert len({node.type for node in cluster}) == 1

    def test_partition_covers_every_node(self, typed_graph):
        node_map, _ = typed_graph
        _, clusters = _run(typed_graph, 10)
        ids = [node.id for cluster in clusters for node in cluster]
        assert sorted(ids) == sorted(node_map)
        assert all(cluster for cluster in clusters)

    def test_interestingness_recorded_per_iteration(self, typed_graph):
        aggregator, _ = _run(typed_graph, 4)
        assert len(aggregator.interestingness) == 4
        assert all(value >= 0.0 for value in aggregator.interestingness)

    def test_strong_relationship_split(self):
        """A sparsely linked pair of groups splits off the contributing node."""
        graph = make_graph(
            [("a1", "A", 1.0), ("a2", "A", 1.0), ("a3", "A", 1.0), ("a4", "A", 1.0),
             ("b1", "B", 1.0), ("b2", "B", 1.0)],
            [("a1", "b1")],
        )
        aggregator, clusters = _run(graph, 1)
        assert aggregator.participation_ratio(0, 1) < 0.5
        assert frozenset({"a1"}) in partition_ids(clusters)

    def test_empty_graph(self, empty_graph):
        _, clusters = _run(empty_graph, 3)
        assert clusters == []
