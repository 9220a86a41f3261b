"""Properties every aggregator must satisfy, checked across all algorithms."""
import pytest

from aggregraph.aggregation import (
    AggregationStatus,
    CancellationToken,
    ClusterConverter,
    create_aggregator,
)

from conftest import make_graph

ALGORITHMS = ["louvain", "markov", "ksnap", "modularity"]


@pytest.fixture
def mixed_graph():
    """A connected graph with two types, a parallel link, a self-loop and an isolated node."""
    return make_graph(
        [
            ("p1", "Person", 1.0), ("p2", "Person", 4.0), ("p3", "Person", 2.0),
            ("p4", "Person", 1.0), ("c1", "Company", 3.0), ("c2", "Company", 1.0),
            ("loner", "Person", 1.0),
        ],
        [
            ("p1", "p2"), ("p2", "p3"), ("p3", "p1"), ("p3", "c1"), ("p4", "c1"),
            ("c1", "c2"), ("c2", "p4"), ("p1", "p2"), ("p2", "p2"),
        ],
    )


@pytest.mark.parametrize("algorithm", ALGORITHMS)
class TestPartitionProperties:

    def test_disjoint_cover(self, algorithm, mixed_graph):
        """Every node appears in exactly one nonempty cluster."""
        node_map, link_map = mixed_graph
        with create_aggregator(algorithm) as aggregator:
            aggregator.set_graph(node_map, link_map)
            clusters = aggregator.run()

        ids = [node.id for cluster in clusters for node in cluster]
        assert sorted(ids) == sorted(node_map)
        assert all(cluster for cluster in clusters)

    def test_conversion_preserves_members(self, algorithm, mixed_graph):
        """The summary graph accounts for every original node and weight."""
        node_map, link_map = mixed_graph
        with create_aggregator(algorithm) as aggregator:
            aggregator.set_graph(node_map, link_map)
            aggregator.set_cluster_converter(ClusterConverter(node_map, link_map))
            aggregator.run()
            result = aggregator.aggregation_result

        assert sum(node.num_members for node in result.nodes.values()) == len(node_map)
        assert sum(node.weight for node in result.nodes.values()) == pytest.approx(
            sum(node.weight for node in node_map.values())
        )
        for link in result.links.values():
            assert link.source_id in result.nodes
            assert link.target_id in result.nodes
            assert link.source_id != link.target_id


@pytest.mark.parametrize("algorithm", ["louvain", "markov", "modularity"])
def test_isolated_node_is_singleton(algorithm, mixed_graph):
    """Structural algorithms never attach a node that has no links."""
    node_map, link_map = mixed_graph
    with create_aggregator(algorithm) as aggregator:
        aggregator.set_graph(node_map, link_map)
        clusters = aggregator.run()
    loner = next(cluster for cluster in clusters if node_map["loner"] in cluster)
    assert len(loner) == 1


class CountdownToken(CancellationToken):
    """Cancels itself on its Nth checkpoint."""

    def __init__(self, checks_before_cancel):
        super().__init__()
        self.remaining = checks_before_cancel
        self.checks = 0

    def check(self):
        self.checks += 1
        self.remaining -= 1
        if self.remaining <= 0:
            self.cancel()
        super().check()


@pytest.mark.parametrize("algorithm", ALGORITHMS)
def test_cancelled_part_way(algorithm, bridged_triangles):
    """Cancellation raised at an algorithm checkpoint ends the run cleanly."""
    node_map, link_map = bridged_triangles
    token = CountdownToken(3)
    with create_aggregator(algorithm) as aggregator:
        aggregator.set_graph(node_map, link_map)
        aggregator.set_cluster_converter(ClusterConverter(node_map, link_map))
        assert aggregator.run(token) is None

        assert token.checks == 3
        assert aggregator.cluster_set is None
        assert aggregator.aggregation_result is None
        assert aggregator.status == AggregationStatus.WAITING

        # a fresh run on the same aggregator still completes
        clusters = aggregator.run()
    assert sum(len(cluster) for cluster in clusters) == len(node_map)
