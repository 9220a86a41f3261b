"""
Pytest configuration and shared fixtures for aggregraph tests.

This module provides small graphs that are shared across all tests.
"""
import pytest
from typing import Dict, List, Tuple

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from aggregraph.graph.model import Link, Node, build_graph


def make_graph(
    node_specs: List[Tuple[str, str, float]],
    link_specs: List[Tuple[str, str]],
) -> Tuple[Dict[str, Node], Dict[str, Link]]:
    """Build node/link maps from (id, type, weight) and (source, target) tuples."""
    nodes = [Node(id=node_id, type=node_type, weight=weight)
             for node_id, node_type, weight in node_specs]
    links = [Link(id=f"{source}-{target}-{i}", source_id=source, target_id=target)
             for i, (source, target) in enumerate(link_specs)]
    return build_graph(nodes, links)


def partition_ids(clusters) -> set:
    """Clusters as a set of frozensets of node ids, for order-free comparison."""
    return {frozenset(node.id for node in cluster) for cluster in clusters}


@pytest.fixture
def two_triangles():
    """Fixture providing two disjoint triangles a-b-c and d-e-f."""
    return make_graph(
        [(node_id, "T", 1.0) for node_id in "abcdef"],
        [("a", "b"), ("b", "c"), ("c", "a"), ("d", "e"), ("e", "f"), ("f", "d")],
    )


@pytest.fixture
def bridged_triangles():
    """Fixture providing two triangles joined by the bridge c-d."""
    return make_graph(
        [(node_id, "T", 1.0) for node_id in "abcdef"],
        [("a", "b"), ("b", "c"), ("c", "a"), ("d", "e"), ("e", "f"), ("f", "d"),
         ("c", "d")],
    )


@pytest.fixture
def typed_graph():
    """Fixture providing a graph with two node types and uneven weights."""
    return make_graph(
        [
            ("a", "Person", 1.0),
            ("b", "Person", 2.0),
            ("c", "Person", 3.0),
            ("x", "Company", 5.0),
            ("y", "Company", 1.0),
        ],
        [("a", "x"), ("b", "x"), ("c", "y"), ("a", "b"), ("x", "y")],
    )


@pytest.fixture
def empty_graph():
    """Fixture providing a graph with no nodes."""
    return {}, {}
