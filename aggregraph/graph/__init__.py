"""
Graph Module

This module provides:
- Graph model (plain and aggregate nodes, links)
- Quantized weight ranges
- Aggregation utilities (subgraph splitting, neighbor lookup, weight ranges)
"""

from .model import (
    Node,
    Link,
    AggregateNode,
    AggregateLink,
    GraphNode,
    build_graph,
    graph_from_dict,
)
from .quantized_range import Band, QuantizedRange
from .utilities import (
    DEFAULT_NUM_WEIGHT_BINS,
    find_subgraphs,
    get_neighbors,
    get_total_degree,
    update_node_weight_ranges,
)

__all__ = [
    "Node",
    "Link",
    "AggregateNode",
    "AggregateLink",
    "GraphNode",
    "build_graph",
    "graph_from_dict",
    "Band",
    "QuantizedRange",
    "DEFAULT_NUM_WEIGHT_BINS",
    "find_subgraphs",
    "get_neighbors",
    "get_total_degree",
    "update_node_weight_ranges",
]
