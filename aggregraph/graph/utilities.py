"""Pre/post-processing helpers shared by the aggregators."""

from __future__ import annotations

import logging
import time
from typing import Dict, Iterable, List, Optional, Tuple

import networkx as nx

from .model import Link, Node
from .quantized_range import QuantizedRange

logger = logging.getLogger(__name__)

DEFAULT_NUM_WEIGHT_BINS = 5


def find_subgraphs(
    node_map: Dict[str, Node],
    link_map: Dict[str, Link],
) -> List[Tuple[Dict[str, Node], Dict[str, Link]]]:
    """Split a graph into its connected components.

    Links are treated as undirected; links with a dangling endpoint are
    ignored. When the graph is already connected the original maps are
    returned as the single entry.

    Returns:
        List of (node_map, link_map) pairs, one per component
    """
    start = time.perf_counter()

    G = nx.MultiGraph()
    G.add_nodes_from(node_map.keys())
    for key, link in link_map.items():
        if link.source_id in node_map and link.target_id in node_map:
            G.add_edge(link.source_id, link.target_id, key=key)

    components = list(nx.connected_components(G))
    logger.debug(f"Connectivity calculation found {len(components)} components "
                 f"in {time.perf_counter() - start:.3f}s")

    if len(components) <= 1:
        return [(node_map, link_map)]

    subgraphs = []
    for component in components:
        sub_nodes = {node_id: node_map[node_id] for node_id in component}
        sub_links = {
            key: link_map[key]
            for _, _, key in G.subgraph(component).edges(keys=True)
        }
        subgraphs.append((sub_nodes, sub_links))

    return subgraphs


def get_neighbors(node: Node, node_map: Dict[str, Node]) -> List[Node]:
    """Return the distinct neighbors of a node, found through its incident links.

    Neighbors missing from node_map are skipped.
    """
    neighbors: Dict[str, Node] = {}
    for link in node.incident_links:
        other_id = link.source_id if link.source_id != node.id else link.target_id
        neighbor = node_map.get(other_id)
        if neighbor is not None:
            neighbors[neighbor.id] = neighbor
    return list(neighbors.values())


def get_total_degree(node: Node, link_map: Dict[str, Link]) -> int:
    """Count the links touching a node, ignoring self-loops."""
    degree = 0
    for link in link_map.values():
        if link.source_id == link.target_id:
            continue
        if link.source_id == node.id or link.target_id == node.id:
            degree += 1
    return degree


def update_node_weight_ranges(
    weight_ranges: Optional[Dict[str, QuantizedRange]],
    nodes: Iterable[Node],
    num_bands: int = DEFAULT_NUM_WEIGHT_BINS,
) -> Dict[str, QuantizedRange]:
    """Expand (creating if needed) one weight range per node type.

    Args:
        weight_ranges: Existing ranges to update, or None to start fresh
        nodes: Nodes whose weights should fall inside the ranges
        num_bands: Band count for newly created ranges

    Returns:
        The updated mapping (the same object when one was supplied)
    """
    if weight_ranges is None:
        weight_ranges = {}

    for node in nodes:
        weight_range = weight_ranges.get(node.type)
        if weight_range is None:
            weight_range = weight_ranges[node.type] = QuantizedRange(num_bands)
        weight_range.expand(node.weight)

    return weight_ranges
