"""Conversion of a cluster partition into a summary graph."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set

from ..graph.model import AggregateLink, AggregateNode, GraphNode, Link, Node
from ..graph.quantized_range import QuantizedRange
from ..graph.utilities import DEFAULT_NUM_WEIGHT_BINS, update_node_weight_ranges

logger = logging.getLogger(__name__)


@dataclass
class AggregationResult:
    """Summary graph produced by a ClusterConverter."""

    nodes: Dict[str, GraphNode]
    links: Dict[str, Link]
    node_weight_ranges: Dict[str, QuantizedRange]
    link_weight_ranges: Optional[Dict[str, QuantizedRange]] = None
    max_num_members: int = field(init=False)

    def __post_init__(self):
        self.max_num_members = max([1] + [node.num_members for node in self.nodes.values()])

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "nodes": [node.to_dict() for node in self.nodes.values()],
            "links": [link.to_dict() for link in self.links.values()],
            "max_num_members": self.max_num_members,
        }


def _leaf_ids(node: GraphNode) -> Set[str]:
    match node:
        case AggregateNode(member_ids=ids) if ids:
            return set(ids)
        case _:
            return {node.id}


def _top_member(node: GraphNode) -> Node:
    match node:
        case AggregateNode(top_member=top):
            return top
        case _:
            return node


def _leaf_weights(node: GraphNode) -> Dict[str, float]:
    match node:
        case AggregateNode(member_weights=weights) if weights:
            return weights
        case _:
            return {node.id: node.weight}


def _leaf_labels(node: GraphNode) -> Dict[str, str]:
    match node:
        case AggregateNode(member_labels=labels) if labels:
            return labels
        case _:
            return {node.id: node.display_label}


class ClusterConverter:
    """Turns a collection of node clusters into aggregate nodes and links.

    Only nodes of the same type are merged: each cluster is first split by
    node type, single-node subsets pass through unchanged and larger subsets
    become one AggregateNode. Links are remapped onto the resulting nodes and
    collapsed into AggregateLinks.

    The converter keeps no state between calls other than the weight ranges,
    which callers may reuse to keep histogram bands stable.
    """

    def __init__(
        self,
        node_map: Dict[str, GraphNode],
        link_map: Dict[str, Link],
        node_weight_ranges: Optional[Dict[str, QuantizedRange]] = None,
        anonymize_ids: bool = False,
    ):
        """Initialize the converter.

        Args:
            node_map: Every node of the graph being aggregated
            link_map: Every link of the graph being aggregated
            node_weight_ranges: Per-type weight ranges; computed from node_map
                when not supplied
            anonymize_ids: Give aggregates random ids instead of their
                comma-joined member ids
        """
        self.node_map = node_map
        self.link_map = link_map
        if node_weight_ranges is None:
            node_weight_ranges = update_node_weight_ranges(None, node_map.values())
        self.node_weight_ranges = node_weight_ranges
        self.anonymize_ids = anonymize_ids

    def convert_cluster_set(self, clusters: Iterable[Iterable[GraphNode]]) -> AggregationResult:
        """Convert a partition into a summary graph.

        Args:
            clusters: Node clusters, typically an aggregator's cluster set

        Returns:
            AggregationResult with the summary nodes and links
        """
        aggregated_nodes: Dict[str, GraphNode] = {}
        node_to_result: Dict[str, str] = {}

        for cluster in clusters:
            typed_sets: Dict[str, List[GraphNode]] = {}
            for node in cluster:
                typed_sets.setdefault(node.type, []).append(node)

            for node_type, members in typed_sets.items():
                if len(members) == 1:
                    node = members[0]
                    aggregated_nodes[node.id] = node
                    node_to_result[node.id] = node.id
                    continue

                aggregate = self.aggregate_members(node_type, members)
                aggregated_nodes[aggregate.id] = aggregate
                for node in members:
                    node_to_result[node.id] = aggregate.id

        # nodes outside every cluster pass through
        for node in self.node_map.values():
            if node.id not in node_to_result:
                node_to_result[node.id] = node.id
                aggregated_nodes[node.id] = node

        aggregated_links: Dict[str, Link] = {}
        for link in self.link_map.values():
            source = node_to_result.get(link.source_id)
            target = node_to_result.get(link.target_id)
            if not source or not target or source == target:
                continue

            link_id = f"{source}_{target}"
            existing = aggregated_links.get(link_id)
            if existing is not None:
                existing.accumulate(link.weight, link.num_members)
                continue
            aggregated_links[link_id] = AggregateLink(
                id=link_id,
                source_id=source,
                target_id=target,
                weight=link.weight,
                num_members=link.num_members,
            )

        logger.debug(f"Converted {len(self.node_map)} nodes into {len(aggregated_nodes)} "
                     f"and {len(self.link_map)} links into {len(aggregated_links)}")

        return AggregationResult(
            nodes=aggregated_nodes,
            links=aggregated_links,
            node_weight_ranges=self.node_weight_ranges,
        )

    def aggregate_members(self, node_type: str, members: List[GraphNode]) -> AggregateNode:
        """Build one AggregateNode from two or more same-typed members.

        Nested aggregates are unwrapped: their leaf ids, weights and labels
        are merged instead of the aggregate itself.
        """
        weight_range = self._weight_range(node_type, members)
        weight_bins = [0] * len(weight_range.bands)

        member_ids: Set[str] = set()
        member_weights: Dict[str, float] = {}
        member_labels: Dict[str, str] = {}
        num_members = 0
        weight = 0.0
        top_member: Optional[Node] = None

        for node in members:
            member_ids |= _leaf_ids(node)
            num_members += node.num_members

            candidate = _top_member(node)
            if top_member is None or candidate.weight > top_member.weight:
                top_member = candidate

            leaf_weights = _leaf_weights(node)
            for leaf_weight in leaf_weights.values():
                weight += leaf_weight
                weight_bins[weight_range.band_index(leaf_weight)] += 1
            member_weights.update(leaf_weights)
            member_labels.update(_leaf_labels(node))

        if self.anonymize_ids:
            aggregate_id = str(uuid.uuid4())
        else:
            aggregate_id = ",".join(node.id for node in members)

        return AggregateNode(
            id=aggregate_id,
            type=node_type,
            weight=weight,
            num_members=num_members,
            label=f"{top_member.display_label} +{num_members - 1}",
            member_ids=frozenset(member_ids),
            member_weights=member_weights,
            member_labels=member_labels,
            top_member=top_member,
            weight_dist=tuple(weight_bins),
        )

    def _weight_range(self, node_type: str, members: List[GraphNode]) -> QuantizedRange:
        weight_range = self.node_weight_ranges.get(node_type)
        if weight_range is None:
            weight_range = QuantizedRange(DEFAULT_NUM_WEIGHT_BINS)
            for node in members:
                weight_range.expand(_leaf_weights(node).values())
            self.node_weight_ranges[node_type] = weight_range
        return weight_range
