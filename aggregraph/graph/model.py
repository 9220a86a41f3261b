"""
Graph model used by every aggregator.

Two node variants exist:
- Node: a plain node supplied by the caller
- AggregateNode: a summary node produced by the cluster converter

An aggregate is not a Node subclass; code that handles both matches on the
class.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple, Union
import logging

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Node:
    """
    Plain graph node.

    Attributes:
        id: Unique identifier for the node
        type: Type tag used for homogeneous grouping
        weight: Relative importance of the node
        num_members: Number of underlying members (>= 1)
        label: Optional display label (falls back to id)
        incident_links: Links touching this node, used for neighbor lookups
    """
    id: str
    type: str
    weight: float = 1.0
    num_members: int = 1
    label: Optional[str] = None
    incident_links: List["Link"] = field(default_factory=list, repr=False)

    def __post_init__(self):
        """Validate node data."""
        if not self.id:
            raise ValueError("Node id cannot be empty")
        if self.num_members < 1:
            raise ValueError("Node num_members must be >= 1")

    @property
    def display_label(self) -> str:
        return self.label if self.label is not None else self.id

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        result = {
            "id": self.id,
            "type": self.type,
            "weight": self.weight,
            "num_members": self.num_members,
        }
        if self.label is not None:
            result["label"] = self.label
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Node":
        """Create from dictionary representation."""
        return cls(
            id=data["id"],
            type=data.get("type", ""),
            weight=float(data.get("weight", 1.0)),
            num_members=int(data.get("num_members", 1)),
            label=data.get("label"),
        )


@dataclass(eq=False)
class Link:
    """
    Graph link. Treated as undirected by the aggregators.
    """
    id: str
    source_id: str
    target_id: str
    weight: float = 1.0
    num_members: int = 1

    def __post_init__(self):
        if not self.source_id or not self.target_id:
            raise ValueError("Link source and target cannot be empty")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "source": self.source_id,
            "target": self.target_id,
            "weight": self.weight,
            "num_members": self.num_members,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Link":
        """Create from dictionary representation.

        Accepts both "source"/"target" and "source_id"/"target_id" keys. A
        missing id is derived from the endpoints.
        """
        source = data.get("source", data.get("source_id"))
        target = data.get("target", data.get("target_id"))
        return cls(
            id=data.get("id") or f"{source}_{target}",
            source_id=source,
            target_id=target,
            weight=float(data.get("weight", 1.0)),
            num_members=int(data.get("num_members", 1)),
        )


class AggregateLink(Link):
    """Link produced by the cluster converter.

    Weight and member count accumulate while the converter collapses remapped
    links onto the same summary pair.
    """

    def accumulate(self, weight: float, num_members: int) -> None:
        self.weight += weight
        self.num_members += num_members


@dataclass(frozen=True, eq=False)
class AggregateNode:
    """
    Summary node standing for a same-typed group of member nodes.

    Attributes:
        id: Comma-joined member ids, or a random id when anonymized
        type: Shared type of all members
        weight: Sum of member weights
        num_members: Total leaf members (nested aggregates unwrapped)
        label: Top member label suffixed with " +<num_members - 1>"
        member_ids: Ids of every leaf member
        member_weights: Leaf member id -> weight
        member_labels: Leaf member id -> label
        top_member: Highest-weight leaf member
        weight_dist: Leaf member count per quantized weight band
    """
    id: str
    type: str
    weight: float
    num_members: int
    label: str
    member_ids: FrozenSet[str]
    member_weights: Mapping[str, float]
    member_labels: Mapping[str, str]
    top_member: Node
    weight_dist: Tuple[int, ...]

    def __post_init__(self):
        # read-only copies, detached from the caller's dicts
        object.__setattr__(self, "member_ids", frozenset(self.member_ids))
        object.__setattr__(self, "member_weights", MappingProxyType(dict(self.member_weights)))
        object.__setattr__(self, "member_labels", MappingProxyType(dict(self.member_labels)))
        object.__setattr__(self, "weight_dist", tuple(self.weight_dist))

    @property
    def display_label(self) -> str:
        return self.label

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "type": self.type,
            "weight": self.weight,
            "num_members": self.num_members,
            "label": self.label,
            "member_ids": sorted(self.member_ids),
            "top_member": self.top_member.id,
            "weight_dist": list(self.weight_dist),
        }


GraphNode = Union[Node, AggregateNode]


def build_graph(
    nodes: Iterable[Node],
    links: Iterable[Link],
) -> Tuple[Dict[str, Node], Dict[str, Link]]:
    """Index nodes and links by id and wire each node's incident links.

    A link with a dangling endpoint stays in the link map and is attached
    only to the endpoint that exists.

    Returns:
        (node_map, link_map)
    """
    node_map: Dict[str, Node] = {}
    for node in nodes:
        node_map[node.id] = node
        node.incident_links = []

    link_map: Dict[str, Link] = {}
    for link in links:
        link_map[link.id] = link
        source = node_map.get(link.source_id)
        target = node_map.get(link.target_id)
        if source is None or target is None:
            logger.debug(f"Link {link.id} has a dangling endpoint")
        if source is not None:
            source.incident_links.append(link)
        if target is not None and target is not source:
            target.incident_links.append(link)

    return node_map, link_map


def graph_from_dict(data: Dict[str, Any]) -> Tuple[Dict[str, Node], Dict[str, Link]]:
    """Build node and link maps from a {"nodes": [...], "links": [...]} payload."""
    nodes = [Node.from_dict(n) for n in data.get("nodes", [])]
    links = [Link.from_dict(e) for e in data.get("links", data.get("edges", []))]
    return build_graph(nodes, links)
