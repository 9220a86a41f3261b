"""Multi-level modularity optimization (Louvain method)."""

from __future__ import annotations

import logging
import random
from typing import Dict, List, Optional, Tuple

from .base import Aggregator, CancellationToken, Cluster

logger = logging.getLogger(__name__)

Adjacency = List[List[Tuple[int, float]]]


class CommunityStructure:
    """Community assignment over one level of the coarsened graph.

    Nodes and communities are plain integer indices. A community id is the
    index of the node that seeded it, so every level starts with one
    singleton community per node.

    Attributes:
        adjacency: Per node list of (neighbor, weight); self-loops carry
            the internal weight of a coarsened community
        weights: Weighted degree of every node
        community: Community id of every node
        totals: Sum of member weights per community id
        sizes: Member count per community id
    """

    def __init__(self, adjacency: Adjacency):
        self.adjacency = adjacency
        self.weights = [sum(w for _, w in edges) for edges in adjacency]
        self.community = list(range(len(adjacency)))
        self.totals = list(self.weights)
        self.sizes = [1] * len(adjacency)

    def __len__(self) -> int:
        return len(self.adjacency)

    def connections(self, node: int) -> Dict[int, float]:
        """Edge weight from node to every community it touches, in adjacency order."""
        result: Dict[int, float] = {}
        for neighbor, weight in self.adjacency[node]:
            if neighbor == node:
                continue
            community = self.community[neighbor]
            result[community] = result.get(community, 0.0) + weight
        return result

    def move(self, node: int, to: int) -> None:
        source = self.community[node]
        weight = self.weights[node]
        self.totals[source] -= weight
        self.sizes[source] -= 1
        self.totals[to] += weight
        self.sizes[to] += 1
        self.community[node] = to

    def zoom_out(self) -> Tuple[List[int], "CommunityStructure"]:
        """Collapse every community into a single node of a new level.

        Internal edges become self-loops and edges between two communities
        are summed into one edge between their super-nodes.

        Returns:
            (node -> super-node index for this level, coarsened structure)
        """
        labels: Dict[int, int] = {}
        for community in self.community:
            labels.setdefault(community, len(labels))

        merged: List[Dict[int, float]] = [{} for _ in labels]
        for node, edges in enumerate(self.adjacency):
            source = labels[self.community[node]]
            for neighbor, weight in edges:
                target = labels[self.community[neighbor]]
                merged[source][target] = merged[source].get(target, 0.0) + weight

        mapping = [labels[community] for community in self.community]
        return mapping, CommunityStructure([list(edges.items()) for edges in merged])


class LouvainAggregator(Aggregator):
    """Louvain community detection.

    Alternates a local moving phase, where nodes greedily join the
    neighboring community with the best modularity gain, with a coarsening
    phase that collapses communities into super-nodes. Stops once a local
    moving phase leaves every node in place.
    """

    name = "louvain"

    def __init__(
        self,
        resolution: float = 1.0,
        random_state: Optional[int] = 0,
        use_link_weights: bool = True,
    ):
        """Initialize Louvain aggregation.

        Args:
            resolution: Scales the edge-weight reward against the null-model
                penalty (higher = larger communities)
            random_state: Seed for the node visiting order
            use_link_weights: If False, every adjacent pair weighs 1.0
        """
        super().__init__()
        self.resolution = resolution
        self.random_state = random_state
        self.use_link_weights = use_link_weights

    def _aggregate(self, token: CancellationToken) -> List[Cluster]:
        nodes = list(self.node_map.values())
        self._set_progress(1)

        adjacency = self._build_adjacency(nodes, token)
        structure = CommunityStructure(adjacency)
        total_weight = sum(structure.weights)
        self._set_progress(10)

        if not nodes or total_weight <= 0:
            logger.debug("No weighted edges, every node forms its own community")
            return [[node] for node in nodes]

        rng = random.Random(self.random_state)

        # original node -> node index at the current level
        membership = list(range(len(nodes)))
        level = 0
        while True:
            token.check()
            if not self._move_nodes(structure, total_weight, rng, token):
                break
            mapping, structure = structure.zoom_out()
            membership = [mapping[index] for index in membership]
            level += 1
            logger.debug(f"Louvain level {level}: {len(structure)} communities")
            self._set_progress(self.percent_complete + (90 - self.percent_complete) // 2)

        self._set_progress(95)

        clusters: Dict[int, Cluster] = {}
        for node, index in zip(nodes, membership):
            token.check()
            clusters.setdefault(structure.community[index], []).append(node)

        self._set_progress(98)
        return list(clusters.values())

    def _build_adjacency(self, nodes, token: CancellationToken) -> Adjacency:
        index = {node.id: i for i, node in enumerate(nodes)}
        pair_weights: List[Dict[int, float]] = [{} for _ in nodes]

        for link in self._usable_links():
            token.check()
            source = index[link.source_id]
            target = index[link.target_id]
            if source == target:
                continue
            weight = link.weight if self.use_link_weights else 1.0
            if self.use_link_weights:
                pair_weights[source][target] = pair_weights[source].get(target, 0.0) + weight
                pair_weights[target][source] = pair_weights[target].get(source, 0.0) + weight
            else:
                pair_weights[source][target] = weight
                pair_weights[target][source] = weight

        return [list(edges.items()) for edges in pair_weights]

    def _gain(
        self,
        structure: CommunityStructure,
        node: int,
        community: int,
        edges_to: float,
        total_weight: float,
    ) -> float:
        node_weight = structure.weights[node]
        if structure.community[node] == community:
            if structure.sizes[community] == 1:
                return 0.0
            return (self.resolution * edges_to
                    - node_weight * (structure.totals[community] - node_weight) / total_weight)
        return self.resolution * edges_to - node_weight * structure.totals[community] / total_weight

    def _move_nodes(
        self,
        structure: CommunityStructure,
        total_weight: float,
        rng: random.Random,
        token: CancellationToken,
    ) -> bool:
        """Run sweeps until one makes no move. Returns True if any node moved."""
        moved_any = False
        while True:
            token.check()
            order = list(range(len(structure)))
            rng.shuffle(order)

            moved = False
            for node in order:
                current = structure.community[node]
                connections = structure.connections(node)
                # a move must beat both staying put and a zero gain
                best = max(0.0, self._gain(structure, node, current,
                                           connections.get(current, 0.0), total_weight))
                best_community = None
                for community, edges_to in connections.items():
                    if community == current:
                        continue
                    q = self._gain(structure, node, community, edges_to, total_weight)
                    if q > best:
                        best = q
                        best_community = community
                if best_community is not None:
                    structure.move(node, best_community)
                    moved = True

            if not moved:
                return moved_any
            moved_any = True
