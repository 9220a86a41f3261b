"""Attribute-driven graph summarization (k-SNAP style group splitting)."""

from __future__ import annotations

import heapq
import logging
from typing import Dict, List, Set, Tuple

from .base import Aggregator, CancellationToken, Cluster

logger = logging.getLogger(__name__)

STRONG_PARTICIPATION_THRESHOLD = 0.5


class KSnapAggregator(Aggregator):
    """KSnap aggregation.

    Nodes are first grouped by their type. Each iteration then classifies
    every pair of touching groups as a strong or weak relationship, scores
    each group by its cut size against its best-connected neighbor group,
    and splits the best-scoring group along that cut. The number of splits
    is bounded by `resolution`.
    """

    name = "ksnap"

    def __init__(self, resolution: int = 10):
        """Initialize KSnap aggregation.

        Args:
            resolution: Number of refinement iterations (0 keeps the
                type-based groups as they are)
        """
        super().__init__()
        if resolution < 0:
            raise ValueError("resolution must be >= 0")
        self.resolution = int(resolution)
        self.interestingness: List[float] = []

        self._members: List[Dict[int, None]] = []
        self._attributes: List[str] = []
        self._group_of: List[int] = []
        self._neighbors: List[List[int]] = []
        self._strong: Set[Tuple[int, int]] = set()
        self._weak: Set[Tuple[int, int]] = set()

    def _aggregate(self, token: CancellationToken) -> List[Cluster]:
        nodes = list(self.node_map.values())
        self.interestingness = []
        self._strong = set()
        self._weak = set()

        self._group_by_attribute(nodes, token)
        initial_groups = len(self._members)
        self._build_neighbors(nodes, token)
        self._set_progress(10)

        for iteration in range(self.resolution):
            token.check()
            self._strong.clear()
            scores = self._score_groups()
            if not self._split(scores):
                logger.debug(f"KSnap iteration {iteration}: no splittable group")
            t = self._interest(initial_groups, len(nodes))
            self.interestingness.append(t)
            logger.debug(f"KSnap iteration {iteration}: {len(self._members)} groups, "
                         f"interestingness {t:.4f}")
            self._set_progress(10 + 85 * (iteration + 1) // self.resolution)

        return [[nodes[i] for i in members] for members in self._members if members]

    def _group_by_attribute(self, nodes, token: CancellationToken) -> None:
        by_type: Dict[str, int] = {}
        self._members = []
        self._attributes = []
        self._group_of = []
        for i, node in enumerate(nodes):
            token.check()
            group = by_type.get(node.type)
            if group is None:
                group = by_type[node.type] = self._new_group(node.type)
            self._members[group][i] = None
            self._group_of.append(group)

    def _build_neighbors(self, nodes, token: CancellationToken) -> None:
        index = {node.id: i for i, node in enumerate(nodes)}
        self._neighbors = [[] for _ in nodes]
        for link in self._usable_links():
            token.check()
            source = index[link.source_id]
            target = index[link.target_id]
            self._neighbors[source].append(target)
            self._neighbors[target].append(source)

    def _new_group(self, attribute: str) -> int:
        self._members.append({})
        self._attributes.append(attribute)
        return len(self._members) - 1

    @staticmethod
    def _pair(a: int, b: int) -> Tuple[int, int]:
        return (a, b) if a < b else (b, a)

    def _cross_endpoints(self, start: int, end: int) -> int:
        """Count neighbor entries from members of start that lie in end."""
        count = 0
        for node in self._members[start]:
            for neighbor in self._neighbors[node]:
                if self._group_of[neighbor] == end:
                    count += 1
        return count

    def participation_ratio(self, start: int, end: int) -> float:
        """Cross-group edge endpoints of a group pair divided by their combined size."""
        size = len(self._members[start]) + len(self._members[end])
        if size == 0:
            return 0.0
        endpoints = self._cross_endpoints(start, end) + self._cross_endpoints(end, start)
        return endpoints / size

    def _score_groups(self) -> List[Tuple[int, int, Dict[int, None]]]:
        """Compute (cut size, group, split candidates) for every group."""
        scores = []
        for group, members in enumerate(self._members):
            endpoint_counts: Dict[int, int] = {}
            contributors: Dict[int, Dict[int, None]] = {}
            for node in members:
                for neighbor in self._neighbors[node]:
                    other = self._group_of[neighbor]
                    if other == group:
                        continue
                    contributors.setdefault(other, {})[node] = None
                    endpoint_counts[other] = endpoint_counts.get(other, 0) + 1

                    pair = self._pair(group, other)
                    if pair not in self._strong and pair not in self._weak:
                        if self.participation_ratio(group, other) < STRONG_PARTICIPATION_THRESHOLD:
                            self._strong.add(pair)
                        else:
                            self._weak.add(pair)

            cut_size = 0
            candidates: Dict[int, None] = {}
            best_count = -1
            for other, count in endpoint_counts.items():
                if count <= best_count:
                    continue
                best_count = count
                candidates = contributors[other]
                if self._pair(group, other) in self._strong:
                    cut_size = len(candidates)
                else:
                    cut_size = len(members) - len(candidates)
            scores.append((cut_size, group, candidates))
        return scores

    def _split(self, scores: List[Tuple[int, int, Dict[int, None]]]) -> bool:
        """Split the best-scoring splittable group. Returns False if none qualifies."""
        heap = [(-cut_size, group) for cut_size, group, _ in scores]
        heapq.heapify(heap)
        candidates = {group: split_set for _, group, split_set in scores}

        while heap:
            _, group = heapq.heappop(heap)
            members = self._members[group]
            split_set = candidates[group]
            if len(members) < 2:
                continue
            # a split must leave both sides nonempty
            if not split_set or len(split_set) == len(members):
                continue

            new_group = self._new_group(self._attributes[group])
            for node in split_set:
                del members[node]
                self._members[new_group][node] = None
                self._group_of[node] = new_group
            logger.debug(f"Split {len(split_set)} nodes from group {group} into group {new_group}")
            return True
        return False

    def _interest(self, initial_groups: int, node_count: int) -> float:
        """Diversity * coverage / conciseness of the current grouping."""
        if initial_groups == 0 or node_count == 0:
            return 0.0

        diverse = sum(1 for a, b in self._strong if self._attributes[a] != self._attributes[b])
        diversity = diverse / initial_groups

        covered = sum(self._cross_endpoints(a, b) + self._cross_endpoints(b, a)
                      for a, b in self._strong)
        coverage = covered / node_count

        conciseness = len(self._members) + len(self._strong)
        return diversity * coverage / conciseness
