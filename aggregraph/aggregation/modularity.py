"""Parallel greedy modularity maximization by pairwise matching."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Tuple

from .base import AggregationError, Aggregator, CancellationToken, Cluster

logger = logging.getLogger(__name__)

DEFAULT_NUM_WORKERS = 10


class ModularityAggregator(Aggregator):
    """Modularity-matching aggregation.

    Every node starts as its own super-node. Each round scores all remaining
    links in parallel, greedily builds a maximal matching from the links
    with positive modularity gain, and merges every matched pair. Rounds
    continue until no link has a positive gain or fewer than two links
    remain.

    The aggregator owns a worker pool; release it with close() or by using
    the aggregator as a context manager.
    """

    name = "modularity"

    def __init__(self, num_workers: int = DEFAULT_NUM_WORKERS):
        """Initialize modularity-matching aggregation.

        Args:
            num_workers: Size of the worker pool used for link scoring
        """
        super().__init__()
        if num_workers < 1:
            raise ValueError("num_workers must be >= 1")
        self.num_workers = num_workers
        self._executor: Optional[ThreadPoolExecutor] = ThreadPoolExecutor(
            max_workers=num_workers,
            thread_name_prefix="ModularityAggregator",
        )

        # super-node state, indexed like the input nodes
        self._members: List[Cluster] = []
        self._volume: List[int] = []
        self._neighbor_counts: List[Dict[int, int]] = []

    @property
    def closed(self) -> bool:
        return self._executor is None

    def close(self) -> None:
        """Shut the worker pool down. Safe to call more than once."""
        if self._executor is not None:
            logger.debug("ModularityAggregator thread pool starting shutdown")
            self._executor.shutdown(wait=True)
            self._executor = None

    def _aggregate(self, token: CancellationToken) -> List[Cluster]:
        if self._executor is None:
            raise AggregationError("modularity aggregator has been closed")

        links = self._build_super_nodes()
        total_links = len(links)
        self._set_progress(10)

        rounds = 0
        while links:
            token.check()
            scores = self._score_links(links, total_links)
            if not any(q > 0 for q in scores):
                break

            matching = self._maximal_matching(links, scores)
            absorbed: Dict[int, int] = {}
            for source, target in matching:
                self._assimilate(source, target)
                absorbed[target] = source

            remaining = []
            for source, target in links:
                source = absorbed.get(source, source)
                target = absorbed.get(target, target)
                if source != target:
                    remaining.append((source, target))
            links = remaining

            rounds += 1
            logger.debug(f"Modularity round {rounds}: merged {len(matching)} pairs, "
                         f"{len(links)} links remain")
            self._set_progress(min(95, 10 + 5 * rounds))
            if len(links) < 2:
                break

        return [members for members in self._members if members]

    def _build_super_nodes(self) -> List[Tuple[int, int]]:
        nodes = list(self.node_map.values())
        index = {node.id: i for i, node in enumerate(nodes)}
        self._members = [[node] for node in nodes]
        self._volume = [0] * len(nodes)
        self._neighbor_counts = [{} for _ in nodes]

        links: List[Tuple[int, int]] = []
        for link in self._usable_links():
            source = index[link.source_id]
            target = index[link.target_id]
            if source == target:
                continue
            links.append((source, target))
            self._volume[source] += 1
            self._volume[target] += 1
            counts = self._neighbor_counts
            counts[source][target] = counts[source].get(target, 0) + 1
            counts[target][source] = counts[target].get(source, 0) + 1
        return links

    def _score_links(self, links: List[Tuple[int, int]], total_links: int) -> List[float]:
        """Score every link on the worker pool, one contiguous slice per worker."""
        size, extra = divmod(len(links), self.num_workers)
        futures = []
        start = 0
        for worker in range(self.num_workers):
            end = start + size + (1 if worker < extra else 0)
            if end > start:
                futures.append(self._executor.submit(self._score_slice, links[start:end], total_links))
            start = end

        scores: List[float] = []
        for future in futures:
            scores.extend(future.result())
        return scores

    def _score_slice(self, links: List[Tuple[int, int]], total_links: int) -> List[float]:
        # read-only over super-node state; merges happen after all slices finish
        scores = []
        for source, target in links:
            shared = self._neighbor_counts[source].get(target, 0)
            scores.append(shared - self._volume[source] * self._volume[target] / (2.0 * total_links))
        return scores

    @staticmethod
    def _maximal_matching(
        links: List[Tuple[int, int]],
        scores: List[float],
    ) -> List[Tuple[int, int]]:
        order = sorted(range(len(links)), key=lambda k: scores[k], reverse=True)
        used = set()
        matching = []
        for k in order:
            if scores[k] <= 0:
                break
            source, target = links[k]
            if source in used or target in used:
                continue
            used.add(source)
            used.add(target)
            matching.append((source, target))
        return matching

    def _assimilate(self, keep: int, absorb: int) -> None:
        """Merge super-node absorb into keep."""
        self._members[keep].extend(self._members[absorb])
        self._members[absorb] = []
        self._volume[keep] += self._volume[absorb]
        self._volume[absorb] = 0

        counts = self._neighbor_counts
        counts[keep].pop(absorb, None)
        for neighbor, count in counts[absorb].items():
            if neighbor == keep:
                continue
            counts[keep][neighbor] = counts[keep].get(neighbor, 0) + count
            moved = counts[neighbor].pop(absorb, 0)
            counts[neighbor][keep] = counts[neighbor].get(keep, 0) + moved
        counts[absorb] = {}
