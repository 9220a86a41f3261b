"""Common job shape shared by all aggregation algorithms."""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional

from ..graph.model import Link, Node

if TYPE_CHECKING:
    from .converter import AggregationResult, ClusterConverter

logger = logging.getLogger(__name__)

Cluster = List[Node]


class AggregationStatus(str, Enum):
    WAITING = "waiting"
    AGGREGATING = "aggregating"
    CANCELLING = "cancelling"


class AggregationError(Exception):
    """Raised when an aggregator is misused or its input breaks a precondition."""


class GraphConsistencyError(AggregationError):
    """Raised in strict mode when a link references a node that does not exist."""


class AggregationCancelled(Exception):
    """Raised inside a run when its cancellation token has been triggered."""


class CancellationToken:
    """Cooperative cancellation flag shared between a run and its controller."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def check(self) -> None:
        """Raise AggregationCancelled if cancellation was requested."""
        if self._event.is_set():
            raise AggregationCancelled()


class Aggregator(ABC):
    """Abstract aggregation job.

    An aggregator is configured with a graph, run once (blocking), and then
    queried for its partition and, when a converter is attached, the summary
    graph. Another thread may request cancellation at any time; the algorithm
    notices it at its next checkpoint.
    """

    name = "aggregator"

    def __init__(self):
        self.node_map: Optional[Dict[str, Node]] = None
        self.link_map: Optional[Dict[str, Link]] = None
        self.converter: Optional["ClusterConverter"] = None

        self._lock = threading.Lock()
        self._status = AggregationStatus.WAITING
        self._token: Optional[CancellationToken] = None
        self._progress = 0
        self._cluster_set: Optional[List[Cluster]] = None
        self._result: Optional["AggregationResult"] = None

    def set_graph(
        self,
        node_map: Dict[str, Node],
        link_map: Dict[str, Link],
        strict: bool = False,
    ) -> None:
        """Configure the graph to aggregate.

        Args:
            node_map: Node id -> node
            link_map: Link id -> link
            strict: Raise GraphConsistencyError for links with a dangling
                endpoint instead of skipping them
        """
        if strict:
            for link in link_map.values():
                if link.source_id not in node_map or link.target_id not in node_map:
                    raise GraphConsistencyError(
                        f"Link {link.id} references a missing node "
                        f"({link.source_id} -> {link.target_id})"
                    )
        self.node_map = node_map
        self.link_map = link_map

    def set_cluster_converter(self, converter: "ClusterConverter") -> None:
        self.converter = converter

    @property
    def status(self) -> AggregationStatus:
        return self._status

    @property
    def percent_complete(self) -> int:
        return self._progress

    @property
    def cluster_set(self) -> Optional[List[Cluster]]:
        return self._cluster_set

    @property
    def aggregation_result(self) -> Optional["AggregationResult"]:
        return self._result

    def _set_progress(self, value: int) -> None:
        self._progress = max(0, min(100, int(value)))

    def request_cancel(self) -> None:
        """Ask a running aggregation to stop. Does not block."""
        with self._lock:
            if self._status == AggregationStatus.AGGREGATING:
                self._status = AggregationStatus.CANCELLING
                if self._token is not None:
                    self._token.cancel()

    def run(self, token: Optional[CancellationToken] = None) -> Optional[List[Cluster]]:
        """Run the aggregation to completion or cancellation.

        Args:
            token: Optional externally owned cancellation token

        Returns:
            The cluster set, or None if the run was cancelled
        """
        if self.node_map is None or self.link_map is None:
            raise AggregationError("set_graph must be called before run")

        token = token or CancellationToken()
        with self._lock:
            if self._status != AggregationStatus.WAITING:
                raise AggregationError(f"{self.name} aggregator is already running")
            self._status = AggregationStatus.AGGREGATING
            self._token = token
        self._progress = 0
        self._cluster_set = None
        self._result = None

        logger.debug(f"Running {self.name} clustering algorithm on {len(self.node_map)} nodes "
                     f"and {len(self.link_map)} links...")
        start = time.perf_counter()

        try:
            token.check()
            clusters = self._aggregate(token)
            token.check()

            result = None
            if self.converter is not None:
                result = self.converter.convert_cluster_set(clusters)
            token.check()

            self._cluster_set = clusters
            self._result = result
            self._set_progress(100)
        except AggregationCancelled:
            logger.info(f"{self.name} aggregation cancelled")
            return None
        finally:
            with self._lock:
                self._status = AggregationStatus.WAITING
                self._token = None

        logger.info(f"{self.name} clustering found {len(clusters)} clusters")
        if result is not None:
            logger.debug(f"reduced {len(self.node_map)} nodes to {len(result.nodes)}")
            logger.debug(f"reduced {len(self.link_map)} links to {len(result.links)}")
        logger.debug(f"Algorithm took {time.perf_counter() - start:.3f}s")
        return clusters

    @abstractmethod
    def _aggregate(self, token: CancellationToken) -> List[Cluster]:
        """Partition self.node_map into clusters.

        Implementations call token.check() at their checkpoints.

        Returns:
            Clusters covering every node exactly once
        """
        pass

    def _usable_links(self) -> Iterator[Link]:
        """Yield links whose endpoints both exist, skipping dangling ones."""
        for link in self.link_map.values():
            if link.source_id in self.node_map and link.target_id in self.node_map:
                yield link
            else:
                logger.debug(f"Ignoring link {link.id} with dangling endpoint")

    def close(self) -> None:
        """Release resources owned by the aggregator."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
