"""Aggregation module for graph community detection and summarization."""

from .base import (
    AggregationCancelled,
    AggregationError,
    AggregationStatus,
    Aggregator,
    CancellationToken,
    Cluster,
    GraphConsistencyError,
)
from .converter import AggregationResult, ClusterConverter
from .factory import create_aggregator
from .ksnap import KSnapAggregator
from .louvain import LouvainAggregator
from .markov import MarkovAggregator
from .modularity import ModularityAggregator

__all__ = [
    "AggregationCancelled",
    "AggregationError",
    "AggregationStatus",
    "Aggregator",
    "CancellationToken",
    "Cluster",
    "GraphConsistencyError",
    "AggregationResult",
    "ClusterConverter",
    "create_aggregator",
    "KSnapAggregator",
    "LouvainAggregator",
    "MarkovAggregator",
    "ModularityAggregator",
]
