"""Aggregator construction by algorithm name."""

from typing import Optional

from ..config import AggregationConfig
from .base import Aggregator
from .ksnap import KSnapAggregator
from .louvain import LouvainAggregator
from .markov import MarkovAggregator
from .modularity import ModularityAggregator

ALGORITHMS = {
    "louvain": LouvainAggregator,
    "markov": MarkovAggregator,
    "mcl": MarkovAggregator,
    "ksnap": KSnapAggregator,
    "modularity": ModularityAggregator,
}


def create_aggregator(
    algorithm: str = "louvain",
    config: Optional[AggregationConfig] = None,
    **kwargs
) -> Aggregator:
    """Factory function to create an aggregator.

    Args:
        algorithm: Algorithm name ("louvain", "markov"/"mcl", "ksnap", "modularity")
        config: Optional config supplying the algorithm's defaults
        **kwargs: Algorithm-specific parameters, overriding the config

    Returns:
        Aggregator instance
    """
    algorithm_lower = algorithm.lower()
    aggregator_cls = ALGORITHMS.get(algorithm_lower)
    if aggregator_cls is None:
        raise ValueError(f"Unknown aggregation algorithm: {algorithm}")

    params = {}
    if config is not None:
        params.update(config.algorithm_kwargs(algorithm_lower))
    params.update(kwargs)
    return aggregator_cls(**params)
