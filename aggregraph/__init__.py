"""aggregraph - graph aggregation and community detection"""
__version__ = "0.1.0a0"

# Graph model (lightweight - import directly)
from .graph.model import (
    Node,
    Link,
    AggregateNode,
    AggregateLink,
    build_graph,
    graph_from_dict,
)

# Aggregators pull in numpy/scipy/networkx.
# Keep them lazily loaded so model-only usage stays cheap.

__all__ = [
    # Graph model
    "Node",
    "Link",
    "AggregateNode",
    "AggregateLink",
    "build_graph",
    "graph_from_dict",
    # Aggregation
    "Aggregator",
    "AggregationStatus",
    "CancellationToken",
    "AggregationError",
    "GraphConsistencyError",
    "LouvainAggregator",
    "MarkovAggregator",
    "KSnapAggregator",
    "ModularityAggregator",
    "ClusterConverter",
    "AggregationResult",
    "create_aggregator",
    # Configuration
    "AggregationConfig",
]


def __getattr__(name: str):
    """Lazy loading for modules with heavy dependencies.

    Note: Imported objects are cached in globals() for subsequent access.
    """
    # Lazy loading mapping: name -> module_path
    lazy_imports = {
        "Aggregator": ".aggregation",
        "AggregationStatus": ".aggregation",
        "CancellationToken": ".aggregation",
        "AggregationError": ".aggregation",
        "GraphConsistencyError": ".aggregation",
        "LouvainAggregator": ".aggregation",
        "MarkovAggregator": ".aggregation",
        "KSnapAggregator": ".aggregation",
        "ModularityAggregator": ".aggregation",
        "ClusterConverter": ".aggregation",
        "AggregationResult": ".aggregation",
        "create_aggregator": ".aggregation",
        "QuantizedRange": ".graph",
        "find_subgraphs": ".graph",
        "AggregationConfig": ".config",
    }

    if name in lazy_imports:
        module_path = lazy_imports[name]
        import importlib
        module = importlib.import_module(module_path, __name__)
        attr = getattr(module, name)
        globals()[name] = attr
        return attr

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
