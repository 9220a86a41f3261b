"""
Aggregation Configuration Module

Collects every algorithm knob in one place and reads overrides from
environment variables (AGGREGRAPH_*). Each instance is independent; nothing
is configured globally.
"""
import os
import logging
from dataclasses import dataclass, fields
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

ENV_PREFIX = "AGGREGRAPH_"


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _parse_optional_int(value: str) -> Optional[int]:
    value = value.strip()
    if not value or value.lower() == "none":
        return None
    return int(value)


@dataclass
class AggregationConfig:
    """Parameters for the aggregators and the cluster converter.

    Attributes:
        louvain_resolution: Louvain resolution (higher = larger communities)
        louvain_random_state: Seed for the Louvain node visiting order
        louvain_use_link_weights: Use declared link weights in Louvain
        ksnap_resolution: KSnap iteration budget
        markov_max_residual: MCL convergence threshold
        markov_inflation: MCL inflation exponent
        markov_loop_gain: MCL self-loop weight
        markov_prune_threshold: MCL pruning threshold
        markov_max_iterations: Optional MCL iteration bound
        modularity_num_workers: Worker pool size for modularity matching
        anonymize_ids: Give aggregate nodes random ids
    """
    louvain_resolution: float = 1.0
    louvain_random_state: Optional[int] = 0
    louvain_use_link_weights: bool = True
    ksnap_resolution: int = 10
    markov_max_residual: float = 0.001
    markov_inflation: float = 2.0
    markov_loop_gain: float = 1.0
    markov_prune_threshold: float = 0.001
    markov_max_iterations: Optional[int] = None
    modularity_num_workers: int = 10
    anonymize_ids: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "AggregationConfig":
        """Build a config from AGGREGRAPH_* environment variables.

        e.g. AGGREGRAPH_LOUVAIN_RESOLUTION=0.5. Values that fail to parse are
        ignored with a warning and the default is kept.
        """
        environ = os.environ if environ is None else environ
        parsers: Dict[str, Callable[[str], Any]] = {
            "louvain_resolution": float,
            "louvain_random_state": _parse_optional_int,
            "louvain_use_link_weights": _parse_bool,
            "ksnap_resolution": int,
            "markov_max_residual": float,
            "markov_inflation": float,
            "markov_loop_gain": float,
            "markov_prune_threshold": float,
            "markov_max_iterations": _parse_optional_int,
            "modularity_num_workers": int,
            "anonymize_ids": _parse_bool,
        }

        values: Dict[str, Any] = {}
        for f in fields(cls):
            key = ENV_PREFIX + f.name.upper()
            raw = environ.get(key)
            if raw is None or raw == "":
                continue
            try:
                values[f.name] = parsers[f.name](raw)
            except ValueError:
                logger.warning(f"Ignoring invalid value for {key}: {raw!r}")

        return cls(**values)

    def algorithm_kwargs(self, algorithm: str) -> Dict[str, Any]:
        """Constructor arguments for the named aggregator."""
        algorithm = algorithm.lower()
        if algorithm == "louvain":
            return {
                "resolution": self.louvain_resolution,
                "random_state": self.louvain_random_state,
                "use_link_weights": self.louvain_use_link_weights,
            }
        if algorithm in ("markov", "mcl"):
            return {
                "max_residual": self.markov_max_residual,
                "inflation": self.markov_inflation,
                "loop_gain": self.markov_loop_gain,
                "prune_threshold": self.markov_prune_threshold,
                "max_iterations": self.markov_max_iterations,
            }
        if algorithm == "ksnap":
            return {"resolution": self.ksnap_resolution}
        if algorithm == "modularity":
            return {"num_workers": self.modularity_num_workers}
        raise ValueError(f"Unknown aggregation algorithm: {algorithm}")
