#!/usr/bin/env python3
"""CLI interface for aggregraph - graph aggregation and community detection"""
import argparse
import json
import logging
import os
import sys
from pathlib import Path

from .aggregation import AggregationError, ClusterConverter, create_aggregator
from .config import AggregationConfig
from .graph.model import graph_from_dict
from .utils.env_loader import load_dotenv


def _read_input(source: str) -> dict:
    if source == "-":
        return json.load(sys.stdin)
    return json.loads(Path(source).read_text(encoding="utf-8"))


def main(argv=None):
    # Load local .env if present (AGGREGRAPH_* defaults)
    load_dotenv(".env", override=False)

    parser = argparse.ArgumentParser(
        description="aggregraph - summarize a graph by clustering its nodes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  aggregraph graph.json -o summary.json
  aggregraph graph.json --algorithm markov --clusters-only
  cat graph.json | aggregraph - --algorithm ksnap --resolution 20
        """
    )

    parser.add_argument(
        "input",
        type=str,
        help="Input graph JSON file ({\"nodes\": [...], \"links\": [...]}) or '-' for stdin"
    )

    parser.add_argument(
        "-o", "--output",
        type=str,
        default="-",
        help="Output JSON file (default: stdout)"
    )

    parser.add_argument(
        "--algorithm",
        type=str,
        default="louvain",
        choices=["louvain", "markov", "mcl", "ksnap", "modularity"],
        help="Aggregation algorithm (default: louvain)"
    )

    parser.add_argument(
        "--resolution",
        type=float,
        default=None,
        help="Louvain resolution, or the KSnap iteration budget"
    )

    parser.add_argument(
        "--anonymize",
        action="store_true",
        help="Give aggregate nodes random ids instead of their member ids"
    )

    parser.add_argument(
        "--clusters-only",
        action="store_true",
        help="Write the partition (lists of node ids) instead of the summary graph"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    if args.input != "-" and not Path(args.input).exists():
        print(f"Error: Input file not found: {args.input}", file=sys.stderr)
        sys.exit(1)

    try:
        node_map, link_map = graph_from_dict(_read_input(args.input))
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        print(f"Error: Invalid graph file: {e}", file=sys.stderr)
        sys.exit(1)

    config = AggregationConfig.from_env()
    overrides = {}
    if args.resolution is not None:
        if args.algorithm == "louvain":
            overrides["resolution"] = args.resolution
        elif args.algorithm == "ksnap":
            overrides["resolution"] = int(args.resolution)
        else:
            print(f"Warning: --resolution is ignored for {args.algorithm}", file=sys.stderr)

    try:
        aggregator = create_aggregator(args.algorithm, config=config, **overrides)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    with aggregator:
        aggregator.set_graph(node_map, link_map)
        if not args.clusters_only:
            aggregator.set_cluster_converter(ClusterConverter(
                node_map,
                link_map,
                anonymize_ids=args.anonymize or config.anonymize_ids,
            ))
        try:
            clusters = aggregator.run()
        except AggregationError as e:
            print(f"Error during aggregation: {e}", file=sys.stderr)
            if os.getenv("AGGREGRAPH_DEBUG", "").lower() in {"1", "true", "yes"}:
                import traceback
                traceback.print_exc()
            sys.exit(1)

    if args.clusters_only:
        output = {"clusters": [[node.id for node in cluster] for cluster in clusters]}
    else:
        output = aggregator.aggregation_result.to_dict()
    output_json = json.dumps(output, indent=2, ensure_ascii=False)

    # Write output
    if args.output == "-":
        print(output_json)
    else:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(output_json, encoding="utf-8")
        print(f"Summary written to: {output_path}", file=sys.stderr)


if __name__ == "__main__":
    main()
