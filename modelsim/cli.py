"""Command line interface for the simulation package.

``modelsim simulate`` runs a simulation described by a YAML configuration
and ``modelsim summarize`` writes the summary of a folder of datasets.
"""

import argparse
import logging
import sys
from typing import List, Optional

from .sim.generator import simulate
from .summarize import db_summarize


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="modelsim", description="Simulate datasets from statistical models")
    parser.add_argument("--verbose", action="store_true", help="Print debug logging")
    subparsers = parser.add_subparsers(dest="command")

    # simulate subcommand
    sim_parser = subparsers.add_parser("simulate", help="Simulate a dataset from a model configuration")
    sim_parser.add_argument("--config", required=True, help="Path to the configuration YAML")
    sim_parser.add_argument(
        "--out", default=None, help="Output CSV file; if omitted the first rows are printed"
    )
    sim_parser.add_argument("--seed", type=int, default=None, help="Override the configured seed")

    # summarize subcommand
    sum_parser = subparsers.add_parser("summarize", help="Summarize the datasets inside a folder")
    sum_parser.add_argument("path", help="Folder containing pickled datasets")
    sum_parser.add_argument("--filename", default="summary-databases.txt", help="Report file to write")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 1

    if args.command == "simulate":
        data = simulate(args.config, out_path=args.out, seed=args.seed)
        print(f"Simulated {len(data)} observations with columns: {' '.join(map(str, data.columns))}")
        if args.out:
            print(f"Output saved to: {args.out}")
        else:
            print(data.head().to_string())
    elif args.command == "summarize":
        path = db_summarize(args.path, filename=args.filename)
        print(f"Summary of {path} written to {args.filename}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
