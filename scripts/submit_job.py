#!/usr/bin/env python3
"""
Submit a batch job.

Usage:
  python3 scripts/submit_job.py HISTORICAL_BACKFILL \\
    --start 2024-01-01 --end 2024-01-31 [--priority HIGH] [--overwrite]

  python3 scripts/submit_job.py INDEX_RECALCULATION --start 2024-01-01 \\
    --end 2024-03-31 --weights '{"momentum": 0.3, "sentiment": 0.2, ...}'

  python3 scripts/submit_job.py --request request.json

Prints the submission receipt as JSON.
"""

import argparse
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Submit a sentiment batch job")
    p.add_argument("type", nargs="?", help="Job type, e.g. HISTORICAL_BACKFILL")
    p.add_argument("--request", type=Path, default=None, help="Full JSON request body")
    p.add_argument("--config", type=Path, default=None, help="YAML config file")
    p.add_argument("--start", default=None, help="dateRange.startDate (YYYY-MM-DD)")
    p.add_argument("--end", default=None, help="dateRange.endDate (YYYY-MM-DD)")
    p.add_argument("--priority", default=None, choices=["LOW", "NORMAL", "HIGH"])
    p.add_argument("--overwrite", action="store_true", help="overwriteExisting=true")
    p.add_argument("--components", nargs="*", default=None)
    p.add_argument("--validation-level", default=None, choices=["BASIC", "COMPREHENSIVE"])
    p.add_argument("--weights", default=None, help="newWeights as a JSON object")
    p.add_argument("--report-type", default=None)
    p.add_argument("--output-format", default=None, choices=["JSON", "CSV"])
    p.add_argument("--description", default=None)
    p.add_argument("--submitter", default="cli")
    return p.parse_args()


def _build_request(args: argparse.Namespace) -> dict:
    if args.request is not None:
        return json.loads(args.request.read_text())

    parameters: dict = {}
    if args.start or args.end:
        parameters["dateRange"] = {"startDate": args.start, "endDate": args.end}
    if args.priority:
        parameters["priority"] = args.priority
    if args.overwrite:
        parameters["overwriteExisting"] = True
    if args.components is not None:
        parameters["components"] = args.components
    if args.validation_level:
        parameters["validationLevel"] = args.validation_level
    if args.weights:
        parameters["newWeights"] = json.loads(args.weights)
    if args.report_type:
        parameters["reportType"] = args.report_type
    if args.output_format:
        parameters["outputFormat"] = args.output_format

    request = {"type": args.type, "parameters": parameters}
    if args.description:
        request["metadata"] = {"description": args.description}
    return request


def main() -> int:
    args = _parse_args()
    if args.type is None and args.request is None:
        print("  ERROR: give a job type or --request", file=sys.stderr)
        return 2

    from sentiment_config import get_active_config
    from sentiment_kernel.db.engine import create_tables, session_scope
    from sentiment_kernel.exceptions import ValidationError

    from sentiment_batch.orchestrator import BatchOrchestrator

    orchestrator = BatchOrchestrator.from_config(get_active_config(args.config))
    create_tables()

    try:
        with session_scope() as session:
            receipt = orchestrator.create_gateway(session).submit(
                _build_request(args), submitter=args.submitter,
            )
    except ValidationError as exc:
        print(f"  ERROR [{exc.field}]: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(receipt.to_payload(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
