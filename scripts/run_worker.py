#!/usr/bin/env python3
"""
Run a batch worker until interrupted.

Each poll claims at most one job (highest priority, oldest first) and runs
it to completion, pause, or cancellation.  Several workers may share one
database; the claim is a single conditional UPDATE.

Usage:
  python3 scripts/run_worker.py [--config sets/prod.yaml] \\
    [--market-data daily_components.yaml] [--worker-id w1] \\
    [--poll-interval 5] [--once]

SIGINT / SIGTERM stop the worker after the unit in progress.
"""

import argparse
import signal
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Run a sentiment batch worker")
    p.add_argument("--config", type=Path, default=None, help="YAML config file")
    p.add_argument(
        "--market-data",
        type=Path,
        default=None,
        help="YAML file of daily components for backfills",
    )
    p.add_argument("--worker-id", default=None, help="Worker id (default: host-pid-rand)")
    p.add_argument(
        "--poll-interval",
        type=float,
        default=None,
        help="Seconds between polls (default: from config)",
    )
    p.add_argument("--once", action="store_true", help="Run a single tick and exit")
    return p.parse_args()


def main() -> int:
    args = _parse_args()

    from sentiment_config import get_active_config
    from sentiment_kernel.db.engine import create_tables
    from sentiment_kernel.exceptions import ConfigurationError
    from sentiment_kernel.logging_config import configure_logging

    from sentiment_batch.orchestrator import BatchOrchestrator
    from sentiment_batch.sources import StaticMarketDataSource

    configure_logging()
    try:
        config = get_active_config(args.config)
        market_data = (
            StaticMarketDataSource.from_file(args.market_data)
            if args.market_data
            else None
        )
    except (ConfigurationError, FileNotFoundError) as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1

    orchestrator = BatchOrchestrator.from_config(config, market_data=market_data)
    create_tables()
    worker = orchestrator.create_worker(
        worker_id=args.worker_id, poll_interval_seconds=args.poll_interval,
    )

    if args.once:
        job = worker.tick()
        if job is None:
            print("No job to run.")
        else:
            print(f"Job {job.job_id}: {job.status.value} "
                  f"({job.processed_items} processed, {job.failed_items} failed "
                  f"of {job.total_items})")
        return 0

    def _shutdown(signum, frame):
        print(f"Received signal {signum}; stopping after current unit...")
        worker.stop(timeout=0)

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    print(f"Worker {worker.worker_id} polling every "
          f"{config.worker.poll_interval_seconds if args.poll_interval is None else args.poll_interval}s")
    worker.run_forever()
    return 0


if __name__ == "__main__":
    sys.exit(main())
