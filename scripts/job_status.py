#!/usr/bin/env python3
"""
Inspect and control batch jobs.

Usage:
  python3 scripts/job_status.py show JOB_ID
  python3 scripts/job_status.py list [--status RUNNING] [--type DATA_VALIDATION] [--page 1]
  python3 scripts/job_status.py start|pause|cancel JOB_ID
"""

import argparse
import json
import sys
from pathlib import Path
from uuid import UUID

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Inspect and control sentiment batch jobs")
    p.add_argument("--config", type=Path, default=None, help="YAML config file")
    sub = p.add_subparsers(dest="command", required=True)

    show = sub.add_parser("show", help="Status of one job")
    show.add_argument("job_id", type=UUID)

    listing = sub.add_parser("list", help="List jobs")
    listing.add_argument("--status", default=None)
    listing.add_argument("--type", default=None)
    listing.add_argument("--created-by", default=None)
    listing.add_argument("--page", type=int, default=1)
    listing.add_argument("--limit", type=int, default=20)

    for name in ("start", "pause", "cancel"):
        control = sub.add_parser(name, help=f"{name.capitalize()} a job")
        control.add_argument("job_id", type=UUID)
    return p.parse_args()


def main() -> int:
    args = _parse_args()

    from sentiment_config import get_active_config
    from sentiment_kernel.db.engine import create_tables, session_scope
    from sentiment_kernel.exceptions import SentimentBatchError

    from sentiment_batch.domain.types import JobStatus, JobType
    from sentiment_batch.orchestrator import BatchOrchestrator

    orchestrator = BatchOrchestrator.from_config(get_active_config(args.config))
    create_tables()

    try:
        with session_scope() as session:
            gateway = orchestrator.create_gateway(session)
            if args.command == "show":
                payload = gateway.status(args.job_id)
            elif args.command == "list":
                page = gateway.list_jobs(
                    status=JobStatus(args.status) if args.status else None,
                    job_type=JobType(args.type) if args.type else None,
                    created_by=args.created_by,
                    page=args.page,
                    limit=args.limit,
                )
                payload = {
                    "jobs": [
                        {
                            "jobId": str(job.job_id),
                            "type": job.job_type.value,
                            "status": job.status.value,
                            "priority": job.priority.value,
                            "progressPercentage": round(job.progress_percentage, 2),
                            "createdAt": job.created_at.isoformat() if job.created_at else None,
                        }
                        for job in page.jobs
                    ],
                    "pagination": {
                        "page": page.page,
                        "limit": page.limit,
                        "total": page.total,
                        "hasNext": page.has_next,
                        "hasPrev": page.has_prev,
                    },
                }
            else:
                payload = getattr(gateway, args.command)(args.job_id).to_payload()
    except SentimentBatchError as exc:
        print(f"  ERROR [{exc.code}]: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 2

    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
