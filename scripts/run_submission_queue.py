#!/usr/bin/env python3
"""Drain the submission job queue once.

Usage:
    python scripts/run_submission_queue.py [--limit N]

Runs every pending step for each submission currently waiting in the queue,
one transaction per step. Exits 0 when every submission advanced without a
system error, 1 otherwise.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from biohub.api.deps import get_pipeline_context
from biohub.clients.search import get_search_index
from biohub.clients.storage import get_object_store
from biohub.db.session import SessionLocal
from biohub.models.enums import SubmissionStatusType
from biohub.pipeline.executor import process_submission
from biohub.repositories.submission import get_current_submission_status, get_submission_job_queue


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--limit", type=int, default=None, help="Maximum submissions to process")
    args = parser.parse_args()

    context = get_pipeline_context(storage=get_object_store(), search_index=get_search_index())
    db = SessionLocal()
    try:
        queue = get_submission_job_queue(db, limit=args.limit)
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    finally:
        db.close()

    failed = 0
    for item in queue:
        results = process_submission(item.submission_id, context)
        db = SessionLocal()
        try:
            current = get_current_submission_status(db, item.submission_id)
        finally:
            db.close()
        status = current.status_type if current is not None else None
        if status == SubmissionStatusType.SYSTEM_ERROR:
            failed += 1
        print(
            f"submission_id={item.submission_id} "
            f"package_id={item.package_id} "
            f"steps={','.join(r['step'] for r in results) or '-'} "
            f"status={status.value if status else 'none'}"
        )
    print(f"processed={len(queue)} system_errors={failed}")
    return 0 if failed == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
