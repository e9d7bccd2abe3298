"""Lightweight CLI helpers for inspecting and nudging the job outbox."""
from __future__ import annotations

import argparse
from typing import Optional

from jobs.queue import JobQueue
from services.quota import change_plan, reset_monthly_usage
from storage.jobs import recent_jobs
from storage.sqlite import get_conn


def tail_jobs(limit: int = 20, status: Optional[str] = None) -> None:
    with get_conn() as conn:
        jobs = recent_jobs(conn, limit=limit, status=status)
    for job in jobs:
        print(
            f"[{job.updated_at}] {job.job_id} {job.job_type} -> {job.status} attempts={job.attempts} error={job.last_error or '-'}"
        )


def requeue_pending(older_than_s: int = 0) -> None:
    sent = JobQueue().redispatch_pending(older_than_s=older_than_s)
    print(f"redispatched {len(sent)} job(s)")


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--tail-jobs", type=int, help="Show the latest jobs")
    parser.add_argument("--status", help="Filter --tail-jobs by status")
    parser.add_argument("--requeue-pending", action="store_true", help="Dispatch jobs still waiting in the outbox")
    parser.add_argument("--reset-usage", action="store_true", help="Zero every monthly usage counter")
    parser.add_argument("--set-plan", nargs=2, metavar=("USER_ID", "PLAN"), help="Apply a billing plan change")
    args = parser.parse_args()

    if args.tail_jobs:
        tail_jobs(args.tail_jobs, args.status)
    if args.requeue_pending:
        requeue_pending()
    if args.reset_usage:
        print(f"reset {reset_monthly_usage()} counter(s)")
    if args.set_plan:
        user_id, plan = args.set_plan
        print(f"{user_id} -> {change_plan(user_id, plan)}")


if __name__ == "__main__":
    main()
