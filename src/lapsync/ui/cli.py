from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from dotenv import load_dotenv

from lapsync.api import job_payload
from lapsync.app import (
    create_plan,
    enqueue_events,
    get_job,
    import_race,
    import_race_payload,
    run_worker,
)
from lapsync.config import configure_logging
from lapsync.domain.errors import InvalidReference, LapSyncError
from lapsync.domain.references import parse_event_reference, require_race_reference

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import LiveRC race timing data")
    subparsers = parser.add_subparsers(dest="command", required=True)

    import_race_cmd = subparsers.add_parser("import-race", help="Import a single race result")
    import_race_cmd.add_argument("url", help="LiveRC JSON results URL of the race")
    import_race_cmd.add_argument(
        "--include-outlaps",
        action="store_true",
        help="Keep laps flagged as outlaps instead of skipping them",
    )

    import_file = subparsers.add_parser(
        "import-file", help="Import a race-result JSON document from disk"
    )
    import_file.add_argument("path", type=Path, help="Path to the race-result JSON document")
    import_file.add_argument(
        "--include-outlaps",
        action="store_true",
        help="Keep laps flagged as outlaps instead of skipping them",
    )

    plan = subparsers.add_parser("plan", help="Show the import plan for events")
    plan.add_argument("event_refs", nargs="+", metavar="EVENT_REF", help="Event slug or URL")

    enqueue = subparsers.add_parser(
        "enqueue", help="Plan events and queue them as one import job"
    )
    enqueue.add_argument("event_refs", nargs="+", metavar="EVENT_REF", help="Event slug or URL")

    worker = subparsers.add_parser("worker", help="Process queued import jobs")
    worker.add_argument(
        "--once",
        action="store_true",
        help="Process at most one job, then exit",
    )
    worker.add_argument(
        "--poll-interval",
        type=float,
        help="Seconds to wait between polls of an empty queue (defaults to config)",
    )

    job = subparsers.add_parser("job", help="Show the state of an import job")
    job.add_argument("job_id", help="Import job id")

    return parser.parse_args(list(argv))


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValueError(f"Invalid UUID: {value}") from exc


def _validate(args: argparse.Namespace) -> None:
    """Reject malformed input before touching the network or the database."""

    if args.command == "import-race":
        require_race_reference(args.url)
    elif args.command in {"plan", "enqueue"}:
        for ref in args.event_refs:
            parse_event_reference(ref)
    elif args.command == "worker":
        if args.poll_interval is not None and args.poll_interval <= 0:
            raise ValueError("Poll interval must be positive")
    elif args.command == "job":
        args.job_id = _parse_uuid(args.job_id)


def _load_payload(path: Path) -> dict[str, Any]:
    with path.open(encoding="utf-8") as handle:
        payload = json.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"{path} does not contain a JSON object")
    return payload


def _emit(payload: dict[str, Any]) -> None:
    sys.stdout.write(json.dumps(payload, indent=2) + "\n")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        _validate(parsed_args)
    except (ValueError, InvalidReference):
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "import-race":
            summary = import_race(parsed_args.url, include_outlaps=parsed_args.include_outlaps)
            _emit(summary.as_payload())
        elif parsed_args.command == "import-file":
            summary = import_race_payload(
                _load_payload(parsed_args.path), include_outlaps=parsed_args.include_outlaps
            )
            _emit(summary.as_payload())
        elif parsed_args.command == "plan":
            plan = create_plan(parsed_args.event_refs)
            _emit(plan.as_payload())
        elif parsed_args.command == "enqueue":
            plan, job = enqueue_events(parsed_args.event_refs)
            log.info("Plan %s queued as job %s", plan.plan_id, job.id)
            _emit({"planId": plan.plan_id, "jobId": str(job.id)})
        elif parsed_args.command == "worker":
            job = run_worker(once=parsed_args.once, poll_interval=parsed_args.poll_interval)
            if parsed_args.once:
                if job is None:
                    log.info("No queued jobs")
                else:
                    _emit(job_payload(get_job(job.id)))
        elif parsed_args.command == "job":
            _emit(job_payload(get_job(parsed_args.job_id)))
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except LapSyncError as exc:
        log.error("%s: %s %s", exc.code, exc.message, exc.details or "")  # noqa: TRY400
        sys.exit(1)
    except Exception:
        log.exception("Fatal error during import")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
