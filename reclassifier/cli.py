# ==============================================
# CLI — Command Line Entry Point
# ==============================================
#
# PURPOSE:
#   Provides command-line interface to run a reclassification.
#
# COMMANDS:
# ---------
# 1. Evaluate and reclassify:
#    python -m reclassifier.cli run
#    python -m reclassifier.cli run --backend mysql --batch-size 2000 --workers 4
#
# 2. Evaluate only, nothing is mutated:
#    python -m reclassifier.cli run --dry-run
#
# 3. List saved reports / show the latest one:
#    python -m reclassifier.cli reports
#    python -m reclassifier.cli reports --latest
#
# Exit codes: 0 on success, 1 when the run aborted on a store failure.
#
# ==============================================

import argparse
import sys
from dataclasses import replace
from typing import Optional

from reclassifier.config import get_config, BACKENDS, MULTI_CURRENCY_MODES
from reclassifier.reclassification_job import CollaboratorError, ReclassificationJob
from reclassifier.reporting.report_store import ReportStore, print_report


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reclassifier",
        description="Reclassify eligible organization records"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Evaluate records and reclassify the eligible ones")
    run.add_argument("--backend", choices=BACKENDS, help="Record store (default: RECORD_STORE)")
    run.add_argument("--batch-size", type=positive_int, help="Records per batch (default: BATCH_SIZE)")
    run.add_argument("--workers", type=positive_int, help="Evaluation threads (default: MAX_WORKERS)")
    run.add_argument("--target-classification", help="Target classification name")
    run.add_argument("--multi-currency", choices=MULTI_CURRENCY_MODES, help="Currency matching mode")
    run.add_argument("--dry-run", action="store_true", help="Evaluate only, don't mutate")
    run.add_argument("--no-save", action="store_true", help="Don't write the report to disk")

    reports = subparsers.add_parser("reports", help="List saved reports")
    reports.add_argument("--latest", action="store_true", help="Print the most recent report")

    return parser


def run_command(args) -> int:
    config = get_config()

    overrides = {}
    if args.backend:
        overrides["backend"] = args.backend
    if args.batch_size is not None:
        overrides["batch_size"] = args.batch_size
    if args.workers is not None:
        overrides["max_workers"] = args.workers
    if args.target_classification:
        overrides["target_classification_name"] = args.target_classification
        overrides["target_classification_id"] = None
    if args.multi_currency:
        overrides["multi_currency"] = args.multi_currency
    if overrides:
        config = replace(config, job=replace(config.job, **overrides))

    report_store = None if args.no_save else ReportStore(config.report_dir)

    try:
        with ReclassificationJob(config, report_store=report_store) as job:
            job.run(dry_run=args.dry_run)
    except CollaboratorError as e:
        print(f"\n❌ Run aborted during {e.stage.value}: {e.error}")
        return 1
    except KeyboardInterrupt:
        print("\n⚠ Interrupted by user")
        return 1
    return 0


def reports_command(args) -> int:
    store = ReportStore(get_config().report_dir)
    if args.latest:
        report = store.load_latest()
        if report is not None:
            print_report(report)
        return 0

    paths = store.list_reports()
    if not paths:
        print(f"No reports found in {store.storage_dir}")
    for path in paths:
        print(f"   → {path}")
    return 0


def main(argv: Optional[list] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "run":
        return run_command(args)
    return reports_command(args)


if __name__ == "__main__":
    sys.exit(main())
