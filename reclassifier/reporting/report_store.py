import json
from pathlib import Path
from typing import List, Optional

from .diagnostics import Report


# ==============================================
# ReportStore
# ==============================================
#
# PURPOSE:
#   Keep the final report of every run on disk. A run holds
#   all of its state in memory and discards it at the end, so
#   the report file is the only thing that outlives it.
#
# CLASS: ReportStore
# ------------------
#   - __init__(storage_dir: str = "reports/")
#       Create storage directory if it doesn't exist.
#
#   Methods:
#   --------
#   - save(report: Report) -> Path
#       Serialize the report to a new JSON file.
#
#   - list_reports() -> list[Path]
#       Saved report files, oldest first.
#
#   - load(path) -> Report
#   - load_latest() -> Report | None
#
class ReportStore:
    """
    Handles persistence of run reports to disk.

    Files created:
    - reports/report_<timestamp>.json  → One file per run
    """

    def __init__(self, storage_dir: str = "reports/"):
        """
        Initialize the report store.

        Args:
            storage_dir: Directory to store report files
        """
        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    def save(self, report: Report) -> Path:
        """
        Save a report to disk.

        Args:
            report: Report produced by DiagnosticsAggregator

        Returns:
            Path of the written file
        """
        stamp = report.generated_at.replace(":", "").replace("-", "").replace("+", "_")
        path = self.storage_dir / f"report_{stamp}.json"

        with open(path, 'w') as f:
            json.dump(report.to_dict(), f, indent=2)

        print(f"✓ Saved report to {path}")
        return path

    def list_reports(self) -> List[Path]:
        # Timestamps in the names sort chronologically.
        return sorted(self.storage_dir.glob("report_*.json"))

    def load(self, path) -> Report:
        with open(path, 'r') as f:
            return Report.from_dict(json.load(f))

    def load_latest(self) -> Optional[Report]:
        reports = self.list_reports()
        if not reports:
            print(f"No reports found in {self.storage_dir}")
            return None
        return self.load(reports[-1])


def print_report(report: Report, max_listed: Optional[int] = None) -> None:
    """
    Print the report summary followed by the per-record violation listing.

    Args:
        report: Report to render
        max_listed: Stop the listing after this many records (None = all)
    """
    summary = report.to_dict()["summary"]
    print("\n📊 Reclassification report:")
    print(f"   → Total evaluated: {summary['total_evaluated']}")
    print(f"   → Qualified: {summary['qualified']}")
    if report.mutated:
        print(f"   → Reclassified: {summary['reclassified']}")
    else:
        print("   → Reclassified: 0 (no mutation performed)")
    print(f"   → Mutation failures: {summary['mutation_failures']} ({summary['failure_percentage']})")
    print(f"   → Rule errors: {summary['rule_errors']}")

    if not report.violations:
        return

    print("\nViolations:")
    for index, (org_id, messages) in enumerate(report.violations.items()):
        if max_listed is not None and index >= max_listed:
            print(f"   ... {len(report.violations) - max_listed} more")
            break
        print(f"   ✗ {org_id}: {'; '.join(messages)}")
