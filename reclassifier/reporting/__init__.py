# ==============================================
# REPORTING
# ==============================================
#
# This package turns the end state of a run into a report and
# hands it to the report sinks (console and disk).
#
# Modules:
# --------
# - diagnostics.py   → DiagnosticsAggregator and the Report data class
# - report_store.py  → JSON report files, console rendering
#
# ==============================================

from .diagnostics import DiagnosticsAggregator, Report, failure_percentage
from .report_store import ReportStore, print_report

__all__ = [
    "DiagnosticsAggregator",
    "Report",
    "failure_percentage",
    "ReportStore",
    "print_report"
]
