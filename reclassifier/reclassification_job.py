# ==============================================
# ReclassificationJob — Orchestrator
# ==============================================
#
# PURPOSE:
#   Ties the stages together into one run. Users interact with
#   this class only. Everything else is internal.
#
# HOW THE STAGES CONNECT:
#
#   ┌──────────────────────────────────────────────────────────┐
#   │                   ReclassificationJob                    │
#   │                                                          │
#   │  INIT        resolve_run_settings() (ConfigProvider)     │
#   │                 │                                        │
#   │                 ▼                                        │
#   │  STREAMING   store.stream_batches()                      │
#   │              → RuleEvaluator.evaluate_batch() per batch  │
#   │              → EvaluationResult.merge() in batch order   │
#   │                 │ barrier: every batch merged            │
#   │                 ▼                                        │
#   │  HIERARCHY   HierarchyValidator.validate()               │
#   │                 │ barrier                                │
#   │                 ▼                                        │
#   │  MUTATE      ReclassificationExecutor.execute()          │
#   │                 │                                        │
#   │                 ▼                                        │
#   │  REPORT      DiagnosticsAggregator.aggregate()           │
#   │              → print_report(), ReportStore.save()        │
#   │                 │                                        │
#   │                 ▼                                        │
#   │  DONE                                                    │
#   └──────────────────────────────────────────────────────────┘
#
#   A job runs once. A second run() raises.
#
# ERRORS:
# -------
#   Rule violations, hierarchy disqualifications and per-record
#   mutation failures end up in the report. Any exception from the
#   store is re-raised as CollaboratorError(stage) and ends the run.
#   If MUTATE fails, the report is still built (and saved) from the
#   outcomes gathered before the failure, then the error is raised.
#
# ==============================================

from collections import deque
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Iterator, List, Optional

from reclassifier.config import AppConfig, RunSettings, get_config, resolve_run_settings
from reclassifier.evaluation.accumulator import EvaluationResult
from reclassifier.evaluation.hierarchy_validator import HierarchyValidator
from reclassifier.evaluation.records import MutationOutcome, OrganizationRecord
from reclassifier.evaluation.rule_evaluator import RuleEvaluator
from reclassifier.reporting.diagnostics import DiagnosticsAggregator, Report
from reclassifier.reporting.report_store import ReportStore, print_report
from reclassifier.storage import ReclassificationExecutor, create_store


class JobStage(Enum):
    INIT = "init"
    STREAMING = "streaming"
    HIERARCHY_CHECK = "hierarchy_check"
    MUTATE = "mutate"
    REPORT = "report"
    DONE = "done"


class CollaboratorError(RuntimeError):
    """A record store call failed; the run cannot continue."""

    def __init__(self, stage: JobStage, error: Exception):
        self.stage = stage
        self.error = error
        super().__init__(f"{stage.value} failed: {error}")


class ReclassificationJob:
    """
    One reclassification run over the records selected by the source filter.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        store=None,
        report_store: Optional[ReportStore] = None
    ):
        """
        Args:
            config: Application configuration. If None, loads from environment.
            store: Record store. If None, built from config (and connected by
                   the context manager).
            report_store: Where reports are saved. If None, reports are only printed.
        """
        self._config = config or get_config()
        self._store = store if store is not None else create_store(self._config)
        self._owns_store = store is None
        self._report_store = report_store

        self._rule_evaluator = RuleEvaluator()
        self._hierarchy_validator = HierarchyValidator()
        self._executor = ReclassificationExecutor()
        self._aggregator = DiagnosticsAggregator()

        self.stage = JobStage.INIT
        self.settings: Optional[RunSettings] = None
        self.batches_processed = 0
        self.result: Optional[EvaluationResult] = None
        self.report: Optional[Report] = None
        self._cancelled = False

    def cancel(self) -> None:
        """Stop streaming before the next batch is fetched."""
        self._cancelled = True

    def run(self, dry_run: bool = False) -> Report:
        """
        Run every stage once.

        Args:
            dry_run: Stop after the hierarchy check; nothing is mutated.

        Returns:
            The final Report

        Raises:
            CollaboratorError: If a store call fails
            RuntimeError: If the job has already run
        """
        if self.stage is not JobStage.INIT:
            raise RuntimeError(f"Job already ran (stage: {self.stage.value})")

        self.settings = self._call(JobStage.INIT, resolve_run_settings, self._config, self._store)
        print(f"🚀 Reclassifying into '{self.settings.target_classification_id}' "
              f"(multi-currency: {'on' if self.settings.multi_currency_enabled else 'off'})")

        self._call(JobStage.INIT, self._store.ensure_indexes)

        self.stage = JobStage.STREAMING
        result = self.result = self._evaluate_all()
        print(f"✓ Evaluated {result.evaluated} records in {self.batches_processed} batches "
              f"({len(result.candidates)} candidates)")

        self.stage = JobStage.HIERARCHY_CHECK
        disqualified = self._call(
            JobStage.HIERARCHY_CHECK,
            self._hierarchy_validator.validate,
            result.candidates,
            result.violations,
            self._store
        )
        print(f"✓ Hierarchy check disqualified {disqualified} candidates")

        outcomes: Optional[List[MutationOutcome]] = None
        if dry_run:
            print("⚠ Dry run: skipping mutation")
        else:
            self.stage = JobStage.MUTATE
            try:
                outcomes = self._call(
                    JobStage.MUTATE,
                    self._executor.execute,
                    result.candidates,
                    self.settings.target_classification_id,
                    self._store
                )
            except CollaboratorError as e:
                # Rows written before the failure stay written; report them.
                self._salvage_report(result, getattr(e.error, "outcomes", None))
                raise

        self.stage = JobStage.REPORT
        self.report = self._aggregator.aggregate(
            result.evaluated,
            result.violations,
            result.candidates,
            outcomes
        )
        print_report(self.report)
        if self._report_store is not None:
            self._call(JobStage.REPORT, self._report_store.save, self.report)

        self.stage = JobStage.DONE
        return self.report

    def _evaluate_all(self) -> EvaluationResult:
        merged = EvaluationResult()
        multi_currency = self.settings.multi_currency_enabled
        batches = self._batches()

        if self._config.job.max_workers <= 1:
            for batch in batches:
                merged.merge(self._rule_evaluator.evaluate_batch(batch, multi_currency))
            return merged

        workers = self._config.job.max_workers
        with ThreadPoolExecutor(max_workers=workers) as pool:
            # At most `workers` batches in flight; merged oldest first.
            pending = deque()
            for batch in batches:
                pending.append(pool.submit(self._rule_evaluator.evaluate_batch, batch, multi_currency))
                while pending and (len(pending) >= workers or pending[0].done()):
                    merged.merge(pending.popleft().result())
            while pending:
                merged.merge(pending.popleft().result())
        return merged

    def _batches(self) -> Iterator[List[OrganizationRecord]]:
        stream = iter(self._call(
            JobStage.STREAMING,
            self._store.stream_batches,
            self.settings.source_filter(),
            self._config.job.batch_size
        ))
        while True:
            # Only the store's iteration is wrapped; evaluator faults propagate as-is.
            batch = self._call(JobStage.STREAMING, next, stream, None)
            if batch is None:
                break
            self.batches_processed += 1
            print(f"   → Batch {self.batches_processed}: {len(batch)} records", end='\r')
            yield batch
            if self._cancelled:
                print("\n⚠ Cancelled, no further batches fetched")
                break

    def _salvage_report(self, result: EvaluationResult, outcomes: Optional[List[MutationOutcome]]) -> None:
        attempted = len(outcomes) if outcomes is not None else 0
        print(f"⚠ Mutation stopped after {attempted}/{len(result.candidates)} organizations")
        self.report = self._aggregator.aggregate(
            result.evaluated,
            result.violations,
            result.candidates,
            outcomes
        )
        print_report(self.report)
        if self._report_store is not None:
            self._report_store.save(self.report)

    def _call(self, stage: JobStage, func, *args):
        try:
            return func(*args)
        except CollaboratorError:
            raise
        except Exception as e:
            print(f"✗ {stage.value} failed: {e}")
            raise CollaboratorError(stage, e) from e

    def close(self) -> None:
        if self._owns_store:
            self._store.disconnect()

    def __enter__(self):
        if self._owns_store:
            self._store.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
