# ==============================================
# DiagnosticsAggregator
# ==============================================
#
# PURPOSE:
#   Builds the final Report of a run: merges mutation failures
#   into the violation report and computes the summary counts.
#
# CLASS: DiagnosticsAggregator
# ----------------------------
#   Methods:
#   --------
#   - aggregate(total_evaluated, violations, candidates, outcomes) -> Report
#       outcomes may be None (run stopped before or during MUTATE).
#
#       qualified          = len(candidates)  (what reached the executor)
#       mutation_failures  = failed outcomes
#       failure_percentage = ceil(failures / qualified * 100),
#                            None when qualified == 0
#       rule_errors        = distinct ids in violations - mutation_failures
#
# DATA CLASS: Report
# ------------------
#   Summary counts, the per-id violation listing and the outcomes.
#   to_dict() gives the structured document handed to report sinks.
#
# ==============================================

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from reclassifier.evaluation.accumulator import CandidateSet, ViolationReport
from reclassifier.evaluation.records import MutationOutcome


NOT_AVAILABLE = "N/A"


@dataclass
class Report:
    total_evaluated: int = 0
    qualified: int = 0
    mutation_failures: int = 0
    failure_percentage: Optional[int] = None  # None when nothing qualified
    rule_errors: int = 0
    violations: Dict[str, List[str]] = field(default_factory=dict)
    outcomes: List[MutationOutcome] = field(default_factory=list)
    mutated: bool = False
    generated_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def reclassified(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.success)

    def failure_percentage_label(self) -> str:
        if self.failure_percentage is None:
            return NOT_AVAILABLE
        return f"{self.failure_percentage}%"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generated_at": self.generated_at,
            "summary": {
                "total_evaluated": self.total_evaluated,
                "qualified": self.qualified,
                "reclassified": self.reclassified,
                "mutation_failures": self.mutation_failures,
                "failure_percentage": self.failure_percentage_label(),
                "rule_errors": self.rule_errors,
                "mutated": self.mutated,
            },
            "violations": {org_id: list(messages) for org_id, messages in self.violations.items()},
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Report":
        summary = data.get("summary", {})
        percentage = summary.get("failure_percentage", NOT_AVAILABLE)
        return cls(
            total_evaluated=summary.get("total_evaluated", 0),
            qualified=summary.get("qualified", 0),
            mutation_failures=summary.get("mutation_failures", 0),
            failure_percentage=None if percentage == NOT_AVAILABLE else int(str(percentage).rstrip("%")),
            rule_errors=summary.get("rule_errors", 0),
            violations=data.get("violations", {}),
            outcomes=[MutationOutcome(**outcome) for outcome in data.get("outcomes", [])],
            mutated=summary.get("mutated", False),
            generated_at=data.get("generated_at", ""),
        )


def failure_percentage(failures: int, qualified: int) -> Optional[int]:
    """ceil(failures / qualified * 100), or None when qualified is 0."""
    if qualified <= 0:
        return None
    # Integer ceiling, no float rounding on exact percentages.
    return -(-failures * 100 // qualified)


class DiagnosticsAggregator:
    def aggregate(
        self,
        total_evaluated: int,
        violations: ViolationReport,
        candidates: CandidateSet,
        outcomes: Optional[List[MutationOutcome]] = None
    ) -> Report:
        """
        Merge mutation failures into violations and compute the summary.

        Args:
            total_evaluated: Records evaluated across all batches
            violations: Violation report after the hierarchy pass (appended to)
            candidates: Candidate set that reached the executor
            outcomes: Mutation outcomes, or None if no mutation ran

        Returns:
            Report
        """
        outcomes = list(outcomes) if outcomes is not None else []

        failed = [outcome for outcome in outcomes if not outcome.success]
        for outcome in failed:
            violations.add(outcome.organization_id, [outcome.message or "mutation failed"])

        qualified = len(candidates)
        mutation_failures = len(failed)

        return Report(
            total_evaluated=total_evaluated,
            qualified=qualified,
            mutation_failures=mutation_failures,
            failure_percentage=failure_percentage(mutation_failures, qualified),
            rule_errors=len(violations) - mutation_failures,
            violations=violations.to_dict(),
            outcomes=outcomes,
            mutated=bool(outcomes),
        )
