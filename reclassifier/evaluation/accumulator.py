# ==============================================
# Accumulators
# ==============================================
#
# PURPOSE:
#   The two result maps built while batches are evaluated:
#     - ViolationReport: organization id -> ordered violation messages
#     - CandidateSet:    individual id   -> owning organization id
#   plus EvaluationResult, the partial (per-batch) pair of both that
#   a worker returns for a single-threaded merge.
#
# WHY THIS FILE EXISTS:
#   The maps are passed through the pipeline explicitly instead of
#   living as module state. Workers never share them; each batch gets
#   its own EvaluationResult and the job merges them in batch order.
#
# ==============================================

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Tuple


SHARED_INDIVIDUAL = "associated individual is already linked to another record"


class ViolationReport:
    """
    Ordered violation messages per organization id.

    Adding to an id that already has entries appends; nothing is ever
    replaced, so the same message may appear twice if two passes add it.
    """

    def __init__(self):
        self._entries: Dict[str, List[str]] = {}

    def add(self, organization_id: str, messages: Iterable[str]) -> None:
        messages = list(messages)
        if not messages:
            return
        self._entries.setdefault(organization_id, []).extend(messages)

    def merge(self, other: "ViolationReport") -> None:
        for organization_id, messages in other.items():
            self.add(organization_id, messages)

    def get(self, organization_id: str) -> List[str]:
        return list(self._entries.get(organization_id, []))

    def items(self) -> Iterator[Tuple[str, List[str]]]:
        return iter(self._entries.items())

    def to_dict(self) -> Dict[str, List[str]]:
        return {org_id: list(messages) for org_id, messages in self._entries.items()}

    def __contains__(self, organization_id: str) -> bool:
        return organization_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class CandidateSet:
    """
    Candidates keyed by their single individual's id.

    Holds only organizations that passed every per-record rule. Entries
    are removed by the hierarchy pass.
    """

    def __init__(self):
        self._owners: Dict[str, str] = {}

    def add(self, individual_id: str, organization_id: str) -> bool:
        """
        Register a candidate.

        Returns:
            False if individual_id is already held by a different
            organization (the candidate is not added), True otherwise.
        """
        owner = self._owners.get(individual_id)
        if owner is not None and owner != organization_id:
            return False
        self._owners[individual_id] = organization_id
        return True

    def remove(self, individual_id: str) -> Optional[str]:
        """Drop a candidate, returning its organization id (None if absent)."""
        return self._owners.pop(individual_id, None)

    def organization_for(self, individual_id: str) -> Optional[str]:
        return self._owners.get(individual_id)

    def individual_ids(self) -> set:
        return set(self._owners)

    def organization_ids(self) -> List[str]:
        # Insertion order, so mutation requests follow evaluation order.
        return list(self._owners.values())

    def items(self) -> Iterator[Tuple[str, str]]:
        return iter(self._owners.items())

    def __contains__(self, individual_id: str) -> bool:
        return individual_id in self._owners

    def __len__(self) -> int:
        return len(self._owners)


@dataclass
class EvaluationResult:
    """Partial results for one or more evaluated batches."""
    violations: ViolationReport = field(default_factory=ViolationReport)
    candidates: CandidateSet = field(default_factory=CandidateSet)
    evaluated: int = 0

    def add_candidate(self, individual_id: str, organization_id: str) -> None:
        if not self.candidates.add(individual_id, organization_id):
            self.violations.add(organization_id, [SHARED_INDIVIDUAL])

    def merge(self, other: "EvaluationResult") -> None:
        """
        Fold another partial result into this one.

        Must be called from a single thread, in batch order, so that a
        shared individual id always resolves to the same organization.
        """
        self.violations.merge(other.violations)
        for individual_id, organization_id in other.candidates.items():
            self.add_candidate(individual_id, organization_id)
        self.evaluated += other.evaluated
