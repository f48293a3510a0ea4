# ==============================================
# ReclassificationExecutor
# ==============================================
#
# PURPOSE:
#   Takes the final candidate set, builds one mutation request
#   per candidate organization, and hands the whole set to the
#   record store as a single partial-failure bulk operation.
#
# WHY THIS CLASS EXISTS:
#   Callers want as many organizations converted as possible.
#   One failing record must not block or roll back the others,
#   so every request gets its own MutationOutcome instead of the
#   batch succeeding or failing as a whole.
#
# CLASS: ReclassificationExecutor
# -------------------------------
#   Methods:
#   --------
#   - build_requests(candidates, target_classification_id)
#       -> list[MutationRequest]
#
#   - execute(candidates, target_classification_id, mutator)
#       -> list[MutationOutcome]
#       mutator.apply_classification(requests) must return exactly one
#       outcome per request, in request order. Exactly one attempt per
#       organization, no retry. Empty candidate set → no call, [].
#
# ==============================================

from typing import List

from reclassifier.evaluation.accumulator import CandidateSet
from reclassifier.evaluation.records import MutationRequest, MutationOutcome


class ReclassificationExecutor:
    def build_requests(self, candidates: CandidateSet, target_classification_id: str) -> List[MutationRequest]:
        return [
            MutationRequest(organization_id=organization_id, classification_id=target_classification_id)
            for organization_id in candidates.organization_ids()
        ]

    def execute(self, candidates: CandidateSet, target_classification_id: str, mutator) -> List[MutationOutcome]:
        """
        Reclassify every remaining candidate.

        Args:
            candidates: Candidate set after the hierarchy pass
            target_classification_id: Classification to assign
            mutator: BulkMutator (any object with apply_classification())

        Returns:
            One MutationOutcome per candidate organization

        Raises:
            RuntimeError: If the mutator's outcomes don't line up with the requests
        """
        requests = self.build_requests(candidates, target_classification_id)
        if not requests:
            return []

        outcomes = list(mutator.apply_classification(requests))

        if len(outcomes) != len(requests):
            raise RuntimeError(
                f"Bulk mutation returned {len(outcomes)} outcomes for {len(requests)} requests"
            )
        for request, outcome in zip(requests, outcomes):
            if outcome.organization_id != request.organization_id:
                raise RuntimeError(
                    f"Bulk mutation outcome for '{outcome.organization_id}' "
                    f"out of order (expected '{request.organization_id}')"
                )

        succeeded = sum(1 for outcome in outcomes if outcome.success)
        print(f"✓ Reclassified {succeeded}/{len(outcomes)} organizations "
              f"({len(outcomes) - succeeded} failed)")
        return outcomes
