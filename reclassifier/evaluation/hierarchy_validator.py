# ==============================================
# HierarchyValidator
# ==============================================
#
# PURPOSE:
#   Second disqualification pass, run once after every batch has
#   been evaluated. Removes candidates whose individual is the
#   reports-to target of another individual anywhere in the store.
#
# WHY THIS CLASS EXISTS:
#   A per-record rule cannot see who reports to an individual; that
#   needs the complete candidate set and one reverse lookup against
#   the store. Converting such an organization would leave other
#   individuals pointing at a record that no longer has its old shape.
#
# CLASS: HierarchyValidator
# -------------------------
#   Methods:
#   --------
#   - validate(candidates, violations, lookup) -> int
#       lookup.find_reports_to(target_ids) returns
#       (individual_id, reports_to_id) pairs. The first pair that hits
#       a candidate disqualifies it; later pairs for the same target
#       find it gone and do nothing. Returns the disqualified count.
#
# ==============================================

from .accumulator import CandidateSet, ViolationReport


REPORTS_TO_TARGET = "is a reports-to target for another individual"


class HierarchyValidator:
    def validate(self, candidates: CandidateSet, violations: ViolationReport, lookup) -> int:
        """
        Disqualify candidates that other individuals report to.

        Args:
            candidates: Complete candidate set, mutated in place
            violations: Violation report, appended to in place
            lookup: ReportsToLookup (any object with find_reports_to())

        Returns:
            Number of organizations disqualified
        """
        if not candidates:
            return 0

        relations = lookup.find_reports_to(candidates.individual_ids())

        disqualified = 0
        for _individual_id, reports_to_id in relations:
            # Checked per pair: a target with several reports is removed once.
            organization_id = candidates.remove(reports_to_id)
            if organization_id is None:
                continue
            violations.add(organization_id, [REPORTS_TO_TARGET])
            disqualified += 1

        return disqualified
