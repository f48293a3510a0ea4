# ==============================================
# RuleEvaluator
# ==============================================
#
# PURPOSE:
#   Applies the fixed disqualification rules to one organization
#   record and its associated individuals. Produces the list of
#   violation messages, or marks the record as a candidate.
#
# WHY THIS CLASS EXISTS:
#   An organization can only be reclassified when it is a flat,
#   stand-alone record that maps onto exactly one individual.
#   Every rule is checked (no early return) so a rejected record
#   carries all of its problems in the report, not just the first.
#
# CLASS: RuleEvaluator
# --------------------
#   Stateless — rules are fixed, results go to the caller.
#
#   Methods:
#   --------
#   - evaluate(org, multi_currency) -> tuple[list[str], bool]
#       Run every rule against one record. Applies rules in order:
#
#       RULE 1: PORTAL LINK
#         org.is_portal_linked → "cannot be bound to a user identity"
#
#       RULE 2: PARENT
#         org.parent_id set → "parent reference is not empty"
#
#       RULE 3: CHILDREN
#         org.has_children → "is itself a parent for another record"
#
#       RULE 4: INDIVIDUAL COUNT
#         len(org.individuals) != 1 →
#           "must have exactly one associated individual"
#         (rules 5-7 are skipped in that case)
#
#       RULE 5: OWNER        owners differ
#       RULE 6: REPORTS-TO   individual reports to someone
#       RULE 7: CURRENCY     multi-currency on and codes differ
#
#   - evaluate_batch(batch, multi_currency) -> EvaluationResult
#       Evaluate a whole batch into a fresh partial result. Safe to
#       run on a worker thread.
#
# ==============================================

from typing import List, Tuple

from .accumulator import EvaluationResult
from .records import OrganizationRecord


PORTAL_LINKED = "cannot be bound to a user identity"
HAS_PARENT = "parent reference is not empty"
HAS_CHILDREN = "is itself a parent for another record"
INDIVIDUAL_COUNT = "must have exactly one associated individual"
OWNER_MISMATCH = "owner does not match the associated individual's owner"
REPORTS_TO_SET = "associated individual reports to another individual"
CURRENCY_MISMATCH = "currency does not match the associated individual's currency"


class RuleEvaluator:
    """
    Evaluates the reclassification rules for organization records.

    Organization-level rules always run. Individual-level rules only run
    when the record has exactly one associated individual.
    """

    ORGANIZATION_RULES = (
        (lambda org: org.is_portal_linked, PORTAL_LINKED),
        (lambda org: org.parent_id is not None, HAS_PARENT),
        (lambda org: org.has_children, HAS_CHILDREN),
    )

    # (predicate(org, individual, multi_currency), message)
    INDIVIDUAL_RULES = (
        (lambda org, ind, multi_currency: org.owner_id != ind.owner_id, OWNER_MISMATCH),
        (lambda org, ind, multi_currency: ind.reports_to_id is not None, REPORTS_TO_SET),
        (lambda org, ind, multi_currency: multi_currency and org.currency_code != ind.currency_code,
         CURRENCY_MISMATCH),
    )

    def evaluate(self, org: OrganizationRecord, multi_currency: bool = False) -> Tuple[List[str], bool]:
        """
        Evaluate one organization record.

        Args:
            org: Organization with child-existence and individuals joined
            multi_currency: Whether currency codes must match

        Returns:
            (violations, ok) where ok is True iff violations is empty
        """
        violations = [message for rule, message in self.ORGANIZATION_RULES if rule(org)]

        if len(org.individuals) != 1:
            violations.append(INDIVIDUAL_COUNT)
        else:
            individual = org.individuals[0]
            violations.extend(
                message for rule, message in self.INDIVIDUAL_RULES
                if rule(org, individual, multi_currency)
            )

        return violations, not violations

    def evaluate_batch(self, batch: List[OrganizationRecord], multi_currency: bool = False) -> EvaluationResult:
        """
        Evaluate a batch of organization records.

        Args:
            batch: Records from one RecordSource page
            multi_currency: Whether currency codes must match

        Returns:
            EvaluationResult holding this batch's violations and candidates
        """
        result = EvaluationResult()
        for org in batch:
            violations, ok = self.evaluate(org, multi_currency)
            if ok:
                result.add_candidate(org.individuals[0].id, org.id)
            else:
                result.violations.add(org.id, violations)
            result.evaluated += 1
        return result
