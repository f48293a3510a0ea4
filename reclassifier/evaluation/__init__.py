# ==============================================
# EVALUATION
# ==============================================
#
# This package decides which organization records may be
# reclassified. Two-phase process:
#   Phase 1 (Rules):     Evaluate each record of each batch → violations or candidate
#   Phase 2 (Hierarchy): One pass over all candidates → drop reports-to targets
#
# Modules:
# --------
# - records.py              → Data classes for records, requests and outcomes
# - accumulator.py          → ViolationReport, CandidateSet, EvaluationResult
# - rule_evaluator.py       → Fixed per-record rules
# - hierarchy_validator.py  → Cross-record reports-to pass
#
# ==============================================

from .records import IndividualRecord, OrganizationRecord, MutationRequest, MutationOutcome, MutationInterrupted
from .accumulator import ViolationReport, CandidateSet, EvaluationResult
from .rule_evaluator import RuleEvaluator
from .hierarchy_validator import HierarchyValidator

__all__ = [
    "IndividualRecord",
    "OrganizationRecord",
    "MutationRequest",
    "MutationOutcome",
    "MutationInterrupted",
    "ViolationReport",
    "CandidateSet",
    "EvaluationResult",
    "RuleEvaluator",
    "HierarchyValidator"
]
