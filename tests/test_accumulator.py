# ==============================================
# Tests for ViolationReport / CandidateSet / EvaluationResult
# ==============================================

from reclassifier.evaluation.accumulator import (
    CandidateSet,
    EvaluationResult,
    ViolationReport,
    SHARED_INDIVIDUAL,
)


class TestViolationReport:
    def test_add_appends(self):
        report = ViolationReport()
        report.add("org-1", ["a", "b"])
        report.add("org-1", ["a"])
        assert report.get("org-1") == ["a", "b", "a"]
        assert len(report) == 1

    def test_empty_add_creates_no_entry(self):
        report = ViolationReport()
        report.add("org-1", [])
        assert "org-1" not in report

    def test_merge_keeps_order(self):
        first, second = ViolationReport(), ViolationReport()
        first.add("org-1", ["a"])
        second.add("org-1", ["b"])
        second.add("org-2", ["c"])
        first.merge(second)
        assert first.to_dict() == {"org-1": ["a", "b"], "org-2": ["c"]}


class TestCandidateSet:
    def test_remove_returns_owner_once(self):
        candidates = CandidateSet()
        candidates.add("ind-1", "org-1")
        assert candidates.remove("ind-1") == "org-1"
        assert candidates.remove("ind-1") is None

    def test_conflicting_owner_rejected(self):
        candidates = CandidateSet()
        assert candidates.add("ind-1", "org-1") is True
        assert candidates.add("ind-1", "org-2") is False
        assert candidates.organization_for("ind-1") == "org-1"


class TestEvaluationResult:
    def test_merge_sums_and_combines(self):
        first, second = EvaluationResult(), EvaluationResult()
        first.add_candidate("ind-1", "org-1")
        first.evaluated = 2
        second.violations.add("org-3", ["x"])
        second.add_candidate("ind-2", "org-2")
        second.evaluated = 3

        first.merge(second)

        assert first.evaluated == 5
        assert first.candidates.organization_ids() == ["org-1", "org-2"]
        assert first.violations.get("org-3") == ["x"]

    def test_shared_individual_across_batches(self):
        first, second = EvaluationResult(), EvaluationResult()
        first.add_candidate("ind-1", "org-1")
        second.add_candidate("ind-1", "org-9")

        first.merge(second)

        assert first.candidates.organization_for("ind-1") == "org-1"
        assert first.violations.get("org-9") == [SHARED_INDIVIDUAL]
