# ==============================================
# Tests for the CLI
# ==============================================

import pytest

from reclassifier import cli
from reclassifier.config import AppConfig, JobConfig
from reclassifier.reporting.report_store import ReportStore
from tests.helpers import TARGET_ID, InMemoryStore, make_org


@pytest.fixture
def config(tmp_path, monkeypatch):
    config = AppConfig(
        job=JobConfig(target_classification_id=TARGET_ID, multi_currency="false"),
        report_dir=str(tmp_path / "reports")
    )
    monkeypatch.setattr(cli, "get_config", lambda: config)
    return config


@pytest.fixture
def store(monkeypatch):
    store = InMemoryStore([make_org("org-1"), make_org("org-2", parent_id="org-1")])
    monkeypatch.setattr("reclassifier.reclassification_job.create_store", lambda config: store)
    return store


class TestRun:
    def test_run_reclassifies_and_saves(self, config, store):
        assert cli.main(["run"]) == 0
        assert store.organizations[0].classification_id == TARGET_ID
        assert len(ReportStore(config.report_dir).list_reports()) == 1

    def test_dry_run_no_save(self, config, store):
        assert cli.main(["run", "--dry-run", "--no-save"]) == 0
        assert store.mutation_calls == []
        assert ReportStore(config.report_dir).list_reports() == []

    def test_overrides_reach_job(self, config, store, monkeypatch):
        seen = {}

        class SpyJob:
            def __init__(self, job_config, report_store=None):
                seen["config"] = job_config

            def __enter__(self):
                return self

            def __exit__(self, *exc):
                return False

            def run(self, dry_run=False):
                seen["dry_run"] = dry_run

        monkeypatch.setattr(cli, "ReclassificationJob", SpyJob)

        cli.main(["run", "--backend", "mysql", "--batch-size", "500", "--workers", "3",
                  "--target-classification", "person", "--multi-currency", "auto"])

        job = seen["config"].job
        assert (job.backend, job.batch_size, job.max_workers) == ("mysql", 500, 3)
        assert job.target_classification_name == "person"
        assert job.target_classification_id is None
        assert job.multi_currency == "auto"
        assert seen["dry_run"] is False

    def test_collaborator_failure_exit_code(self, config, store, monkeypatch, capsys):
        def broken(requests):
            raise ConnectionError("mutator unreachable")

        store.apply_classification = broken

        assert cli.main(["run", "--no-save"]) == 1
        assert "aborted during mutate" in capsys.readouterr().out

    def test_invalid_batch_size_rejected_by_argparse(self, config):
        with pytest.raises(SystemExit):
            cli.main(["run", "--batch-size", "many"])

    @pytest.mark.parametrize("argv", [
        ["run", "--batch-size", "0"],
        ["run", "--batch-size", "-5"],
        ["run", "--workers", "0"],
        ["run", "--workers", "-1"],
    ])
    def test_non_positive_sizes_rejected(self, config, store, argv, capsys):
        with pytest.raises(SystemExit) as excinfo:
            cli.main(argv)
        assert excinfo.value.code == 2
        assert "must be at least 1" in capsys.readouterr().err
        assert store.mutation_calls == []


class TestReports:
    def test_list_and_latest(self, config, store, capsys):
        cli.main(["run"])
        capsys.readouterr()

        assert cli.main(["reports"]) == 0
        assert "report_" in capsys.readouterr().out

        assert cli.main(["reports", "--latest"]) == 0
        assert "Total evaluated: 2" in capsys.readouterr().out

    def test_no_reports(self, config, capsys):
        assert cli.main(["reports"]) == 0
        assert "No reports found" in capsys.readouterr().out
