# ==============================================
# Tests for Configuration
# ==============================================

import pytest

from reclassifier.config import AppConfig, JobConfig, RunSettings, get_config, resolve_run_settings
from tests.helpers import BUSINESS_ID, TARGET_ID, InMemoryStore


class TestGetConfig:
    def test_defaults(self, monkeypatch):
        for name in ("RECORD_STORE", "BATCH_SIZE", "MAX_WORKERS", "TARGET_CLASSIFICATION_ID",
                     "TARGET_CLASSIFICATION_NAME", "SOURCE_CLASSIFICATION_NAME", "MULTI_CURRENCY",
                     "REPORT_DIR"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setattr("reclassifier.config.load_dotenv", lambda **kwargs: False)

        config = get_config()

        assert config.job.backend == "mongodb"
        assert config.job.batch_size == 10000
        assert config.job.max_workers == 1
        assert config.job.target_classification_id is None
        assert config.job.target_classification_name == "individual"
        assert config.job.multi_currency == "auto"
        assert config.report_dir == "reports/"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setattr("reclassifier.config.load_dotenv", lambda **kwargs: False)
        monkeypatch.setenv("RECORD_STORE", "MySQL")
        monkeypatch.setenv("BATCH_SIZE", "2000")
        monkeypatch.setenv("MAX_WORKERS", "4")
        monkeypatch.setenv("MULTI_CURRENCY", "False")
        monkeypatch.setenv("MYSQL_HOST", "db.internal")

        config = get_config()

        assert config.job.backend == "mysql"
        assert config.job.batch_size == 2000
        assert config.job.max_workers == 4
        assert config.job.multi_currency == "false"
        assert config.mysql.host == "db.internal"

    def test_singleton(self, monkeypatch):
        monkeypatch.setattr("reclassifier.config.load_dotenv", lambda **kwargs: False)
        assert get_config() is get_config()


class TestJobConfigValidation:
    @pytest.mark.parametrize("kwargs", [
        {"backend": "postgres"},
        {"multi_currency": "sometimes"},
        {"batch_size": 0},
        {"max_workers": 0},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            JobConfig(**kwargs)


class TestResolveRunSettings:
    def test_explicit_values_skip_store(self):
        config = AppConfig(job=JobConfig(target_classification_id="cls-7", multi_currency="false"))
        settings = resolve_run_settings(config, InMemoryStore(classifications={}, currency=True))

        assert settings == RunSettings(target_classification_id="cls-7", multi_currency_enabled=False)

    def test_resolves_names_and_detects_currency(self):
        config = AppConfig(job=JobConfig(source_classification_name="business"))
        settings = resolve_run_settings(config, InMemoryStore(currency=True))

        assert settings.target_classification_id == TARGET_ID
        assert settings.source_classification_id == BUSINESS_ID
        assert settings.multi_currency_enabled is True
        assert settings.source_filter() == {
            "exclude_classification_id": TARGET_ID,
            "classification_id": BUSINESS_ID,
        }

    def test_auto_currency_without_currency_field(self):
        settings = resolve_run_settings(AppConfig(), InMemoryStore(currency=False))
        assert settings.multi_currency_enabled is False
        assert settings.source_filter() == {"exclude_classification_id": TARGET_ID}

    def test_unknown_classification(self):
        config = AppConfig(job=JobConfig(target_classification_name="nope"))
        with pytest.raises(LookupError, match="nope"):
            resolve_run_settings(config, InMemoryStore())
