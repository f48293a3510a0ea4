# ==============================================
# Pytest Configuration and Fixtures
# ==============================================
#
# Shared fixtures for all tests. Record factories and the
# in-memory store live in tests/helpers.py.
# ==============================================

import pytest

from reclassifier import config as config_module
from reclassifier.config import AppConfig, JobConfig
from tests.helpers import TARGET_ID


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    """Small batches, fixed target id, currency matching on."""
    return AppConfig(
        job=JobConfig(batch_size=2, target_classification_id=TARGET_ID, multi_currency="true"),
        report_dir=str(tmp_path / "reports")
    )


@pytest.fixture(autouse=True)
def reset_config_singleton():
    config_module._config_instance = None
    yield
    config_module._config_instance = None
