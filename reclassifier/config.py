# ==============================================
# Configuration Management
# ==============================================
#
# PURPOSE:
#   Load and validate all configuration from environment
#   variables / .env file. Provides typed config objects
#   to all other modules, and resolves the per-run settings
#   (target classification id, multi-currency mode) against
#   the record store before a job starts.
#
# CLASSES:
# --------
# - MongoConfig (dataclass)
#     host: str          (default "localhost")
#     port: int          (default 27017)
#     user: str | None   (default None)
#     password: str | None (default None)
#     database: str      (default "crm")
#
# - MySQLConfig (dataclass)
#     host: str          (default "localhost")
#     port: int          (default 3306)
#     user: str          (default "root")
#     password: str      (default "root")
#     database: str      (default "crm")
#
# - JobConfig (dataclass)
#     backend: str                       (default "mongodb")
#     batch_size: int                    (default 10000)
#     max_workers: int                   (default 1)
#     target_classification_id: str | None
#     target_classification_name: str   (default "individual")
#     source_classification_name: str | None
#     multi_currency: str                (default "auto")
#
# - AppConfig (dataclass)
#     mongo, mysql, job, report_dir
#
# - RunSettings (dataclass)
#     Values resolved once per run by resolve_run_settings().
#
# FUNCTIONS:
# ----------
# - get_config() -> AppConfig
#     Load .env using python-dotenv, construct AppConfig.
#     Returns the same singleton on repeated calls.
#
# - resolve_run_settings(config, store) -> RunSettings
#
# USAGE:
# ------
#   from reclassifier.config import get_config
#   config = get_config()
#   print(config.job.batch_size)
#
# ==============================================

import os
from dataclasses import dataclass, field
from typing import Optional
from pathlib import Path

from dotenv import load_dotenv


BACKENDS = ("mongodb", "mysql")
MULTI_CURRENCY_MODES = ("true", "false", "auto")


@dataclass
class MongoConfig:
    """MongoDB record store configuration."""
    host: str = "localhost"
    port: int = 27017
    user: Optional[str] = None
    password: Optional[str] = None
    database: str = "crm"


@dataclass
class MySQLConfig:
    """MySQL record store configuration."""
    host: str = "localhost"
    port: int = 3306
    user: str = "root"
    password: str = "root"
    database: str = "crm"


@dataclass
class JobConfig:
    """Settings for one reclassification run."""
    backend: str = "mongodb"
    batch_size: int = 10000
    max_workers: int = 1
    target_classification_id: Optional[str] = None
    target_classification_name: str = "individual"
    source_classification_name: Optional[str] = None
    multi_currency: str = "auto"

    def __post_init__(self):
        if self.backend not in BACKENDS:
            raise ValueError(f"Unknown record store backend '{self.backend}', expected one of {BACKENDS}")
        if self.multi_currency not in MULTI_CURRENCY_MODES:
            raise ValueError(f"Invalid multi-currency mode '{self.multi_currency}', expected one of {MULTI_CURRENCY_MODES}")
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")


@dataclass
class AppConfig:
    """Main application configuration."""
    mongo: MongoConfig = field(default_factory=MongoConfig)
    mysql: MySQLConfig = field(default_factory=MySQLConfig)
    job: JobConfig = field(default_factory=JobConfig)
    report_dir: str = "reports/"


@dataclass
class RunSettings:
    """
    Values resolved against the record store before the run starts.

    source_classification_id is None when every organization that is not
    already in the target classification should be evaluated.
    """
    target_classification_id: str
    multi_currency_enabled: bool
    source_classification_id: Optional[str] = None

    def source_filter(self) -> dict:
        """Filter handed to RecordSource.stream_batches()."""
        source_filter = {"exclude_classification_id": self.target_classification_id}
        if self.source_classification_id is not None:
            source_filter["classification_id"] = self.source_classification_id
        return source_filter


# Singleton instance
_config_instance: Optional[AppConfig] = None


def _env_flag(name: str, default: str) -> str:
    return os.getenv(name, default).strip().lower()


def get_config() -> AppConfig:
    """
    Load configuration from environment variables / .env file.
    Returns the same singleton instance on repeated calls.

    Returns:
        AppConfig: Application configuration
    """
    global _config_instance

    if _config_instance is not None:
        return _config_instance

    # Load .env file from project root
    env_path = Path(__file__).parent.parent / ".env"
    load_dotenv(dotenv_path=env_path)

    mongo_config = MongoConfig(
        host=os.getenv("MONGO_HOST", "localhost"),
        port=int(os.getenv("MONGO_PORT", "27017")),
        user=os.getenv("MONGO_USER") or None,
        password=os.getenv("MONGO_PASSWORD") or None,
        database=os.getenv("MONGO_DATABASE", "crm")
    )

    mysql_config = MySQLConfig(
        host=os.getenv("MYSQL_HOST", "localhost"),
        port=int(os.getenv("MYSQL_PORT", "3306")),
        user=os.getenv("MYSQL_USER", "root"),
        password=os.getenv("MYSQL_PASSWORD", "root"),
        database=os.getenv("MYSQL_DATABASE", "crm")
    )

    job_config = JobConfig(
        backend=_env_flag("RECORD_STORE", "mongodb"),
        batch_size=int(os.getenv("BATCH_SIZE", "10000")),
        max_workers=int(os.getenv("MAX_WORKERS", "1")),
        target_classification_id=os.getenv("TARGET_CLASSIFICATION_ID") or None,
        target_classification_name=os.getenv("TARGET_CLASSIFICATION_NAME", "individual"),
        source_classification_name=os.getenv("SOURCE_CLASSIFICATION_NAME") or None,
        multi_currency=_env_flag("MULTI_CURRENCY", "auto")
    )

    _config_instance = AppConfig(
        mongo=mongo_config,
        mysql=mysql_config,
        job=job_config,
        report_dir=os.getenv("REPORT_DIR", "reports/")
    )

    return _config_instance


def resolve_run_settings(config: AppConfig, store) -> RunSettings:
    """
    Resolve the target classification id and multi-currency mode.

    Args:
        config: Application configuration
        store: Connected record store (MongoClient or MySQLClient)

    Returns:
        RunSettings for a single run

    Raises:
        LookupError: If a classification name is not known to the store
    """
    job = config.job

    target_id = job.target_classification_id
    if target_id is None:
        target_id = store.resolve_classification_id(job.target_classification_name)
        if target_id is None:
            raise LookupError(f"Classification '{job.target_classification_name}' not found in record store")

    source_id = None
    if job.source_classification_name:
        source_id = store.resolve_classification_id(job.source_classification_name)
        if source_id is None:
            raise LookupError(f"Classification '{job.source_classification_name}' not found in record store")

    if job.multi_currency == "auto":
        multi_currency = bool(store.supports_currency())
    else:
        multi_currency = job.multi_currency == "true"

    return RunSettings(
        target_classification_id=str(target_id),
        multi_currency_enabled=multi_currency,
        source_classification_id=str(source_id) if source_id is not None else None
    )
