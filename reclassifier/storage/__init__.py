# ==============================================
# STORAGE (MongoDB | MySQL)
# ==============================================
#
# This package holds the record store backends and the executor
# that writes reclassifications back to them.
#
# Every backend provides the same methods, so the job never
# needs to know which one it talks to:
#   - stream_batches(source_filter, batch_size)   (RecordSource)
#   - find_reports_to(target_ids)                 (ReportsToLookup)
#   - apply_classification(requests)              (BulkMutator)
#   - resolve_classification_id(name)             (ConfigProvider)
#   - supports_currency()                         (ConfigProvider)
#   - ensure_indexes(), connect(), disconnect()
#
# Modules:
# --------
# - mongo_client.py               → MongoDB backend
# - mysql_client.py               → MySQL backend
# - reclassification_executor.py  → Builds requests, runs the bulk mutation
#
# ==============================================

from .mongo_client import MongoClient
from .mysql_client import MySQLClient
from .reclassification_executor import ReclassificationExecutor


def create_store(config):
    """
    Build (but don't connect) the record store selected by config.job.backend.

    Args:
        config: AppConfig

    Returns:
        MongoClient or MySQLClient
    """
    if config.job.backend == "mysql":
        return MySQLClient(
            host=config.mysql.host,
            port=config.mysql.port,
            user=config.mysql.user,
            password=config.mysql.password,
            database=config.mysql.database
        )
    return MongoClient(
        host=config.mongo.host,
        port=config.mongo.port,
        database=config.mongo.database,
        user=config.mongo.user,
        password=config.mongo.password
    )


__all__ = [
    "MongoClient",
    "MySQLClient",
    "ReclassificationExecutor",
    "create_store"
]
