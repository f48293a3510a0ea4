# ==============================================
# Organization Reclassifier
# ==============================================
#
# Package Structure:
#
# reclassifier/
# ├── evaluation/                # Per-record rules + hierarchy pass
# ├── storage/                   # MongoDB / MySQL record stores, bulk executor
# ├── reporting/                 # Diagnostics report, report files
# ├── config.py                  # Configuration management
# ├── reclassification_job.py    # Orchestrator class
# └── cli.py                     # Command line entry point
#
# ==============================================

__version__ = "0.1.0"
