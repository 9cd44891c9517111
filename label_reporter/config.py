"""Configuration constants and environment lookup."""

import os
from typing import Optional


def get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    """Get environment variable with optional default."""
    return os.environ.get(name, default)


# Core Configuration Constants
DEFAULT_OUTPUT = "test-report.json"
"""str: Archival document path used when no output option is given."""

DEFAULT_APP = "qa-tests"
"""str: Application tag attached to every flat record."""

LABEL_PREFIX = "label_"
"""str: Reserved prefix of every normalized label key."""

# Logging
ENV_LOG_LEVEL = "LABEL_REPORT_LOG_LEVEL"
ENV_LOG_DIR = "LABEL_REPORT_LOG_DIR"
ENV_ENVIRONMENT = "LABEL_REPORT_ENVIRONMENT"
