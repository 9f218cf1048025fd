"""Config module exports."""

from phpintel.config.loader import PhpIntelSettings, get_index_path, load_config
from phpintel.config.models import (
    AnalysisConfig,
    DatabaseConfig,
    IndexConfig,
    LintConfig,
    LoggingConfig,
    PhpIntelConfig,
)

__all__ = [
    "load_config",
    "get_index_path",
    "PhpIntelConfig",
    "PhpIntelSettings",
    "AnalysisConfig",
    "DatabaseConfig",
    "IndexConfig",
    "LintConfig",
    "LoggingConfig",
]
