"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (PHPINTEL__SECTION__KEY)
3. Repo YAML (.phpintel/config.yaml)
4. Global YAML (~/.config/phpintel/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    PHPINTEL__<SECTION>__<KEY>=<VALUE>

Examples:
    PHPINTEL__LOGGING__LEVEL=DEBUG
    PHPINTEL__INDEX__MAX_FILE_SIZE_MB=4
    PHPINTEL__ANALYSIS__MAX_DEDUCTION_DEPTH=32
    PHPINTEL__LINT__UNKNOWN_MEMBERS=false
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        PHPINTEL__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every indexed file and may impact performance.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class IndexConfig(BaseModel):
    """Index configuration.

    Env vars:
        PHPINTEL__INDEX__MAX_FILE_SIZE_MB: Skip files larger than this
        PHPINTEL__INDEX__INDEX_PATH: Override index storage location
    """

    extensions: list[str] = Field(
        default_factory=lambda: ["php"],
        description="File extensions (without dot) treated as PHP source.",
    )
    excluded_paths: list[str] = Field(
        default_factory=lambda: ["**/.git/**", "**/node_modules/**"],
        description="Glob patterns (relative to the indexed root) that are never indexed.",
    )
    max_file_size_mb: int = Field(
        default=10,
        description="Skip files larger than this (MB). Generated PHP can be huge.",
    )
    index_path: str | None = Field(
        default=None,
        description="Override index storage location. Default: .phpintel/ in the project.",
    )

    @field_validator("extensions")
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        return [ext.lower().lstrip(".") for ext in v if ext.strip(".")]


class DatabaseConfig(BaseModel):
    """Database connection configuration.

    Env vars:
        PHPINTEL__DATABASE__BUSY_TIMEOUT_MS: SQLite busy timeout
        PHPINTEL__DATABASE__MAX_RETRIES: Max retry attempts for locked DB
    """

    busy_timeout_ms: int = Field(
        default=30000,
        description="SQLite busy timeout (ms). How long to wait for locks.",
    )
    max_retries: int = Field(
        default=3,
        description="Max retry attempts for locked database errors.",
    )
    retry_base_delay_sec: float = Field(
        default=0.1,
        description="Base delay between retries (exponential backoff).",
    )


class AnalysisConfig(BaseModel):
    """Resolution and type deduction limits.

    Env vars:
        PHPINTEL__ANALYSIS__MAX_DEDUCTION_DEPTH: Recursion bound for type deduction
        PHPINTEL__ANALYSIS__MAX_RESOLUTION_DEPTH: Inheritance depth bound
    """

    max_deduction_depth: int = Field(
        default=64,
        description="Maximum nested deductions (member chains, variable lookups) per query. "
        "Deeper queries return no types instead of recursing further.",
    )
    max_resolution_depth: int = Field(
        default=128,
        description="Maximum depth of the parent/interface/trait graph walked when "
        "flattening a classlike.",
    )

    @field_validator("max_deduction_depth", "max_resolution_depth")
    @classmethod
    def validate_depth(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Depth must be at least 1, got {v}")
        return v


class LintConfig(BaseModel):
    """Linter toggles.

    Env vars:
        PHPINTEL__LINT__SYNTAX_ERRORS, PHPINTEL__LINT__UNKNOWN_CLASSES, ...
    """

    syntax_errors: bool = Field(default=True, description="Report parse diagnostics.")
    unknown_classes: bool = Field(
        default=True, description="Report classlike references that are not indexed."
    )
    unknown_global_functions: bool = Field(
        default=True, description="Report calls to functions that are not indexed."
    )
    unknown_global_constants: bool = Field(
        default=True, description="Report constant fetches that are not indexed."
    )
    unknown_members: bool = Field(
        default=True,
        description="Report method calls and property fetches on known classlikes "
        "that lack the member.",
    )


class PhpIntelConfig(BaseModel):
    """Root configuration for phpintel.

    All settings can be configured via:
    1. Environment variables: PHPINTEL__SECTION__KEY
    2. YAML config files (repo or global)
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    index: IndexConfig = Field(default_factory=IndexConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    lint: LintConfig = Field(default_factory=LintConfig)
