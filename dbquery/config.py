"""
Application Configuration

Pydantic-based settings management using environment variables, plus the
per-run QueryConfig resolved from four layers (lowest precedence first):

1. Environment (LLM_*, DATABASE_*, LOG_*, DBQUERY_HOME) and built-in defaults
2. Stored defaults in settings.json (`dbquery set`)
3. A named profile from profiles.json (`--profile`)
4. Options given explicitly on the command line

Usage:
    from dbquery.config import get_settings, resolve_query_config

    settings = get_settings()
    print(settings.llm.model)
    config = resolve_query_config("query", {"question": "count users"})
"""

import logging
import sys
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dbquery.connectors.factory import normalize_dialect
from dbquery.errors import ConfigurationError
from dbquery.profiles import Profile, load_profile, save_profile
from dbquery.settings_store import StoredSettings, load_settings
from dbquery.utils.durations import parse_duration

logger = logging.getLogger(__name__)

QUERY_MODE = "query"
CHAT_MODE = "chat"


class LLMSettings(BaseSettings):
    """OpenAI-compatible provider configuration."""

    api_key: str | None = Field(None, description="API key for the chat completions endpoint")
    model: str = Field(default="gpt-4o-mini", description="Model used for SQL generation")
    base_url: str = Field(
        default="https://api.openai.com/v1",
        description="OpenAI-compatible base URL",
    )
    temperature: float = Field(
        default=0.0,
        ge=0.0,
        le=2.0,
        description="Temperature for LLM responses (0.0 = deterministic)",
    )
    max_tokens: int = Field(
        default=500,
        gt=0,
        description="Maximum tokens per LLM response",
    )
    timeout: float = Field(
        default=30,
        gt=0,
        description="Request timeout in seconds",
    )

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("api_key", mode="before")
    @classmethod
    def normalize_api_key(cls, v: str | None) -> str | None:
        """Treat blank keys as missing."""
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v


class DatabaseSettings(BaseSettings):
    """Target database configuration."""

    db_type: str | None = Field(
        default=None,
        description="Target database type: sqlite, postgres or mysql",
        validation_alias="DATABASE_TYPE",
    )
    url: str | None = Field(
        None,
        description="Target database connection URL or sqlite file path",
    )

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("db_type", "url", mode="before")
    @classmethod
    def normalize_blank(cls, v: str | None) -> str | None:
        """Treat empty strings as missing."""
        if isinstance(v, str) and not v.strip():
            return None
        return v


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Application log level",
    )
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format",
    )
    date_format: str = Field(
        default="%Y-%m-%d %H:%M:%S",
        description="Log timestamp format",
    )
    file: Path | None = Field(
        default=None,
        description="Optional log file path (None = stderr only)",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        extra="ignore",
    )

    def configure(self) -> None:
        """Configure Python logging with these settings."""
        handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

        if self.file:
            self.file.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(self.file))

        logging.basicConfig(
            level=getattr(logging, self.level),
            format=self.format,
            datefmt=self.date_format,
            handlers=handlers,
            force=True,  # Override any existing configuration
        )


class Settings(BaseSettings):
    """
    Main application settings.

    Environment Variables:
        DBQUERY_HOME: Directory for settings.json, profiles.json and history.jsonl
        LLM_*: LLM provider configuration (see LLMSettings)
        DATABASE_TYPE, DATABASE_URL: Default target database (see DatabaseSettings)
        LOG_*: Logging configuration (see LoggingSettings)

    Example:
        >>> settings = get_settings()
        >>> settings.llm.model
        'gpt-4o-mini'
        >>> settings.settings_file
        PosixPath('/home/me/.dbquery/settings.json')
    """

    home: Path = Field(
        default_factory=lambda: Path.home() / ".dbquery",
        description="Directory holding dbquery state files",
        validation_alias="DBQUERY_HOME",
    )

    llm: LLMSettings = Field(default_factory=LLMSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("home", mode="before")
    @classmethod
    def expand_home(cls, v: str | Path) -> Path:
        """Expand ~ in DBQUERY_HOME."""
        return Path(v).expanduser()

    @property
    def settings_file(self) -> Path:
        return self.home / "settings.json"

    @property
    def profiles_file(self) -> Path:
        return self.home / "profiles.json"

    @property
    def history_file(self) -> Path:
        return self.home / "history.jsonl"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Singleton settings instance
    """
    return Settings()


def clear_settings_cache() -> None:
    """
    Clear the settings cache.

    Useful for testing when you need to reload settings with different
    environment variables.
    """
    get_settings.cache_clear()


# ============================================================================
# Per-run Configuration
# ============================================================================


def split_csv(value: str | None) -> list[str]:
    """Split a comma-separated list, dropping blank entries."""
    if not value or not value.strip():
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


class QueryConfig(BaseModel):
    """Fully resolved options for one `ask` or `chat` run."""

    mode: Literal["query", "chat"] = QUERY_MODE

    dialect: str
    db_url: str
    question: str = ""
    output: str = "table"
    output_file: str | None = None
    limit: int = 10
    tables: list[str] = Field(default_factory=list)
    schema_file: str | None = None
    schema_max_tables: int = 40

    model: str = "gpt-4o-mini"
    api_key: str = ""
    llm_base_url: str = "https://api.openai.com/v1"
    temperature: float = 0.0
    max_tokens: int = 500
    timeout: float = 30.0

    dry_run: bool = False
    show_sql: bool = False
    verbose: bool = False
    allow_write: bool = False
    no_auto_limit: bool = False

    profile: str = ""
    history_file: str | None = None
    no_history: bool = False

    @field_validator("dialect")
    @classmethod
    def validate_dialect(cls, v: str) -> str:
        return normalize_dialect(v)

    @field_validator("db_url", "api_key", "question", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("output", mode="before")
    @classmethod
    def validate_output(cls, v: Any) -> Any:
        output = str(v).strip().lower()
        if output not in ("table", "json"):
            raise ValueError(f"unsupported --output {v!r} (expected table|json)")
        return output

    @field_validator("tables", mode="before")
    @classmethod
    def split_tables(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return split_csv(v)
        return [str(item).strip() for item in v if str(item).strip()]

    @field_validator("timeout", mode="before")
    @classmethod
    def parse_timeout(cls, v: Any) -> Any:
        try:
            return parse_duration(v)
        except (TypeError, ValueError) as e:
            raise ValueError(f"invalid --timeout: {e}") from e

    @field_validator("limit")
    @classmethod
    def validate_limit(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("--limit must be > 0")
        return v

    @field_validator("schema_max_tables")
    @classmethod
    def validate_schema_max_tables(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("--schema-max-tables must be > 0")
        return v

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("--timeout must be > 0")
        return v

    @field_validator("max_tokens")
    @classmethod
    def validate_max_tokens(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("--max-tokens must be > 0")
        return v

    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, v: float) -> float:
        if not 0.0 <= v <= 2.0:
            raise ValueError("--temperature must be between 0 and 2")
        return v

    @property
    def requires_llm(self) -> bool:
        return self.mode == CHAT_MODE or bool(self.question)


def _validation_message(exc: ValidationError) -> str:
    error = exc.errors()[0]
    cause = (error.get("ctx") or {}).get("error")
    if cause is not None:
        return str(cause)
    location = ".".join(str(part) for part in error["loc"])
    return f"invalid {location}: {error['msg']}"


def _apply_stored_settings(values: dict[str, Any], stored: StoredSettings) -> None:
    if not values.get("api_key") and stored.api_key:
        values["api_key"] = stored.api_key
    if not values.get("dialect") and stored.db_type:
        values["dialect"] = stored.db_type
    if not values.get("db_url") and stored.db_url:
        values["db_url"] = stored.db_url


def _apply_profile(values: dict[str, Any], profile: Profile) -> None:
    for field_name, key in (
        ("db_type", "dialect"),
        ("db_url", "db_url"),
        ("output", "output"),
        ("schema_file", "schema_file"),
        ("model", "model"),
        ("llm_base_url", "llm_base_url"),
    ):
        text = getattr(profile, field_name).strip()
        if text:
            values[key] = text

    for key in ("limit", "schema_max_tables", "max_tokens"):
        number = getattr(profile, key)
        if number > 0:
            values[key] = number

    if profile.tables:
        values["tables"] = list(profile.tables)

    if profile.timeout.strip():
        try:
            timeout = parse_duration(profile.timeout)
        except ValueError:
            logger.warning(f"Ignoring invalid profile timeout {profile.timeout!r}")
        else:
            if timeout > 0:
                values["timeout"] = timeout

    # Temperature and the boolean switches are always taken from the profile.
    values["temperature"] = profile.temperature
    values["allow_write"] = profile.allow_write
    values["no_auto_limit"] = profile.no_auto_limit


def resolve_query_config(
    mode: str,
    options: Mapping[str, Any],
    settings: Settings | None = None,
) -> QueryConfig:
    """
    Layer environment, stored settings, profile and explicit options.

    Args:
        mode: "query" for a single question, "chat" for the interactive loop
        options: Explicitly supplied options, keyed by QueryConfig field name,
            plus settings_file, profiles_file and save_profile
        settings: Environment settings (default: get_settings())

    Returns:
        Validated QueryConfig

    Raises:
        ConfigurationError: If a required option is missing or invalid
        UnsupportedDialectError: If the database type is unknown
    """
    settings = settings or get_settings()

    values: dict[str, Any] = {
        "mode": mode,
        "dialect": settings.database.db_type or "",
        "db_url": settings.database.url or "",
        "model": settings.llm.model,
        "api_key": settings.llm.api_key or "",
        "llm_base_url": settings.llm.base_url,
        "temperature": settings.llm.temperature,
        "max_tokens": settings.llm.max_tokens,
        "timeout": settings.llm.timeout,
        "history_file": str(settings.history_file),
    }

    settings_file = options.get("settings_file") or settings.settings_file
    _apply_stored_settings(values, load_settings(settings_file))

    profiles_file = options.get("profiles_file") or settings.profiles_file
    profile_name = (options.get("profile") or "").strip()
    if profile_name:
        _apply_profile(values, load_profile(profiles_file, profile_name))
        values["profile"] = profile_name

    for key, value in options.items():
        if key in QueryConfig.model_fields and value is not None:
            values[key] = value

    save_profile_name = (options.get("save_profile") or "").strip()

    if not str(values.get("dialect") or "").strip():
        raise ConfigurationError("--db-type is required")
    if not str(values.get("db_url") or "").strip():
        raise ConfigurationError("--db-url is required")
    if mode == QUERY_MODE and not str(values.get("question") or "").strip() and not save_profile_name:
        raise ConfigurationError("a question is required")

    try:
        config = QueryConfig.model_validate(values)
    except ValidationError as e:
        raise ConfigurationError(_validation_message(e)) from e

    if config.requires_llm and not config.api_key:
        raise ConfigurationError(
            "missing API key: use --api-key or set a default with `dbquery set llm-key`"
        )

    if save_profile_name:
        save_profile(profiles_file, save_profile_name, config)

    logger.debug(
        f"Resolved {config.mode} config for {config.dialect} "
        f"(profile={config.profile or '-'}, output={config.output})"
    )
    return config
