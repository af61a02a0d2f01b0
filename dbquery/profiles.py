"""
Named Profiles

A profile is a saved set of run options (connection, output, schema scope
and LLM parameters) stored by name in ~/.dbquery/profiles.json.

Usage:
    save_profile(path, "dev", config)
    profile = load_profile(path, "dev")
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from dbquery.errors import ConfigurationError
from dbquery.utils.durations import format_duration

if TYPE_CHECKING:
    from dbquery.config import QueryConfig

logger = logging.getLogger(__name__)


class Profile(BaseModel):
    """Saved run options. Empty or zero fields leave the current value alone."""

    db_type: str = ""
    db_url: str = ""
    output: str = ""
    limit: int = 0
    tables: list[str] = Field(default_factory=list)
    schema_file: str = ""
    schema_max_tables: int = 0

    model: str = ""
    llm_base_url: str = ""
    temperature: float = 0.0
    max_tokens: int = 0
    timeout: str = ""

    allow_write: bool = False
    no_auto_limit: bool = False

    def to_json_dict(self) -> dict:
        return self.model_dump(exclude_defaults=True)


_PROFILES_ADAPTER = TypeAdapter(dict[str, Profile])


def load_profiles(path: str | Path) -> dict[str, Profile]:
    """
    Read every profile; a missing or blank file yields an empty mapping.

    Raises:
        ConfigurationError: If the file is unreadable or malformed
    """
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError as e:
        raise ConfigurationError(f"read profiles file: {e}") from e

    if not raw.strip():
        return {}

    try:
        return _PROFILES_ADAPTER.validate_json(raw)
    except ValidationError as e:
        raise ConfigurationError(f"parse profiles file: {e}") from e


def load_profile(path: str | Path, name: str) -> Profile:
    """
    Read one profile by name.

    Raises:
        ConfigurationError: If the name is blank or not present in the file
    """
    key = name.strip()
    if not key:
        raise ConfigurationError("profile name cannot be empty")

    profiles = load_profiles(path)
    if key not in profiles:
        raise ConfigurationError(f"profile {key!r} not found in {path}")
    return profiles[key]


def profile_from_config(config: QueryConfig) -> Profile:
    """Capture the persistable part of a resolved configuration."""
    return Profile(
        db_type=config.dialect,
        db_url=config.db_url,
        output=config.output,
        limit=config.limit,
        tables=list(config.tables),
        schema_file=config.schema_file or "",
        schema_max_tables=config.schema_max_tables,
        model=config.model,
        llm_base_url=config.llm_base_url,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
        timeout=format_duration(config.timeout),
        allow_write=config.allow_write,
        no_auto_limit=config.no_auto_limit,
    )


def save_profile(path: str | Path, name: str, config: QueryConfig) -> None:
    """
    Store the configuration under a profile name, replacing any previous one.

    Raises:
        ConfigurationError: If the name is blank or the file cannot be written
    """
    key = name.strip()
    if not key:
        raise ConfigurationError("--save-profile cannot be empty")

    profiles = load_profiles(path)
    profiles[key] = profile_from_config(config)

    payload = {profile_name: profile.to_json_dict() for profile_name, profile in profiles.items()}
    target = Path(path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"write profiles file: {e}") from e

    logger.info(f"Saved profile {key!r} to {target}")
