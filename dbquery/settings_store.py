"""
Settings store utilities.

Persists default connection and LLM settings to ~/.dbquery/settings.json so
`dbquery set` needs to run only once. The file holds a secret, so it is
written with mode 0600.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from pydantic import BaseModel, ValidationError

from dbquery.connectors.factory import normalize_dialect
from dbquery.errors import ConfigurationError, UnsupportedDialectError

logger = logging.getLogger(__name__)


class StoredSettings(BaseModel):
    """Defaults saved by `dbquery set`."""

    api_key: str = ""
    db_type: str = ""
    db_url: str = ""

    def to_json_dict(self) -> dict[str, str]:
        return self.model_dump(exclude_defaults=True)


def _normalized(settings: StoredSettings) -> StoredSettings:
    db_type = settings.db_type.strip()
    if db_type:
        db_type = normalize_dialect(db_type)
    return StoredSettings(
        api_key=settings.api_key.strip(),
        db_type=db_type,
        db_url=settings.db_url.strip(),
    )


def load_settings(path: str | Path) -> StoredSettings:
    """
    Read stored defaults; a missing or blank file yields empty settings.

    Raises:
        ConfigurationError: If the file is unreadable, malformed, or names an
            unsupported db_type
    """
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        return StoredSettings()
    except OSError as e:
        raise ConfigurationError(f"read settings file: {e}") from e

    if not raw.strip():
        return StoredSettings()

    try:
        settings = StoredSettings.model_validate_json(raw)
    except ValidationError as e:
        raise ConfigurationError(f"parse settings file: {e}") from e

    try:
        return _normalized(settings)
    except UnsupportedDialectError as e:
        raise ConfigurationError(f"invalid db_type in settings file: {e}") from e


def save_settings(path: str | Path, settings: StoredSettings) -> None:
    """
    Write stored defaults with owner-only permissions.

    Raises:
        UnsupportedDialectError: If db_type is not a supported dialect
        ConfigurationError: If the file cannot be written
    """
    settings = _normalized(settings)
    target = Path(path)
    payload = json.dumps(settings.to_json_dict(), indent=2)

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(payload)
        os.chmod(target, 0o600)
    except OSError as e:
        raise ConfigurationError(f"write settings file: {e}") from e

    logger.debug(f"Saved settings to {target}")


def mask_secret(value: str) -> str:
    """Keep the first and last four characters of secrets longer than eight."""
    secret = value.strip()
    if not secret:
        return ""
    if len(secret) <= 8:
        return "*" * len(secret)
    return secret[:4] + "*" * (len(secret) - 8) + secret[-4:]
