"""Removal of stored settings, profiles and history for `dbquery reset`."""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from dbquery.errors import ConfigurationError

logger = logging.getLogger(__name__)

RESET_TARGETS = ("config", "profile", "all")


@dataclass(frozen=True)
class ResetItem:
    label: str
    path: Path

    def describe(self) -> str:
        return f"{self.label} ({self.path})"


@dataclass
class ResetReport:
    dry_run: bool = False
    removed: list[ResetItem] = field(default_factory=list)
    would_remove: list[ResetItem] = field(default_factory=list)
    missing: list[ResetItem] = field(default_factory=list)

    def lines(self) -> list[str]:
        """Human-readable summary, one line per entry."""
        output = []
        if self.dry_run:
            output.append("Dry run (no files deleted).")
            if self.would_remove:
                output.append("Would remove:")
                output.extend(f"- {item.describe()}" for item in self.would_remove)
            else:
                output.append("Nothing would be removed.")
        elif self.removed:
            output.append("Removed:")
            output.extend(f"- {item.describe()}" for item in self.removed)
        else:
            output.append("Nothing was removed.")

        if self.missing:
            output.append("Already missing:")
            output.extend(f"- {item.describe()}" for item in self.missing)
        return output


def reset_items(
    target: str,
    settings_file: str | Path,
    profiles_file: str | Path,
    history_file: str | Path,
) -> list[ResetItem]:
    """
    Files affected by a reset target.

    Raises:
        ConfigurationError: If the target is not config, profile or all
    """
    name = target.strip().lower()
    if name == "config":
        return [ResetItem("config", Path(settings_file))]
    if name == "profile":
        return [ResetItem("profile", Path(profiles_file))]
    if name == "all":
        return [
            ResetItem("config", Path(settings_file)),
            ResetItem("profile", Path(profiles_file)),
            ResetItem("history", Path(history_file)),
        ]
    raise ConfigurationError(f"unsupported reset target {target!r} (expected config|profile|all)")


def run_reset(items: list[ResetItem], dry_run: bool = False) -> ResetReport:
    """
    Delete (or, for a dry run, inspect) each file.

    Raises:
        ConfigurationError: If a file exists but cannot be checked or removed
    """
    report = ResetReport(dry_run=dry_run)
    for item in items:
        if dry_run:
            try:
                item.path.stat()
            except FileNotFoundError:
                report.missing.append(item)
            except OSError as e:
                raise ConfigurationError(f"check {item.label}: {e}") from e
            else:
                report.would_remove.append(item)
            continue

        try:
            item.path.unlink()
        except FileNotFoundError:
            report.missing.append(item)
        except OSError as e:
            raise ConfigurationError(f"remove {item.label}: {e}") from e
        else:
            logger.info(f"Removed {item.describe()}")
            report.removed.append(item)
    return report
