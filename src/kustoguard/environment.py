"""Pre-flight checks on settings and the host environment."""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable

from kustoguard.models.errors import PipelineError
from kustoguard.settings import Settings


class SettingsError(PipelineError):
    """Raised when the configured paths do not exist."""


class MissingBinaryError(PipelineError):
    """Raised when required executables are not on PATH."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(f"Required binaries not found on PATH: {', '.join(missing)}")


def validate_settings(settings: Settings) -> None:
    problems: list[str] = []
    if not settings.kustomize_path.exists():
        problems.append(f"kustomize path '{settings.kustomize_path}' does not exist")
    for resource in settings.extra_resources:
        if not resource.exists():
            problems.append(f"extra resource '{resource}' does not exist")
    if problems:
        raise SettingsError("Invalid settings: " + "; ".join(problems))


def validate_environment(
    binaries: Iterable[str], logger: logging.Logger | None = None
) -> None:
    """Ensure every binary resolves on PATH, reporting all missing ones at once."""
    missing: list[str] = []
    for binary in binaries:
        location = shutil.which(binary)
        if location is None:
            missing.append(binary)
        elif logger is not None:
            logger.info("Found %s at %s", binary, location)
    if missing:
        raise MissingBinaryError(missing)
