"""Schema validation of the rendered artifact using kubeconform."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from kustoguard.models.errors import PipelineError
from kustoguard.parser.loader import ManifestLoader

logger = logging.getLogger("kustoguard.validation")

# kubeconform exits 1 when it found invalid resources; anything else is a crash.
_FINDINGS_EXIT_CODES = (0, 1)
_FAILED_STATUSES = ("statusInvalid", "statusError")


class SchemaValidatorError(PipelineError):
    """Raised when the schema validator cannot be run or its report is unusable."""


def artifact_labels(yaml: str, loader: ManifestLoader | None = None) -> dict[tuple[str, str], str]:
    """Map ``(kind, name)`` to the document label for every resource in ``yaml``.

    kubeconform reports no namespace, so a pair that occurs in more than one
    namespace is left out and reported with an unknown namespace.
    """
    loader = loader or ManifestLoader()
    labels: dict[tuple[str, str], str] = {}
    ambiguous: set[tuple[str, str]] = set()
    for document in loader.load_documents(yaml):
        if not document.is_mapping or not document.kind or not document.name:
            continue
        key = (document.kind, document.name)
        if key in labels and labels[key] != document.label():
            ambiguous.add(key)
        labels.setdefault(key, document.label())
    return {key: label for key, label in labels.items() if key not in ambiguous}


def parse_report(
    report: dict[str, Any], labels: Mapping[tuple[str, str], str] | None = None
) -> list[str]:
    """Flatten a kubeconform JSON report into one message per finding.

    Findings are labelled ``kind/namespace/name`` like every other error;
    ``labels`` supplies the namespace for resources found in the artifact.
    """
    labels = labels or {}
    errors: list[str] = []
    for resource in report.get("resources") or []:
        if resource.get("status") not in _FAILED_STATUSES:
            continue
        kind = resource.get("kind") or "<unknown>"
        name = resource.get("name") or "<unknown>"
        label = labels.get((kind, name), f"{kind}/<unknown>/{name}")
        details = resource.get("validationErrors") or []
        if details:
            errors.extend(f"{label} {d.get('path', '')}: {d.get('msg', '')}" for d in details)
        else:
            errors.append(f"{label}: {resource.get('msg', 'validation failed')}")
    return errors


async def validate_schema(
    yaml: str,
    binary: str = "kubeconform",
    args: Sequence[str] = (),
) -> list[str]:
    """Pipe ``yaml`` through kubeconform and return its findings.

    Returns a list of error messages (empty if valid).  Failing to run the
    validator at all raises ``SchemaValidatorError``.
    """
    cmd = [*args, "-output", "json", "-"]
    logger.debug("Running %s %s", binary, " ".join(cmd))
    try:
        proc = await asyncio.create_subprocess_exec(
            binary,
            *cmd,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        raise SchemaValidatorError(f"'{binary}' not found; is kubeconform installed?") from exc
    stdout, stderr = await proc.communicate(yaml.encode("utf-8"))
    if proc.returncode not in _FINDINGS_EXIT_CODES:
        raise SchemaValidatorError(
            f"{binary} failed (exit {proc.returncode}): "
            f"{stderr.decode('utf-8', errors='replace').strip()}"
        )
    try:
        report = json.loads(stdout.decode("utf-8") or "{}")
    except json.JSONDecodeError as exc:
        raise SchemaValidatorError(f"{binary} produced an unreadable report: {exc}") from exc
    if not isinstance(report, dict):
        raise SchemaValidatorError(f"{binary} produced an unexpected report: {report!r}")
    errors = parse_report(report, artifact_labels(yaml))
    if proc.returncode != 0 and not errors:
        raise SchemaValidatorError(
            f"{binary} exited {proc.returncode} without reporting findings: "
            f"{stderr.decode('utf-8', errors='replace').strip()}"
        )
    return errors
