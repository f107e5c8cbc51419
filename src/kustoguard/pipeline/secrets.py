"""Detects Secret manifests that carry unencrypted values."""

from __future__ import annotations

import base64
import binascii
import re
from collections.abc import Iterable
from typing import Any

from kustoguard.models.document import Document
from kustoguard.models.errors import ErrorStage, StageError

_SECRET_SECTIONS = ("data", "stringData")

# Values that stand in for a real secret: env/shell substitutions, <angle>
# placeholders, template expressions and SOPS ciphertext.
_PLACEHOLDER_RE = re.compile(
    r"""^(?:
        \$\{[^}]*\}
      | \$\([^)]*\)
      | <[^<>]*>
      | \{\{.*\}\}
      | ENC\[.*\]
    )$""",
    re.VERBOSE | re.DOTALL,
)


def is_placeholder(value: Any) -> bool:
    if value is None:
        return True
    text = str(value).strip()
    return not text or bool(_PLACEHOLDER_RE.match(text))


def _decode(value: Any) -> str | None:
    try:
        return base64.b64decode(str(value), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None


def _is_unencrypted(section: str, value: Any) -> bool:
    if is_placeholder(value):
        return False
    if section == "data":
        decoded = _decode(value)
        if decoded is not None and is_placeholder(decoded):
            return False
    return True


def _scan_secret(document: Document) -> list[tuple[str, Any, str]]:
    """Return ``(section, container, key)`` for every unencrypted value."""
    content = document.content
    offending: list[tuple[str, Any, str]] = []
    for section in _SECRET_SECTIONS:
        values = content.get(section)
        if not isinstance(values, dict):
            continue
        for key, value in values.items():
            if _is_unencrypted(section, value):
                offending.append((section, values, str(key)))
    return offending


def check_secrets(documents: Iterable[Document], allowed: Iterable[str]) -> list[StageError]:
    """Report every Secret holding plain values that is not allow-listed.

    One ``secret-policy`` error per offending document; documents are never
    modified and scanning always covers the whole collection.
    """
    allowed_ids = set(allowed)
    errors: list[StageError] = []
    for document in documents:
        if not document.is_mapping or document.kind != "Secret":
            continue
        if "sops" in document.content:
            continue
        offending = _scan_secret(document)
        if not offending or document.identities() & allowed_ids:
            continue
        keys = ", ".join(f"{section}.{key}" for section, _, key in offending)
        _, container, key = offending[0]
        identifier = (
            f"{document.namespace}/{document.name}" if document.namespace else document.name
        )
        errors.append(
            StageError(
                stage=ErrorStage.SECRET_POLICY,
                document=document.label(),
                span=document.span_at(container, key),
                message=(
                    f"Secret holds unencrypted values ({keys}); encrypt it or add "
                    f"'{identifier}' to the allowed secrets"
                ),
            )
        )
    return errors
