"""Turns the cleaned document collection into one YAML artifact."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence

from kustoguard.models.document import Document
from kustoguard.models.errors import StageError
from kustoguard.parser.loader import ManifestLoader

DOCUMENT_SEPARATOR = "---\n"

logger = logging.getLogger("kustoguard.serializer")


def _error_block(document: Document, errors: Sequence[StageError], loader: ManifestLoader) -> str:
    listing = loader.dump_data(
        [error.model_dump(mode="json", exclude_none=True) for error in errors]
    )
    lines = [f"# Document {document.label()} has errors:"]
    lines.extend(f"# {line}".rstrip() for line in listing.splitlines())
    return "\n".join(lines) + "\n"


def serialize(
    documents: Iterable[Document],
    loader: ManifestLoader | None = None,
    withheld: Iterable[StageError] = (),
) -> tuple[str, list[StageError]]:
    """Serialize each document independently and join them with ``---``.

    A document with errors is emitted as a commented-out error listing so the
    artifact always parses; its errors are returned for the run's error list.
    ``withheld`` are findings already on the run's list (secret-policy) whose
    documents must not reach the artifact either; they are matched by label
    and listed in the block but not returned again.
    """
    loader = loader or ManifestLoader()
    by_label: dict[str, list[StageError]] = defaultdict(list)
    for error in withheld:
        if error.document is not None:
            by_label[error.document].append(error)

    parts: list[str] = []
    errors: list[StageError] = []
    for document in documents:
        extra = by_label.get(document.label(), []) if document.is_mapping else []
        if document.errors or extra:
            block = _error_block(document, [*document.errors, *extra], loader)
            logger.warning("%s", block.rstrip())
            parts.append(block)
            errors.extend(document.errors)
        else:
            parts.append(loader.dump(document))
    return DOCUMENT_SEPARATOR.join(parts), errors
