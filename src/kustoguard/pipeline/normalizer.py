"""Idempotent structural cleanups applied to every document after stripping."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any

from ruamel.yaml.scalarstring import DoubleQuotedScalarString, LiteralScalarString

from kustoguard.models.document import Document

# Reserved suffix marking a boolean word that must stay a string. Producers
# that emit it get the exact "<word><marker>" scalar collapsed to a quoted word.
HACKY_BOOL_MARKER = "__kustoguard_bool_string__"

_BOOL_WORDS = frozenset(
    word
    for base in ("y", "yes", "n", "no", "true", "false", "on", "off")
    for word in (base, base.capitalize(), base.upper())
)

_TOP_LEVEL_ORDER = ("apiVersion", "kind", "metadata")
_METADATA_ORDER = ("name", "namespace", "labels", "annotations")


def unmark_bool(value: str) -> str | None:
    """Return the boolean word if ``value`` is exactly ``<word><marker>``.

    The whole scalar must be a single marker token; values that merely contain
    the marker somewhere are not touched.
    """
    if not value.endswith(HACKY_BOOL_MARKER):
        return None
    word = value[: -len(HACKY_BOOL_MARKER)]
    return word if word in _BOOL_WORDS else None


def _rewrite_strings(node: Any, rewrite: Callable[[str], str | None]) -> bool:
    """Apply ``rewrite`` to every string value in the tree (keys excluded)."""
    modified = False
    if isinstance(node, dict):
        items: Iterable[tuple[Any, Any]] = list(node.items())
    elif isinstance(node, list):
        items = list(enumerate(node))
    else:
        return False
    for key, value in items:
        if isinstance(value, str):
            new = rewrite(value)
            if new is not None:
                node[key] = new
                modified = True
        else:
            modified = _rewrite_strings(value, rewrite) or modified
    return modified


# -- passes --------------------------------------------------------------------


def _prune_empty(document: Document) -> bool:
    modified = False
    for parent in sorted(document.stripped_parents, key=len, reverse=True):
        path = parent
        while path:
            node = document.node_at(path)
            if not isinstance(node, (dict, list)) or len(node) > 0:
                break
            del document.node_at(path[:-1])[path[-1]]
            modified = True
            path = path[:-1]
    return modified


def _collapse_bool_marker(value: str) -> str | None:
    word = unmark_bool(value)
    return DoubleQuotedScalarString(word) if word is not None else None


def _tidy_whitespace(value: str) -> str | None:
    if "\n" not in value:
        return None
    tidied = "\n".join(line.rstrip(" \t") for line in value.split("\n"))
    if isinstance(value, LiteralScalarString) and tidied == value:
        return None
    return LiteralScalarString(tidied)


def _reorder(node: Any, priority: tuple[str, ...]) -> bool:
    if not isinstance(node, dict):
        return False
    ordered = [k for k in priority if k in node] + [k for k in node if k not in priority]
    if list(node) == ordered:
        return False
    for key in ordered:
        node.move_to_end(key)
    return True


def _order_keys(document: Document) -> bool:
    top = _reorder(document.content, _TOP_LEVEL_ORDER)
    meta = _reorder(document.content.get("metadata"), _METADATA_ORDER)
    return top or meta


_PASSES: list[tuple[str, Callable[[Document], bool]]] = [
    ("pruned empty nodes", _prune_empty),
    ("collapsed boolean markers", lambda d: _rewrite_strings(d.content, _collapse_bool_marker)),
    ("normalized whitespace", lambda d: _rewrite_strings(d.content, _tidy_whitespace)),
    ("ordered keys", _order_keys),
]


def normalize(
    document: Document, logger: logging.Logger | None = None
) -> tuple[Document, bool]:
    """Return a cleaned copy of ``document`` and whether anything changed."""
    cleaned = document.copy()
    if not cleaned.is_mapping or cleaned.errors:
        return cleaned, False
    modified = False
    for description, apply in _PASSES:
        changed = apply(cleaned)
        if changed and logger is not None:
            logger.info("%s: %s", cleaned.label(), description)
        modified = modified or changed
    return cleaned, modified


def normalize_all(
    documents: Iterable[Document], logger: logging.Logger | None = None
) -> tuple[list[Document], bool]:
    """Normalize a whole collection, OR-ing the per-document flags."""
    cleaned: list[Document] = []
    modified = False
    for document in documents:
        doc, changed = normalize(document, logger)
        cleaned.append(doc)
        modified = modified or changed
    if not modified and logger is not None:
        logger.info("No changes required")
    return cleaned, modified
