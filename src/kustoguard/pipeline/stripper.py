"""Removes fields injected by kustomize and other build tooling."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from kustoguard.models.document import Document, NodePath

KeyPath = Sequence[str]

DEFAULT_SUPERFLUOUS_KEYS: list[list[str]] = [
    ["status"],
    ["metadata", "creationTimestamp"],
    ["spec", "template", "metadata", "creationTimestamp"],
    ["metadata", "annotations", "config.kubernetes.io/origin"],
    ["metadata", "annotations", "config.k8s.io/id"],
    ["metadata", "annotations", "internal.config.kubernetes.io/path"],
    ["metadata", "annotations", "internal.config.kubernetes.io/index"],
    ["metadata", "annotations", "internal.config.kubernetes.io/id"],
    ["metadata", "annotations", "internal.config.kubernetes.io/annotations-migration-resource-id"],
    ["metadata", "annotations", "kustomize.config.k8s.io/id"],
    ["metadata", "annotations", "kustomize.config.k8s.io/needs-hash"],
    ["metadata", "annotations", "kustomize.config.k8s.io/behavior"],
]


def _segments(key_path: KeyPath) -> NodePath:
    # Numeric segments index into sequences; everything else is a mapping key.
    return tuple(int(s) if s.isdigit() else s for s in key_path)


def _remove(document: Document, path: NodePath) -> bool:
    parent = document.node_at(path[:-1])
    last = path[-1]
    if isinstance(parent, dict) and last in parent:
        del parent[last]
    elif isinstance(parent, list) and isinstance(last, int) and 0 <= last < len(parent):
        del parent[last]
    else:
        return False
    if path[:-1] and path[:-1] not in document.stripped_parents:
        document.stripped_parents.append(path[:-1])
    return True


def strip_superfluous(
    documents: Iterable[Document],
    key_paths: Iterable[KeyPath],
    logger: logging.Logger | None = None,
) -> None:
    """Delete every deny-listed key path from each document, in place.

    Only exact structural matches are removed.  Documents that failed to parse
    are left alone.
    """
    paths = [_segments(p) for p in key_paths if p]
    for document in documents:
        if not document.is_mapping or document.errors:
            continue
        for path in paths:
            if _remove(document, path) and logger is not None:
                logger.info("Removed %s from %s", ".".join(map(str, path)), document.label())
