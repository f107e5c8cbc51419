"""Evaluates user-defined field rules against the serialized artifact."""

from __future__ import annotations

import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any

from kustoguard.models.document import Document
from kustoguard.models.errors import ErrorStage, StageError
from kustoguard.models.rules import CustomRule, RuleCheck
from kustoguard.parser.loader import ManifestLoader

WILDCARD = "*"


@dataclass
class _Match:
    """One expansion of a rule path inside a document."""

    path: str
    found: bool
    value: Any = None
    container: Any = None
    key: Any = None


def _walk(
    node: Any,
    segments: Sequence[str],
    trail: tuple[str, ...] = (),
    container: Any = None,
    key: Any = None,
) -> Iterator[_Match]:
    if not segments:
        yield _Match(".".join(trail), True, node, container, key)
        return
    head, rest = segments[0], segments[1:]
    if head == WILDCARD:
        if isinstance(node, dict):
            for k, v in node.items():
                yield from _walk(v, rest, (*trail, str(k)), node, k)
        elif isinstance(node, list):
            for i, v in enumerate(node):
                yield from _walk(v, rest, (*trail, str(i)), node, i)
        else:
            yield _Match(".".join((*trail, head)), False, container=container, key=key)
        return
    if isinstance(node, dict) and head in node:
        yield from _walk(node[head], rest, (*trail, head), node, head)
    elif isinstance(node, list) and head.isdigit() and int(head) < len(node):
        yield from _walk(node[int(head)], rest, (*trail, head), node, int(head))
    else:
        yield _Match(".".join((*trail, *segments)), False, container=container, key=key)


def _violation(rule: CustomRule, match: _Match) -> str | None:
    """Describe why ``match`` breaks ``rule``, or ``None`` if it does not."""
    if rule.check == RuleCheck.FORBIDDEN:
        return f"{match.path} is forbidden" if match.found else None
    if rule.check == RuleCheck.REQUIRED:
        return None if match.found else f"{match.path} is required"
    if not match.found:
        return None
    if rule.check == RuleCheck.EQUALS:
        if match.value != rule.value:
            return f"{match.path} is {match.value!s}, expected {rule.value!s}"
        return None
    # RuleCheck.MATCHES
    scalar = not isinstance(match.value, (dict, list))
    if not scalar or not re.fullmatch(rule.pattern or "", str(match.value)):
        return f"{match.path} does not match /{rule.pattern}/"
    return None


def _check_document(document: Document, rule: CustomRule) -> list[StageError]:
    errors: list[StageError] = []
    for match in _walk(document.content, rule.path):
        problem = _violation(rule, match)
        if problem is None:
            continue
        span = None
        if match.container is not None:
            span = document.span_at(match.container, match.key)
        errors.append(
            StageError(
                stage=ErrorStage.CUSTOM,
                document=document.label(),
                span=span,
                message=f"[{rule.name}] {rule.message or problem}",
            )
        )
    return errors


def evaluate_rules(
    yaml: str,
    rules: Sequence[CustomRule],
    loader: ManifestLoader | None = None,
) -> list[str]:
    """Apply every rule to every well-formed document of ``yaml``.

    Positions refer to lines of the artifact.  Commented-out error blocks
    carry no documents and are skipped naturally.
    """
    loader = loader or ManifestLoader()
    errors: list[StageError] = []
    for document in loader.load_documents(yaml):
        if not document.is_mapping or document.errors:
            continue
        for rule in rules:
            if rule.applies_to(document.kind):
                errors.extend(_check_document(document, rule))
    return [error.format() for error in errors]
