"""Adapter around one parsed manifest document."""

from __future__ import annotations

import copy
from typing import Any

from ruamel.yaml.comments import CommentedBase, CommentedMap, CommentedSeq

from kustoguard.models.errors import ErrorStage, SourceSpan, StageError

_UNKNOWN = "<unknown>"

# A structural path into the content tree: mapping keys and sequence indices.
NodePath = tuple[str | int, ...]


class Document:
    """A parsed YAML document plus its structural errors and identity.

    ``content`` is a ruamel.yaml round-trip tree (``CommentedMap`` for any
    well-formed manifest) and may be ``None`` when parsing failed.  Line and
    column info on the nodes is relative to the document, so ``line_offset``
    records where the document starts in the rendered stream.
    """

    def __init__(
        self,
        content: Any,
        *,
        index: int = 0,
        line_offset: int = 0,
        errors: list[StageError] | None = None,
        fallback_identity: dict[str, str] | None = None,
    ) -> None:
        self._content = content
        self._errors: list[StageError] = list(errors or [])
        self.index = index
        self.line_offset = line_offset
        self.stripped_parents: list[NodePath] = []
        self._fallback_identity = dict(fallback_identity or {})

    # -- content -------------------------------------------------------------

    @property
    def content(self) -> Any:
        return self._content

    @content.setter
    def content(self, value: Any) -> None:
        self._content = value

    @property
    def is_mapping(self) -> bool:
        return isinstance(self._content, dict)

    # -- errors --------------------------------------------------------------

    @property
    def errors(self) -> tuple[StageError, ...]:
        return tuple(self._errors)

    def add_error(self, message: str, span: SourceSpan | None = None) -> StageError:
        """Append a structural error labelled with this document."""
        error = StageError(
            stage=ErrorStage.STRUCTURAL,
            message=message,
            document=self.label(),
            span=span,
        )
        self._errors.append(error)
        return error

    # -- identity ------------------------------------------------------------

    def _field(self, *path: str) -> str | None:
        node = self._content
        for key in path:
            if not isinstance(node, dict):
                return self._fallback_identity.get(path[-1])
            node = node.get(key)
        if node is None or isinstance(node, (dict, list)):
            return self._fallback_identity.get(path[-1])
        return str(node)

    @property
    def kind(self) -> str | None:
        return self._field("kind")

    @property
    def namespace(self) -> str | None:
        return self._field("metadata", "namespace")

    @property
    def name(self) -> str | None:
        return self._field("metadata", "name")

    def label(self) -> str:
        """``kind/namespace/name`` with ``<unknown>`` for absent fields."""
        return "/".join(part or _UNKNOWN for part in (self.kind, self.namespace, self.name))

    def identities(self) -> set[str]:
        """Every spelling an allow-list entry may use for this document."""
        ids = {self.label()}
        if self.name:
            ids.add(self.name)
            if self.namespace:
                ids.add(f"{self.namespace}/{self.name}")
        return ids

    # -- positions -----------------------------------------------------------

    def span_at(self, container: Any, key: str | int) -> SourceSpan | None:
        """Span from a mapping key (or sequence item) to its value."""
        if not isinstance(container, CommentedBase):
            return None
        try:
            if isinstance(container, CommentedMap):
                start = container.lc.key(key)
                end = container.lc.value(key)
            elif isinstance(container, CommentedSeq):
                start = end = container.lc.item(key)
            else:
                return None
        except (AttributeError, KeyError, IndexError, TypeError):
            return None
        if not start:
            return None
        if not end:
            end = start
        return SourceSpan(
            line=start[0] + self.line_offset + 1,
            column=start[1] + 1,
            end_line=end[0] + self.line_offset + 1,
            end_column=end[1] + 1,
        )

    def node_at(self, path: NodePath) -> Any:
        """Resolve ``path`` in the content tree, ``None`` when absent."""
        node = self._content
        for segment in path:
            if isinstance(node, dict) and segment in node:
                node = node[segment]
            elif isinstance(node, list) and isinstance(segment, int) and 0 <= segment < len(node):
                node = node[segment]
            else:
                return None
        return node

    # -- copying -------------------------------------------------------------

    def copy(self) -> Document:
        clone = Document(
            copy.deepcopy(self._content),
            index=self.index,
            line_offset=self.line_offset,
            errors=self._errors,
            fallback_identity=self._fallback_identity,
        )
        clone.stripped_parents = list(self.stripped_parents)
        return clone

    def __repr__(self) -> str:
        return f"Document({self.label()!r}, errors={len(self._errors)})"
