"""Multi-document YAML loader with per-document error isolation."""

from __future__ import annotations

import io
import re
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap
from ruamel.yaml.error import MarkedYAMLError, YAMLError

from kustoguard.models.document import Document
from kustoguard.models.errors import SourceSpan

# ---------------------------------------------------------------------------
# Safety limits
# ---------------------------------------------------------------------------

_MAX_DOCUMENT_SIZE = 5_000_000  # 5M characters per document
_MAX_NODE_COUNT = 100_000

_START_RE = re.compile(r"^---(?:[ \t]|\r?\n|$)")
_END_RE = re.compile(r"^\.\.\.(?:[ \t]|\r?\n|$)")
_KIND_RE = re.compile(r"^kind:[ \t]*['\"]?([^'\"\s#]+)", re.MULTILINE)
_FIELD_RE = re.compile(r"^([ \t]+)(name|namespace):[ \t]*['\"]?([^'\"\s#]+)")


class YAMLSafetyError(Exception):
    """Raised when a document violates size or node-count limits.

    Reported as a structural error on the offending document rather than
    aborting the run.
    """


def _sniff_identity(chunk: str) -> dict[str, str]:
    """Best-effort kind/name/namespace from raw text that failed to parse."""
    identity: dict[str, str] = {}
    match = _KIND_RE.search(chunk)
    if match:
        identity["kind"] = match.group(1)
    in_metadata = False
    indent: str | None = None
    for line in chunk.splitlines():
        if line.startswith("metadata:"):
            in_metadata = True
            continue
        if not in_metadata:
            continue
        if line and not line[0].isspace():
            break
        field = _FIELD_RE.match(line)
        if field is None:
            continue
        if indent is None:
            indent = field.group(1)
        if field.group(1) == indent:
            identity.setdefault(field.group(2), field.group(3))
    return identity


def _describe(exc: YAMLError) -> str:
    if isinstance(exc, MarkedYAMLError):
        parts = [part for part in (exc.context, exc.problem) if part]
        if parts:
            return " ".join("; ".join(parts).split())
    return " ".join(str(exc).split())


def _span_from_marks(exc: YAMLError, line_offset: int) -> SourceSpan | None:
    problem = getattr(exc, "problem_mark", None)
    if problem is None:
        return None
    start = getattr(exc, "context_mark", None) or problem
    if (start.line, start.column) > (problem.line, problem.column):
        start = problem
    return SourceSpan(
        line=start.line + line_offset + 1,
        column=start.column + 1,
        end_line=problem.line + line_offset + 1,
        end_column=problem.column + 1,
    )


class ManifestLoader:
    """Parses rendered multi-document YAML into ``Document`` objects.

    Uses ruamel.yaml in round-trip mode, which preserves quoting, comments and
    line/column info on every parsed node.  Each document is parsed on its
    own so that a syntax error only affects the document it occurs in.
    """

    def __init__(self) -> None:
        self._yaml = YAML()
        self._yaml.preserve_quotes = True
        # Never fold long scalars; keeps the artifact diffable.
        self._yaml.width = 4096

    # -- safety checks -------------------------------------------------------

    @staticmethod
    def _check_yaml_safety(content: str) -> None:
        if len(content) > _MAX_DOCUMENT_SIZE:
            raise YAMLSafetyError(
                f"YAML document exceeds maximum size "
                f"({len(content):,} chars > {_MAX_DOCUMENT_SIZE:,} limit)"
            )

    @staticmethod
    def _check_node_count(data: Any, limit: int = _MAX_NODE_COUNT) -> None:
        """Post-parse defense-in-depth: reject documents with too many nodes."""
        count = 0
        stack: list[Any] = [data]
        while stack:
            node = stack.pop()
            count += 1
            if count > limit:
                raise YAMLSafetyError(
                    f"YAML document exceeds maximum node count ({limit:,})"
                )
            if isinstance(node, dict):
                stack.extend(node.values())
            elif isinstance(node, list):
                stack.extend(node)

    # -- splitting -----------------------------------------------------------

    @staticmethod
    def split_documents(content: str) -> list[tuple[int, str]]:
        """Split a YAML stream on column-0 ``---`` / ``...`` marker lines.

        Returns ``(line_offset, text)`` pairs.  A ``---`` line stays at the top
        of the chunk it opens (it may carry a tag or comment); a ``...`` line
        closes the chunk it ends.
        """
        chunks: list[tuple[int, str]] = []
        start = 0
        lines: list[str] = []
        for number, line in enumerate(content.splitlines(keepends=True)):
            if _START_RE.match(line):
                if lines:
                    chunks.append((start, "".join(lines)))
                start, lines = number, [line]
            elif _END_RE.match(line):
                lines.append(line)
                chunks.append((start, "".join(lines)))
                start, lines = number + 1, []
            else:
                lines.append(line)
        if lines:
            chunks.append((start, "".join(lines)))
        return chunks

    # -- public loading API --------------------------------------------------

    def load_documents(self, content: str) -> list[Document]:
        """Parse every document of a YAML stream, in stream order.

        Empty and comment-only documents are dropped.  Parse failures become
        structural errors on the affected document.
        """
        documents: list[Document] = []
        for line_offset, chunk in self.split_documents(content):
            if not chunk.strip():
                continue
            document = self._load_document(chunk, line_offset, len(documents))
            if document is not None:
                documents.append(document)
        return documents

    def load(self, path: Path) -> list[Document]:
        """Load a YAML file from disk."""
        with path.open("r", encoding="utf-8") as handle:
            return self.load_documents(handle.read())

    def _load_document(self, chunk: str, line_offset: int, index: int) -> Document | None:
        def _failed() -> Document:
            return Document(
                None,
                index=index,
                line_offset=line_offset,
                fallback_identity=_sniff_identity(chunk),
            )

        try:
            self._check_yaml_safety(chunk)
            data = self._yaml.load(chunk)
            if data is None:
                return None
            self._check_node_count(data)
        except YAMLSafetyError as exc:
            document = _failed()
            document.add_error(str(exc), SourceSpan(line=line_offset + 1, column=1))
            return document
        except YAMLError as exc:
            document = _failed()
            document.add_error(_describe(exc), _span_from_marks(exc, line_offset))
            return document

        document = Document(data, index=index, line_offset=line_offset)
        if not isinstance(data, CommentedMap):
            document.add_error(
                f"Document root must be a mapping, not {type(data).__name__}",
                SourceSpan(line=line_offset + 1, column=1),
            )
        return document

    # -- dumping -------------------------------------------------------------

    def dump(self, document: Document) -> str:
        """Serialize one document's content tree to YAML text."""
        stream = io.StringIO()
        self._yaml.dump(document.content, stream)
        return stream.getvalue()

    def dump_data(self, data: Any) -> str:
        """Serialize plain data (lists/dicts of scalars) to YAML text."""
        stream = io.StringIO()
        self._yaml.dump(data, stream)
        return stream.getvalue()
