"""Structured error models with YAML source position tracking."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class PipelineError(Exception):
    """Base class for fatal errors that abort a run."""


class ErrorStage(StrEnum):
    STRUCTURAL = "structural"
    SECRET_POLICY = "secret-policy"
    SCHEMA = "schema"
    CUSTOM = "custom"


class SourceSpan(BaseModel):
    """Points to a location in the rendered YAML stream (1-based)."""

    model_config = ConfigDict(frozen=True)

    line: int
    column: int
    end_line: int | None = None
    end_column: int | None = None

    @property
    def position(self) -> str:
        return f"{self.line}:{self.column}"

    @property
    def range(self) -> str:
        end_line = self.end_line if self.end_line is not None else self.line
        end_column = self.end_column if self.end_column is not None else self.column
        return f"{self.line}:{self.column}-{end_line}:{end_column}"


class StageError(BaseModel):
    """A single accumulated (non-fatal) finding.

    ``document`` is the label of the offending document, or ``None`` when the
    error belongs to a whole stage (e.g. a schema validator report line).
    """

    model_config = ConfigDict(frozen=True)

    stage: ErrorStage
    message: str
    document: str | None = None
    span: SourceSpan | None = None

    def format(self) -> str:
        """Render as ``<label> <position> <range>: <message>``."""
        if self.document is None:
            return self.message
        if self.span is None:
            return f"{self.document}: {self.message}"
        return f"{self.document} {self.span.position} {self.span.range}: {self.message}"
