"""Configuration models for custom validation rules and output actions."""

from __future__ import annotations

import re
from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


class RuleCheck(StrEnum):
    REQUIRED = "required"
    FORBIDDEN = "forbidden"
    EQUALS = "equals"
    MATCHES = "matches"


class CustomRule(BaseModel):
    """A user-defined assertion about one field path of matching documents.

    ``path`` is a list of segments; ``*`` matches every key of a mapping or
    every item of a sequence.  A dotted string is accepted as shorthand when no
    segment contains a dot.
    """

    name: str
    path: list[str] = Field(min_length=1)
    check: RuleCheck = RuleCheck.FORBIDDEN
    kinds: list[str] = []
    value: Any = None
    pattern: str | None = None
    message: str | None = None

    @field_validator("path", mode="before")
    @classmethod
    def _split_dotted(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [segment for segment in value.split(".") if segment]
        return value

    @model_validator(mode="after")
    def _check_arguments(self) -> CustomRule:
        if self.check == RuleCheck.MATCHES:
            if self.pattern is None:
                raise ValueError(f"Rule '{self.name}' uses 'matches' but has no pattern")
            try:
                re.compile(self.pattern)
            except re.error as exc:
                raise ValueError(f"Rule '{self.name}' has an invalid pattern: {exc}") from exc
        if self.check == RuleCheck.EQUALS and self.value is None:
            raise ValueError(f"Rule '{self.name}' uses 'equals' but has no value")
        return self

    @property
    def dotted_path(self) -> str:
        return ".".join(self.path)

    def applies_to(self, kind: str | None) -> bool:
        return not self.kinds or kind in self.kinds


class OutputActionType(StrEnum):
    FILE = "file"
    ERRORS_FILE = "errors-file"
    STDOUT = "stdout"


class OutputAction(BaseModel):
    """Something to do with the artifact once the pipeline has finished."""

    type: OutputActionType
    path: Path | None = None
    skip_on_errors: bool = False

    @model_validator(mode="after")
    def _check_path(self) -> OutputAction:
        if self.type != OutputActionType.STDOUT and self.path is None:
            raise ValueError(f"Output action '{self.type}' requires a path")
        return self
