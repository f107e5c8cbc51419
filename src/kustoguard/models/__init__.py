"""Pydantic domain models for kustoguard."""

from kustoguard.models.document import Document
from kustoguard.models.errors import ErrorStage, PipelineError, SourceSpan, StageError
from kustoguard.models.rules import CustomRule, OutputAction, OutputActionType, RuleCheck

__all__ = [
    "CustomRule",
    "Document",
    "ErrorStage",
    "OutputAction",
    "OutputActionType",
    "PipelineError",
    "RuleCheck",
    "SourceSpan",
    "StageError",
]
