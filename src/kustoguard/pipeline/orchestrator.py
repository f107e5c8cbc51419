"""Orchestrates the full run: render → strip → normalize → scan → serialize → validate."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING

from kustoguard.logs import section
from kustoguard.models.errors import ErrorStage, PipelineError, StageError
from kustoguard.models.rules import CustomRule
from kustoguard.parser.loader import ManifestLoader
from kustoguard.pipeline.normalizer import normalize_all
from kustoguard.pipeline.secrets import check_secrets
from kustoguard.pipeline.serializer import serialize
from kustoguard.pipeline.stripper import strip_superfluous
from kustoguard.render.kustomize import render
from kustoguard.validation.custom import evaluate_rules
from kustoguard.validation.schema import validate_schema

if TYPE_CHECKING:
    from kustoguard.settings import Settings

Renderer = Callable[[Path, Sequence[Path], Sequence[str]], Awaitable[str]]
SchemaValidator = Callable[[str], Awaitable[list[str]]]
RuleEvaluator = Callable[[str, Sequence[CustomRule]], list[str]]


class PipelineState(StrEnum):
    PENDING = "pending"
    RENDERED = "rendered"
    STRIPPED = "stripped"
    NORMALIZED = "normalized"
    SECRET_CHECKED = "secret-checked"
    SERIALIZED = "serialized"
    SCHEMA_VALIDATED = "schema-validated"
    CUSTOM_VALIDATED = "custom-validated"
    DONE = "done"


class StageFailedError(PipelineError):
    """An unexpected exception escaped a stage; the run is aborted."""

    def __init__(self, stage: str, cause: BaseException) -> None:
        self.stage = stage
        super().__init__(f"Stage '{stage}' failed: {cause}")


@dataclass
class PipelineResult:
    """The artifact plus every accumulated error, in the order found."""

    yaml: str
    stage_errors: list[StageError] = field(default_factory=list)
    state: PipelineState = PipelineState.DONE

    @property
    def errors(self) -> list[str]:
        return [error.format() for error in self.stage_errors]

    @property
    def valid(self) -> bool:
        return not self.stage_errors


class ManifestPipeline:
    """Runs every stage in sequence, collecting errors without short-circuiting.

    Only one stage touches the document collection at a time.  Accumulated
    errors never stop the run; ``PipelineError`` (and anything unexpected,
    wrapped in ``StageFailedError``) aborts it.
    """

    def __init__(
        self,
        settings: Settings,
        renderer: Renderer | None = None,
        schema_validator: SchemaValidator | None = None,
        rule_evaluator: RuleEvaluator | None = None,
        is_action: bool = False,
    ) -> None:
        self._settings = settings
        self._renderer = renderer or self._render
        self._schema_validator = schema_validator or self._validate_schema
        self._rule_evaluator = rule_evaluator or evaluate_rules
        self._is_action = is_action
        self._loader = ManifestLoader()
        self._logger = logging.getLogger("kustoguard.pipeline")
        self.state = PipelineState.PENDING

    # -- default collaborators -----------------------------------------------

    async def _render(
        self, path: Path, extra_resources: Sequence[Path], extra_args: Sequence[str]
    ) -> str:
        return await render(path, extra_resources, extra_args, self._settings.kustomize_binary)

    async def _validate_schema(self, yaml: str) -> list[str]:
        return await validate_schema(
            yaml, self._settings.schema_validator, self._settings.schema_validator_args
        )

    # -- helpers -------------------------------------------------------------

    @property
    def _detail_logger(self) -> logging.Logger | None:
        """Per-change narration only in verbose mode."""
        return self._logger if self._settings.verbose else None

    def _advance(self, state: PipelineState) -> None:
        self._logger.debug("Pipeline %s -> %s", self.state, state)
        self.state = state

    def _section(self, name: str) -> AbstractContextManager[None]:
        return section(self._logger, name, self._settings.verbose, self._is_action)

    # -- run -----------------------------------------------------------------

    async def run(self) -> PipelineResult:
        """Execute all stages; raises ``PipelineError`` on fatal failure."""
        try:
            return await self._run()
        except PipelineError:
            raise
        except Exception as exc:
            self._logger.exception("Unexpected failure during %s", self.state)
            raise StageFailedError(str(self.state), exc) from exc

    async def _run(self) -> PipelineResult:
        settings = self._settings
        errors: list[StageError] = []

        with self._section("Running kustomize"):
            raw = await self._renderer(
                settings.kustomize_path, settings.extra_resources, settings.kustomize_args
            )
            documents = self._loader.load_documents(raw)
        self._advance(PipelineState.RENDERED)

        with self._section("Removing superfluous kustomize resources"):
            strip_superfluous(documents, settings.superfluous_keys, self._detail_logger)
        self._advance(PipelineState.STRIPPED)

        with self._section("Cleaning up YAML"):
            documents, _modified = normalize_all(documents, self._detail_logger)
        self._advance(PipelineState.NORMALIZED)

        with self._section("Checking for un-encrypted secrets"):
            secret_errors = check_secrets(documents, settings.allowed_secrets)
            errors.extend(secret_errors)
        self._advance(PipelineState.SECRET_CHECKED)

        yaml, structural = serialize(documents, self._loader, secret_errors)
        errors.extend(structural)
        self._advance(PipelineState.SERIALIZED)

        if settings.validate_schema:
            with self._section("Validating YAML"):
                findings = await self._schema_validator(yaml)
                errors.extend(StageError(stage=ErrorStage.SCHEMA, message=f) for f in findings)
        self._advance(PipelineState.SCHEMA_VALIDATED)

        if settings.custom_validation:
            with self._section("Running customValidation tests"):
                findings = self._rule_evaluator(yaml, settings.custom_validation)
                errors.extend(StageError(stage=ErrorStage.CUSTOM, message=f) for f in findings)
        self._advance(PipelineState.CUSTOM_VALIDATED)

        self._advance(PipelineState.DONE)
        return PipelineResult(yaml=yaml, stage_errors=errors, state=self.state)
