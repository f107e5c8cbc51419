"""Run settings loaded from environment / .env file."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from kustoguard.models.rules import CustomRule, OutputAction
from kustoguard.pipeline.stripper import DEFAULT_SUPERFLUOUS_KEYS

ENV_PREFIX = "KUSTOGUARD_"
ACTION_ENV_PREFIX = "INPUT_"


class Settings(BaseSettings):
    """Configuration snapshot for one pipeline run.

    Values are read from ``KUSTOGUARD_*`` environment variables and from a
    ``.env`` file in the working directory.  List and object fields take JSON.
    When running as a GitHub Action the same fields come from ``INPUT_*``.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Shared
    log_level: str = "INFO"
    verbose: bool = False

    # Rendering
    kustomize_path: Path = Path(".")
    extra_resources: list[Path] = []
    kustomize_args: list[str] = []
    kustomize_binary: str = "kustomize"

    # Cleaning
    superfluous_keys: list[list[str]] = Field(
        default_factory=lambda: [list(p) for p in DEFAULT_SUPERFLUOUS_KEYS]
    )
    allowed_secrets: list[str] = []

    # Validation
    validate_schema: bool = True
    schema_validator: str = "kubeconform"
    schema_validator_args: list[str] = ["-strict", "-ignore-missing-schemas", "-summary"]
    custom_validation: list[CustomRule] = []

    # Environment / outputs
    required_bins: list[str] = []
    output_actions: list[OutputAction] = []

    @property
    def required_binaries(self) -> list[str]:
        """Binaries the run needs on PATH, without duplicates."""
        bins = [self.kustomize_binary]
        if self.validate_schema:
            bins.append(self.schema_validator)
        bins.extend(self.required_bins)
        return list(dict.fromkeys(bins))


def load_settings(is_action: bool = False, **overrides: object) -> Settings:
    """Build settings from the process environment.

    Action inputs arrive as ``INPUT_<NAME>`` variables, so the prefix changes
    when running inside a workflow.
    """
    prefix = ACTION_ENV_PREFIX if is_action else ENV_PREFIX
    return Settings(_env_prefix=prefix, **overrides)
