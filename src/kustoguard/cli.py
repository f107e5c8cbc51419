"""Command-line entry point, usable standalone or as a GitHub Action step.

Run via::

    kustoguard overlays/prod            # settings from KUSTOGUARD_* / .env
    kustoguard --verbose                # boxed stage headers, per-change detail

Inside a workflow (``GITHUB_EVENT_NAME`` is set) settings come from
``INPUT_*`` variables and failures are reported as ``::error::`` annotations.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from collections.abc import Sequence
from pathlib import Path

from kustoguard import __version__
from kustoguard.environment import validate_environment, validate_settings
from kustoguard.logs import configure_logging, narrate
from kustoguard.models.errors import PipelineError
from kustoguard.outputs import run_actions
from kustoguard.parser.loader import ManifestLoader
from kustoguard.pipeline.orchestrator import ManifestPipeline, PipelineResult
from kustoguard.settings import Settings, load_settings

logger = logging.getLogger("kustoguard")


class InvalidManifestsError(PipelineError):
    """Raised at the end of a run that accumulated errors."""

    def __init__(self, errors: Sequence[str]) -> None:
        self.errors = list(errors)
        super().__init__("Invalid yaml:\n" + "\n".join(self.errors))


def is_action_host() -> bool:
    return bool(os.environ.get("GITHUB_EVENT_NAME"))


async def run(settings: Settings, is_action: bool = False) -> PipelineResult:
    """Validate the environment, run the pipeline and the output actions.

    Raises ``InvalidManifestsError`` after the output actions have run when
    the pipeline accumulated errors.
    """
    narrate(logger, settings.verbose, "Parsing and validating settings")
    if settings.verbose:
        logger.info("%s", ManifestLoader().dump_data(settings.model_dump(mode="json")))
    validate_settings(settings)

    narrate(logger, settings.verbose, "Validating environment (binaries, paths etc)")
    validate_environment(settings.required_binaries, logger if settings.verbose else None)

    result = await ManifestPipeline(settings, is_action=is_action).run()

    if settings.output_actions:
        narrate(logger, settings.verbose, "Running output actions")
        run_actions(result.yaml, result.errors, settings.output_actions)
    if result.errors:
        raise InvalidManifestsError(result.errors)
    logger.info("Finished")
    return result


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="kustoguard",
        description="Render a kustomize overlay and validate the resulting manifests.",
    )
    parser.add_argument("path", nargs="?", help="Overlay directory (overrides settings)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Narrate every stage")
    parser.add_argument(
        "--no-schema", action="store_true", help="Skip kubeconform schema validation"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Run once and return the process exit status."""
    args = _parse_args(argv)
    is_action = is_action_host()

    overrides: dict[str, object] = {}
    if args.path:
        overrides["kustomize_path"] = Path(args.path)
    if args.verbose:
        overrides["verbose"] = True
    if args.no_schema:
        overrides["validate_schema"] = False

    try:
        settings = load_settings(is_action, **overrides)
    except ValueError as exc:
        configure_logging("INFO", is_action)
        logger.error("Invalid settings: %s", exc)
        return 1

    configure_logging(settings.log_level, is_action)
    if not is_action:
        logger.warning("Not running as action because GITHUB_EVENT_NAME env var is not set")

    try:
        asyncio.run(run(settings, is_action))
    except Exception as exc:
        # In action mode the formatter turns this into an ::error:: annotation.
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
