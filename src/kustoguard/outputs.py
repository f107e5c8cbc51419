"""Output actions that consume the artifact and error list after a run."""

from __future__ import annotations

import logging
import sys
from collections.abc import Sequence

from kustoguard.models.rules import OutputAction, OutputActionType

logger = logging.getLogger("kustoguard.outputs")


def run_actions(yaml: str, errors: Sequence[str], actions: Sequence[OutputAction]) -> None:
    """Run each configured action in order.

    Actions see the artifact even when it is invalid, unless they opt out with
    ``skip_on_errors``.
    """
    for action in actions:
        if errors and action.skip_on_errors:
            logger.info("Skipping %s output because the manifests have errors", action.type)
            continue
        if action.type == OutputActionType.STDOUT:
            sys.stdout.write(yaml)
            sys.stdout.flush()
            continue
        assert action.path is not None
        action.path.parent.mkdir(parents=True, exist_ok=True)
        if action.type == OutputActionType.FILE:
            action.path.write_text(yaml, encoding="utf-8")
        else:
            action.path.write_text("".join(f"{e}\n" for e in errors), encoding="utf-8")
        logger.info("Wrote %s output to %s", action.type, action.path)
