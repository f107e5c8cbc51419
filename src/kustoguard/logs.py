"""Logging setup and stage narration for console and GitHub Actions runs."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager

_PREFIXES = {
    logging.DEBUG: "::debug::",
    logging.WARNING: "::warning::",
    logging.ERROR: "::error::",
    logging.CRITICAL: "::error::",
}


def escape_command(message: str) -> str:
    """Escape a message for use inside a workflow command."""
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


class ActionFormatter(logging.Formatter):
    """Renders warnings and errors as workflow commands so they become annotations."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        prefix = _PREFIXES.get(record.levelno)
        if prefix is None:
            return message
        return prefix + escape_command(message)


def configure_logging(level: str = "INFO", is_action: bool = False) -> None:
    handler = logging.StreamHandler(sys.stdout)
    if is_action:
        handler.setFormatter(ActionFormatter("%(message)s"))
    else:
        handler.setFormatter(logging.Formatter("%(levelname)-7s %(message)s"))
    logging.basicConfig(level=level.upper(), handlers=[handler], force=True)


def make_box(message: str) -> str:
    width = len(message) + 4
    return "\n".join(["*" * width, f"* {message} *", "*" * width])


def narrate(logger: logging.Logger, verbose: bool, message: str) -> None:
    """Log a stage boundary: a plain line, or a boxed header when verbose."""
    if not verbose:
        logger.info(message)
        return
    logger.info("\n\n%s", make_box(message))


@contextmanager
def section(
    logger: logging.Logger, name: str, verbose: bool = False, is_action: bool = False
) -> Iterator[None]:
    """Wrap one pipeline stage; verbose action runs get a collapsible group."""
    grouped = verbose and is_action
    if grouped:
        logger.info("::group::%s", name)
    narrate(logger, verbose, name)
    try:
        yield
    finally:
        if grouped:
            logger.info("::endgroup::")
