"""Runs ``kustomize build`` and returns the rendered YAML stream."""

from __future__ import annotations

import asyncio
import logging
import tempfile
from collections.abc import Sequence
from pathlib import Path

from ruamel.yaml import YAML

from kustoguard.models.errors import PipelineError

logger = logging.getLogger("kustoguard.render")


class RenderError(PipelineError):
    """Raised when kustomize cannot be run or exits unsuccessfully."""


def _write_wrapper(directory: Path, path: Path, extra_resources: Sequence[Path]) -> None:
    """Write a kustomization that pulls in ``path`` plus the extra resources."""
    yaml = YAML(typ="safe", pure=True)
    yaml.default_flow_style = False
    kustomization = {
        "apiVersion": "kustomize.config.k8s.io/v1beta1",
        "kind": "Kustomization",
        "resources": [str(p.resolve()) for p in (path, *extra_resources)],
    }
    with (directory / "kustomization.yaml").open("w", encoding="utf-8") as handle:
        yaml.dump(kustomization, handle)


async def _run(binary: str, args: Sequence[str]) -> str:
    logger.debug("Running %s %s", binary, " ".join(args))
    try:
        proc = await asyncio.create_subprocess_exec(
            binary,
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        raise RenderError(f"'{binary}' not found; is kustomize installed?") from exc
    stdout, stderr = await proc.communicate()
    if proc.returncode != 0:
        raise RenderError(
            f"{binary} build failed (exit {proc.returncode}): "
            f"{stderr.decode('utf-8', errors='replace').strip()}"
        )
    return stdout.decode("utf-8")


async def render(
    path: Path,
    extra_resources: Sequence[Path] = (),
    extra_args: Sequence[str] = (),
    binary: str = "kustomize",
) -> str:
    """Render ``path`` with kustomize, optionally adding extra resources.

    Extra resources usually live outside the overlay, so they are combined
    through a temporary kustomization built with load restrictions disabled.
    """
    if not extra_resources:
        return await _run(binary, ["build", str(path), *extra_args])

    with tempfile.TemporaryDirectory(prefix="kustoguard-") as tmp:
        _write_wrapper(Path(tmp), path, extra_resources)
        args = ["build", tmp, "--load-restrictor", "LoadRestrictionsNone", *extra_args]
        return await _run(binary, args)
