"""Tests for the kustomize renderer, using a stand-in binary."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
from ruamel.yaml import YAML

from kustoguard.render import RenderError, render
from tests.conftest import DEPLOYMENT_YAML

# Prints its arguments as a YAML comment, then the wrapper kustomization if any.
ECHO_BODY = """\
print('# args: ' + ' '.join(sys.argv[1:]))
target = os.path.join(sys.argv[2], 'kustomization.yaml')
if os.path.isfile(target):
    sys.stdout.write(open(target).read())
"""


@pytest.fixture
def kustomize(fake_binary: Callable[[str, str], Path]) -> str:
    return str(fake_binary("kustomize", ECHO_BODY))


class TestRender:
    async def test_builds_overlay(self, kustomize: str, tmp_path: Path) -> None:
        output = await render(tmp_path, binary=kustomize)
        assert output.splitlines()[0] == f"# args: build {tmp_path}"

    async def test_passes_extra_args(self, kustomize: str, tmp_path: Path) -> None:
        output = await render(tmp_path, extra_args=["--enable-helm"], binary=kustomize)
        assert output.splitlines()[0].endswith("--enable-helm")

    async def test_returns_stdout(
        self, fake_binary: Callable[[str, str], Path], tmp_path: Path
    ) -> None:
        binary = fake_binary("kustomize", f"sys.stdout.write({DEPLOYMENT_YAML!r})")
        assert await render(tmp_path, binary=str(binary)) == DEPLOYMENT_YAML

    async def test_extra_resources_use_wrapper(self, kustomize: str, tmp_path: Path) -> None:
        overlay = tmp_path / "overlay"
        overlay.mkdir()
        extra = tmp_path / "extra.yaml"
        extra.write_text(DEPLOYMENT_YAML)

        output = await render(overlay, [extra], ["--enable-helm"], binary=kustomize)

        args = output.splitlines()[0].split()
        assert args[2] == "build"
        assert Path(args[3]).name.startswith("kustoguard-")
        assert args[4:] == ["--load-restrictor", "LoadRestrictionsNone", "--enable-helm"]
        wrapper = YAML(typ="safe", pure=True).load(output)
        assert wrapper["kind"] == "Kustomization"
        assert wrapper["resources"] == [str(overlay.resolve()), str(extra.resolve())]

    async def test_wrapper_is_removed(self, kustomize: str, tmp_path: Path) -> None:
        extra = tmp_path / "extra.yaml"
        extra.write_text(DEPLOYMENT_YAML)
        output = await render(tmp_path, [extra], binary=kustomize)
        assert not Path(output.splitlines()[0].split()[3]).exists()

    async def test_failure_carries_stderr(
        self, fake_binary: Callable[[str, str], Path], tmp_path: Path
    ) -> None:
        binary = fake_binary(
            "kustomize", "sys.stderr.write('Error: no kustomization found')\nsys.exit(1)"
        )
        with pytest.raises(RenderError, match="exit 1.*no kustomization found"):
            await render(tmp_path, binary=str(binary))

    async def test_missing_binary(self, tmp_path: Path) -> None:
        with pytest.raises(RenderError, match="not found"):
            await render(tmp_path, binary=str(tmp_path / "missing-kustomize"))
