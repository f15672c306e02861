"""Unit tests for the command renderer."""

import shlex
import sys

import pytest

from app.services.renderer import CommandRenderer
from app.utils.exceptions import RenderError


def python_command(code: str) -> str:
    return f"{shlex.quote(sys.executable)} -c {shlex.quote(code)}"


class TestCommandRenderer:
    """Tests for CommandRenderer."""

    @pytest.mark.asyncio
    async def test_returns_path_from_stdout(self, tmp_path):
        code = (
            "import json, sys\n"
            "job = json.load(sys.stdin)\n"
            "assert job['metadata']['name'] == 'Poem'\n"
            "print(job['outputPath'])"
        )
        renderer = CommandRenderer(python_command(code), str(tmp_path))

        path = await renderer.render(7, "hello", "text/plain", {"name": "Poem", "description": None})

        assert path == str(tmp_path / "7.png")

    @pytest.mark.asyncio
    async def test_nonzero_exit(self, tmp_path):
        renderer = CommandRenderer(python_command("import sys; sys.exit(3)"), str(tmp_path))

        with pytest.raises(RenderError, match="exited with 3"):
            await renderer.render(1, "x", "text/plain", {})

    @pytest.mark.asyncio
    async def test_empty_output(self, tmp_path):
        renderer = CommandRenderer(python_command("pass"), str(tmp_path))

        with pytest.raises(RenderError, match="no output path"):
            await renderer.render(1, "x", "text/plain", {})

    @pytest.mark.asyncio
    async def test_timeout(self, tmp_path):
        renderer = CommandRenderer(
            python_command("import time; time.sleep(5)"), str(tmp_path), timeout=0.2
        )

        with pytest.raises(RenderError, match="timed out"):
            await renderer.render(1, "x", "text/plain", {})

    def test_empty_command_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            CommandRenderer("   ", str(tmp_path))
