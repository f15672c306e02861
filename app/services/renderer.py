"""
Preview renderer adapter.

The render queue depends only on the Renderer protocol. CommandRenderer
delegates to an external program: it receives a JSON job on stdin and
prints the path of the written image on stdout.
"""

import asyncio
import json
import shlex
from pathlib import Path
from typing import Any, Protocol

from loguru import logger

from app.utils.exceptions import RenderError


class Renderer(Protocol):
    """Turns token content into a preview image file."""

    async def render(
        self,
        token_id: int,
        content: str,
        content_type: str,
        metadata: dict[str, Any],
    ) -> str:
        """Render and return the output file path."""
        ...


class CommandRenderer:
    """Renderer backed by an external command."""

    def __init__(self, command: str, output_dir: str, timeout: float = 60.0) -> None:
        """
        Initialize renderer.

        Args:
            command: Command line to execute (split with shlex)
            output_dir: Directory the command should write into
            timeout: Seconds before the process is killed
        """
        self.argv = shlex.split(command)
        if not self.argv:
            raise ValueError("Render command is empty")
        self.output_dir = Path(output_dir)
        self.timeout = timeout

    async def render(
        self,
        token_id: int,
        content: str,
        content_type: str,
        metadata: dict[str, Any],
    ) -> str:
        """
        Run the command for one token.

        Raises:
            RenderError: On timeout, non-zero exit or empty output
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        job = json.dumps({
            "tokenId": token_id,
            "content": content,
            "contentType": content_type,
            "metadata": metadata,
            "outputPath": str(self.output_dir / f"{token_id}.png"),
        }).encode("utf-8")

        process = await asyncio.create_subprocess_exec(
            *self.argv,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(job), timeout=self.timeout
            )
        except TimeoutError as e:
            process.kill()
            await process.wait()
            raise RenderError(f"Render timed out after {self.timeout}s") from e

        if process.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip()
            raise RenderError(f"Render exited with {process.returncode}: {detail}")

        file_path = stdout.decode("utf-8", errors="replace").strip()
        if not file_path:
            raise RenderError("Render produced no output path")

        logger.debug(f"[Renderer] Token {token_id} rendered to {file_path}")
        return file_path
