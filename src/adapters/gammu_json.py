"""gammu-json subprocess adapter.

Implements the core ModemPort by spawning the `gammu-json` executable once per
command and parsing what it prints on stdout as JSON.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import shutil
from typing import Any, Mapping, Optional, Sequence

from core.config import DEFAULT_EXECUTABLE
from core.errors import SubprocessFailure

LOGGER = logging.getLogger(__name__)


def build_search_path(prefix: Optional[str], base_path: Optional[str]) -> str:
    """Return PATH with `<prefix>/bin` prepended when a prefix is configured."""

    base_path = base_path or ""
    if not prefix:
        return base_path
    bin_dir = os.path.join(os.path.abspath(prefix), "bin")
    return f"{bin_dir}{os.pathsep}{base_path}" if base_path else bin_dir


class GammuJsonModem:
    """ModemPort backed by the gammu-json command-line tool."""

    def __init__(
        self,
        executable: str = DEFAULT_EXECUTABLE,
        prefix: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._executable = executable
        # Only the child's environment is extended; os.environ stays as-is.
        self._env = dict(os.environ if environ is None else environ)
        self._env["PATH"] = build_search_path(prefix, self._env.get("PATH"))

    @property
    def env(self) -> dict[str, str]:
        return dict(self._env)

    def _resolve(self, command: str) -> str:
        path = shutil.which(self._executable, path=self._env["PATH"])
        if path is None:
            raise SubprocessFailure(command, f"executable {self._executable!r} not found on PATH")
        return path

    async def run(self, command: str, args: Sequence[str] = ()) -> Any:
        """Run `gammu-json <command> <args...>` and return its parsed output."""

        executable = self._resolve(command)
        LOGGER.debug("Running %s %s (%s argument(s))", self._executable, command, len(args))
        try:
            proc = await asyncio.create_subprocess_exec(
                executable,
                command,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._env,
            )
            stdout, stderr = await proc.communicate()
        except OSError as exc:
            raise SubprocessFailure(command, f"failed to start: {exc}") from exc

        error_text = stderr.decode("utf-8", errors="replace")
        if proc.returncode != 0:
            raise SubprocessFailure(
                command,
                f"exited with non-zero status {proc.returncode}",
                returncode=proc.returncode,
                stderr=error_text,
            )

        try:
            return json.loads(stdout.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise SubprocessFailure(
                command,
                f"produced invalid/incomplete JSON: {exc}",
                returncode=proc.returncode,
                stderr=error_text,
            ) from exc
