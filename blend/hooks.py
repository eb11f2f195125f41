"""Lifecycle hooks — shell commands declared in the manifest.

``preinstall``/``postinstall`` run around commands that materialize content
(``add``, ``update``), ``preuninstall``/``postuninstall`` around ``remove``.
Hooks run in the working-tree root with ``BLEND_COMMAND`` set to the
command being executed. A hook exiting non-zero aborts the command.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path

from blend.errors import HookFailed
from blend.manifest.models import Hooks
from blend.utils import processes

logger = logging.getLogger(__name__)


@dataclass
class HookResult:
    """Result of executing a single lifecycle hook."""

    hook: str
    command: str
    exit_code: int = 0
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0

    @property
    def passed(self) -> bool:
        return self.exit_code == 0


class HookRunner:
    """Executes manifest hooks in a working tree."""

    DEFAULT_TIMEOUT = 300

    def __init__(self, working_dir: str | Path, timeout: int = DEFAULT_TIMEOUT):
        self.working_dir = Path(working_dir)
        self.timeout = timeout

    def run(self, hooks: Hooks | None, name: str, command_name: str = "") -> HookResult | None:
        """Run hook ``name`` if the manifest declares it.

        Returns:
            The hook result, or ``None`` when no such hook is declared.

        Raises:
            HookFailed: If the hook exits non-zero or times out.
        """
        if hooks is None:
            return None
        command = getattr(hooks, name)
        if not command:
            return None

        logger.info("Running %s hook: %s", name, command)
        env = {**os.environ, "BLEND_COMMAND": command_name}

        start = time.monotonic()
        proc = processes.spawn(
            command,
            shell=True,
            cwd=self.working_dir,
            env=env,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
        try:
            stdout, stderr = proc.communicate(timeout=self.timeout)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.communicate()
            raise HookFailed(name, command, -1, f"Hook timed out after {self.timeout}s.")
        finally:
            processes.release(proc)

        result = HookResult(
            hook=name,
            command=command,
            exit_code=proc.returncode,
            stdout=stdout[:5000],
            stderr=stderr[:5000],
            duration_ms=int((time.monotonic() - start) * 1000),
        )
        if not result.passed:
            raise HookFailed(name, command, result.exit_code, result.stderr)

        if result.stdout.strip():
            logger.info(result.stdout.rstrip())
        return result
