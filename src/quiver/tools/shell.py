"""
Command effector for Quiver.

This module provides the built-in run_command tool (category "command").
It is asynchronous: the command runs on a worker thread and the single
ToolOutput is delivered through the completion callback.

Execution rules:
    - Commands are passed as a list, never through a shell (shell=False)
    - The process is killed after the configured timeout; the timeout is
      reported as a failed ToolOutput through the callback
    - Combined stdout/stderr is truncated at the configured size

The tool is declared with confirm=True. Whether to ask the user first is
the host's decision; nothing here blocks a command.
"""

import logging
import subprocess
import threading
from pathlib import Path
from typing import Any, Callable

from quiver.schema import QuiverConfig, ShellSettings, ToolSpec
from quiver.tools.base import ToolOutput, resolve_path
from quiver.tools.compiler import OPTIONAL, ToolCompiler, default_compiler

logger = logging.getLogger(__name__)

CATEGORY = "command"


def _decode(data: bytes) -> str:
    # Decode output (best effort)
    return data.decode("utf-8", errors="replace")


def _truncate(stdout: bytes, stderr: bytes, max_bytes: int) -> tuple[bytes, bytes]:
    """Split the output budget between stdout and stderr."""
    if len(stdout) + len(stderr) <= max_bytes:
        return stdout, stderr

    marker = f"\n... [truncated, exceeded {max_bytes} bytes]".encode()
    budget = max_bytes // 2
    keep = max(budget - len(marker), 0)
    # a marker longer than the budget is itself cut so the cap holds
    if len(stdout) > budget:
        stdout = (stdout[:keep] + marker)[:budget]
    if len(stderr) > budget:
        stderr = (stderr[:keep] + marker)[:budget]
    return stdout, stderr


class CommandEffector:
    """
    Runs commands on worker threads.

    Attributes:
        working_dir: Default directory commands run in
        settings: Timeout and output limits
    """

    def __init__(self, working_dir: str = ".", settings: ShellSettings | None = None) -> None:
        self.working_dir = working_dir
        self.settings = settings or ShellSettings()

    def run_command(
        self,
        cmd: list[str],
        cwd: str | None,
        callback: Callable[[ToolOutput], None],
    ) -> None:
        """Start `cmd` and call back once with its outcome."""
        worker = threading.Thread(
            target=self._run,
            args=(list(cmd), cwd, callback),
            name=f"quiver-run-{cmd[0] if cmd else 'empty'}",
            daemon=True,
        )
        worker.start()

    def _run(self, cmd: list[str], cwd: str | None, callback: Callable[[ToolOutput], None]) -> None:
        try:
            output = self.execute(cmd, cwd)
        except Exception as e:
            logger.exception("Command %s failed unexpectedly", cmd)
            output = ToolOutput.fail(f"Unexpected error: {e}", cmd=cmd, error_type=type(e).__name__)
        callback(output)

    def execute(self, cmd: list[str], cwd: str | None = None) -> ToolOutput:
        """Run a command to completion on the calling thread."""
        if not cmd:
            return ToolOutput.fail("'cmd' list cannot be empty")

        try:
            cwd_path: Path = resolve_path(cwd or ".", self.working_dir)
        except (ValueError, OSError) as e:
            return ToolOutput.fail(f"Invalid working directory: {e}")
        if not cwd_path.is_dir():
            return ToolOutput.fail(f"Working directory does not exist: {cwd}", cwd=str(cwd_path))

        timeout = self.settings.timeout_seconds
        logger.debug("Running %s in %s", cmd, cwd_path)
        try:
            result = subprocess.run(
                cmd,
                cwd=str(cwd_path),
                capture_output=True,
                timeout=timeout,
                shell=False,
            )
        except subprocess.TimeoutExpired:
            return ToolOutput.fail(f"Command timed out after {timeout} seconds", cmd=cmd, timeout=timeout)
        except FileNotFoundError:
            return ToolOutput.fail(f"Executable not found: {cmd[0]}", executable=cmd[0])
        except PermissionError:
            return ToolOutput.fail(f"Permission denied executing: {cmd[0]}", executable=cmd[0])
        except OSError as e:
            return ToolOutput.fail(f"OS error executing command: {e}", cmd=cmd, error_type=type(e).__name__)

        stdout, stderr = _truncate(result.stdout, result.stderr, self.settings.max_output_bytes)
        data: dict[str, Any] = {
            "return_code": result.returncode,
            "stdout": _decode(stdout),
            "stderr": _decode(stderr),
        }
        if result.returncode != 0:
            return ToolOutput(
                success=False,
                data=data,
                error=f"Command exited with status {result.returncode}: {data['stderr'].strip()}",
                metadata={"cmd": cmd, "return_code": result.returncode},
            )
        return ToolOutput.ok(data, cmd=cmd, cwd=str(cwd_path), return_code=result.returncode)


def register_shell_tools(
    compiler: ToolCompiler | None = None,
    config: QuiverConfig | None = None,
) -> list[ToolSpec]:
    """Compile the command tools into the compiler's registry."""
    compiler = compiler or default_compiler
    config = config or QuiverConfig()
    effector = CommandEffector(config.working_dir, config.shell)

    return [
        compiler.compile(
            effector.run_command,
            description="Run a program with arguments (no shell) and return its exit code and output.",
            category=CATEGORY,
            tags=["execute"],
            is_async=True,
            confirm=True,
            include=True,
            args=[
                {
                    "name": "cmd",
                    "type": "array",
                    "description": "Program followed by its arguments",
                    "items": {"type": "string"},
                },
                OPTIONAL,
                {"name": "cwd", "type": "string", "description": "Directory to run in"},
            ],
        ),
    ]
