"""
Process Launcher for Job Scheduler.

- Runs a composed command line as an external process
- Reports the outcome exactly once through a completion callback
- Returns immediately; waiting happens on a background thread

What the Launcher MUST NOT do:
- Touch Job entities (the scheduler owns them)
- Decide retry policy
- Enforce timeouts (the configured timeout is advisory)
"""

import logging
import subprocess
import sys
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence

from .entities import LaunchHandle
from .errors import LaunchFailure


logger = logging.getLogger(__name__)


# Exit code reported when the process could not be started at all
SPAWN_FAILURE_EXIT_CODE = -1

DEFAULT_SCRIPTS_DIR = Path(__file__).resolve().parents[2] / "scripts"


@dataclass(frozen=True)
class LaunchResult:
    """
    Outcome of one launch.

    error is None on zero exit, whatever the process printed to stderr.
    """

    error: Optional[LaunchFailure] = None
    output: str = ""

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def exit_code(self) -> int:
        return 0 if self.error is None else self.error.exit_code


CompletionCallback = Callable[[LaunchResult], None]


def command_template(
    platform: str = sys.platform,
    scripts_dir: Path = DEFAULT_SCRIPTS_DIR,
    executable_path: Optional[str] = None,
) -> list[str]:
    """
    Pick the command prefix for job execution on this OS.

    Args:
        platform: sys.platform style identifier
        scripts_dir: Directory holding dummy-job.sh / dummy-job.bat
        executable_path: Explicit script path overriding the default one

    Returns:
        Command prefix; the job name and arguments are appended to it
    """
    if platform.startswith("win"):
        script = executable_path or str(scripts_dir / "dummy-job.bat")
        return ["cmd", "/c", script]

    script = executable_path or str(scripts_dir / "dummy-job.sh")
    return ["bash", script]


def compose_command(template: Sequence[str], name: str, args: Sequence[str]) -> list[str]:
    """Build the full command line: template + job name + job args."""
    return [*template, name, *args]


class Launcher(ABC):
    """
    Abstract process launcher.

    One launch() per dispatch attempt; on_complete is called exactly once
    per launch(), possibly from another thread.
    """

    @abstractmethod
    def launch(
        self,
        command: Sequence[str],
        on_complete: CompletionCallback,
    ) -> Optional[LaunchHandle]:
        """
        Start the command.

        Args:
            command: Full command line
            on_complete: Called once with the LaunchResult

        Returns:
            Handle of the started process, or None if nothing was started
        """
        ...


class SubprocessLauncher(Launcher):
    """
    Launcher that executes commands via subprocess.

    Each process gets a daemon thread that waits for it and delivers the
    result.
    """

    def __init__(self, cwd: Optional[Path] = None):
        """
        Initialize subprocess launcher.

        Args:
            cwd: Working directory for launched processes
        """
        self.cwd = cwd

    def launch(
        self,
        command: Sequence[str],
        on_complete: CompletionCallback,
    ) -> Optional[LaunchHandle]:
        """Start the process and wait for it in the background."""
        cmd = list(command)
        logger.debug(f"Executing command: {' '.join(cmd)}")

        try:
            process = subprocess.Popen(
                cmd,
                cwd=self.cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
        except OSError as e:
            logger.error(f"Failed to start command {cmd[0]!r}: {e}")
            _deliver(
                on_complete,
                LaunchResult(
                    error=LaunchFailure(
                        SPAWN_FAILURE_EXIT_CODE,
                        output=str(e),
                        spawn_failed=True,
                    )
                ),
            )
            return None

        waiter = threading.Thread(
            target=self._wait,
            args=(process, on_complete),
            name=f"launcher-wait-{process.pid}",
            daemon=True,
        )
        waiter.start()

        return LaunchHandle(pid=process.pid)

    def _wait(self, process: subprocess.Popen, on_complete: CompletionCallback) -> None:
        """Wait for process exit and deliver the result."""
        try:
            stdout, stderr = process.communicate()
            exit_code = process.returncode
        except Exception as e:
            logger.exception(f"Error waiting for process {process.pid}")
            _deliver(
                on_complete,
                LaunchResult(error=LaunchFailure(SPAWN_FAILURE_EXIT_CODE, output=str(e))),
            )
            return

        if exit_code == 0:
            result = LaunchResult(output=stdout or "")
        else:
            result = LaunchResult(
                error=LaunchFailure(exit_code, output=stderr or stdout or ""),
                output=stdout or "",
            )

        _deliver(on_complete, result)


def _deliver(on_complete: CompletionCallback, result: LaunchResult) -> None:
    """Invoke the completion callback, logging anything it raises."""
    try:
        on_complete(result)
    except Exception:
        logger.exception("Error in completion callback")
