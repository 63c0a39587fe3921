"""
Launcher Tests.

- command_template: per-OS command prefix
- compose_command: template + name + args
- SubprocessLauncher: real processes (the current Python interpreter)
"""

import sys
import threading
from pathlib import Path

import pytest

from job_concurrency.scheduler import (
    Dispatcher,
    JobStatus,
    LaunchResult,
    RetryController,
    SchedulerService,
    SPAWN_FAILURE_EXIT_CODE,
    SubprocessLauncher,
    command_template,
    compose_command,
)


WAIT_SECONDS = 10


class ResultCollector:
    """Completion callback that records results and signals the test."""

    def __init__(self):
        self.results: list[LaunchResult] = []
        self.done = threading.Event()

    def __call__(self, result: LaunchResult) -> None:
        self.results.append(result)
        self.done.set()

    def wait(self) -> LaunchResult:
        assert self.done.wait(WAIT_SECONDS), "launcher never reported completion"
        assert len(self.results) == 1
        return self.results[0]


# =============================================================================
# Command Composition
# =============================================================================


class TestCommandTemplate:
    def test_posix_uses_bash_script(self):
        template = command_template(platform="linux", scripts_dir=Path("/srv/scripts"))

        assert template == ["bash", str(Path("/srv/scripts") / "dummy-job.sh")]

    def test_windows_uses_batch_script(self):
        template = command_template(platform="win32", scripts_dir=Path("C:/jobs"))

        assert template == ["cmd", "/c", str(Path("C:/jobs") / "dummy-job.bat")]

    def test_executable_path_overrides_script(self):
        assert command_template(platform="darwin", executable_path="/opt/run.sh") == [
            "bash",
            "/opt/run.sh",
        ]

    def test_default_script_ships_with_project(self):
        script = Path(command_template(platform="linux")[1])

        assert script.name == "dummy-job.sh"
        assert script.parent.name == "scripts"

    def test_compose_command(self):
        assert compose_command(["bash", "job.sh"], "build", ["-v", "two words"]) == [
            "bash",
            "job.sh",
            "build",
            "-v",
            "two words",
        ]

    def test_compose_without_args(self):
        assert compose_command(["run"], "build", ()) == ["run", "build"]


# =============================================================================
# Subprocess Execution
# =============================================================================


class TestSubprocessLauncher:
    def test_zero_exit_succeeds(self):
        collector = ResultCollector()

        handle = SubprocessLauncher().launch(
            [sys.executable, "-c", "print('hello')"], collector
        )

        result = collector.wait()
        assert handle.pid > 0
        assert result.succeeded
        assert result.exit_code == 0
        assert "hello" in result.output

    def test_stderr_output_with_zero_exit_still_succeeds(self):
        collector = ResultCollector()

        SubprocessLauncher().launch(
            [sys.executable, "-c", "import sys; sys.stderr.write('warn')"], collector
        )

        assert collector.wait().succeeded

    def test_nonzero_exit_fails(self):
        collector = ResultCollector()

        SubprocessLauncher().launch(
            [sys.executable, "-c", "import sys; sys.stderr.write('bad'); sys.exit(3)"],
            collector,
        )

        result = collector.wait()
        assert not result.succeeded
        assert result.exit_code == 3
        assert result.error.output == "bad"
        assert not result.error.spawn_failed

    def test_arguments_are_passed_verbatim(self):
        collector = ResultCollector()

        SubprocessLauncher().launch(
            [sys.executable, "-c", "import sys; print(sys.argv[1:])", "a b", "$HOME"],
            collector,
        )

        assert "['a b', '$HOME']" in collector.wait().output

    def test_missing_executable_reports_spawn_failure(self, tmp_path):
        collector = ResultCollector()

        handle = SubprocessLauncher().launch(
            [str(tmp_path / "does-not-exist")], collector
        )

        result = collector.wait()
        assert handle is None
        assert result.error.spawn_failed
        assert result.exit_code == SPAWN_FAILURE_EXIT_CODE

    def test_cwd(self, tmp_path):
        collector = ResultCollector()

        SubprocessLauncher(cwd=tmp_path).launch(
            [sys.executable, "-c", "import os; print(os.getcwd())"], collector
        )

        assert Path(collector.wait().output.strip()).resolve() == tmp_path.resolve()

    def test_callback_error_does_not_escape(self):
        done = threading.Event()

        def on_complete(result):
            done.set()
            raise RuntimeError("handler bug")

        SubprocessLauncher().launch([sys.executable, "-c", "pass"], on_complete)

        assert done.wait(WAIT_SECONDS)


@pytest.mark.skipif(sys.platform.startswith("win"), reason="requires bash")
class TestServiceWithSubprocesses:
    """Scheduler driving real processes."""

    def test_real_job_completes(self, timers, tmp_path):
        script = tmp_path / "job.sh"
        script.write_text("#!/bin/bash\necho \"running $1\"\nexit 0\n")

        finished = threading.Event()

        class SignallingLauncher(SubprocessLauncher):
            def launch(self, command, on_complete):
                def wrapped(result):
                    on_complete(result)
                    finished.set()
                return super().launch(command, wrapped)

        service = SchedulerService(
            dispatcher=Dispatcher(
                launcher=SignallingLauncher(),
                max_concurrent=1,
                command_template=["bash", str(script)],
            ),
            retry_controller=RetryController(max_retries=0, timer_factory=timers),
        )

        job = service.submit("real")

        assert finished.wait(WAIT_SECONDS)
        snapshot = service.get_job(job.id)
        assert snapshot.status == JobStatus.COMPLETED
        assert snapshot.exit_code == 0
