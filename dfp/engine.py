from __future__ import annotations

import subprocess
import sys
from dataclasses import dataclass
from threading import Thread
from typing import IO, Callable

from . import db

WARN_MISCONFIGURATION = (
    "The configuration file is valid, but there still may be a misconfiguration "
    "somewhere that will give unexpected results, please verify:"
)

# Exit status reported when the engine binary could not be started at all.
EXIT_NOT_STARTED = 127


@dataclass(frozen=True)
class ProcessOutcome:
    exit_code: int  # negative when terminated by a signal
    stdout: str
    stderr: str

    @property
    def combined_diagnostic(self) -> str:
        return f"\nstdout:\n{self.stdout}\nstderr:\n{self.stderr}\n"

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def warned(self) -> bool:
        return self.ok and self.stderr != ""


ProcessRunner = Callable[[list[str]], ProcessOutcome]


class EngineError(Exception):
    """The engine exited with a non-zero status."""

    def __init__(self, outcome: ProcessOutcome):
        super().__init__(outcome.combined_diagnostic)
        self.outcome = outcome

    @property
    def exit_code(self) -> int:
        return self.outcome.exit_code


def _pump(src: IO[bytes], sink: IO[str] | None, buf: list[str]) -> None:
    """Drain ``src`` to the end, copying decoded lines to ``buf`` and ``sink``.

    A sink that fails to write is dropped; the pipe is still drained so the
    child never blocks on a full pipe buffer.
    """
    for raw in iter(src.readline, b""):
        chunk = raw.decode("utf-8", errors="replace")
        buf.append(chunk)
        if sink is not None:
            try:
                sink.write(chunk)
                sink.flush()
            except (OSError, ValueError):
                sink = None
    src.close()


class SubprocessRunner:
    """Run the engine binary, duplicating its output to the operator streams."""

    def __init__(
        self,
        command: str = "haproxy",
        stdout: IO[str] | None = sys.stdout,
        stderr: IO[str] | None = sys.stderr,
    ):
        self.command = command
        self.stdout = stdout
        self.stderr = stderr

    def __call__(self, args: list[str]) -> ProcessOutcome:
        try:
            proc = subprocess.Popen(
                [self.command, *args],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            return ProcessOutcome(exit_code=EXIT_NOT_STARTED, stdout="", stderr=f"{type(e).__name__}: {e}\n")

        out_buf: list[str] = []
        err_buf: list[str] = []
        pumps = [
            Thread(target=_pump, args=(proc.stdout, self.stdout, out_buf), daemon=True),
            Thread(target=_pump, args=(proc.stderr, self.stderr, err_buf), daemon=True),
        ]
        for t in pumps:
            t.start()
        exit_code = proc.wait()
        for t in pumps:
            t.join()

        return ProcessOutcome(exit_code=exit_code, stdout="".join(out_buf), stderr="".join(err_buf))


class EngineController:
    """Invokes the proxy engine and classifies the outcome."""

    def __init__(self, runner: ProcessRunner):
        self.runner = runner

    def run(self, args: list[str], service_name: str | None = None, stage: str | None = None) -> ProcessOutcome:
        """Run the engine.

        Raises EngineError on a non-zero exit. A clean exit that still wrote to
        stderr is logged as a warning and returned (``outcome.warned``).
        """
        outcome = self.runner(args)

        if not outcome.ok:
            db.log_event(
                "ERROR",
                f"Exit Status: {outcome.exit_code}{outcome.combined_diagnostic}",
                service_name=service_name,
                stage=stage,
            )
            raise EngineError(outcome)

        if outcome.warned:
            db.log_event(
                "WARN",
                f"{WARN_MISCONFIGURATION}{outcome.combined_diagnostic}",
                service_name=service_name,
                stage=stage,
            )
        return outcome

    def check(self, config_path: str, service_name: str | None = None) -> ProcessOutcome:
        return self.run(["-c", "-V", "-f", config_path], service_name=service_name, stage="check")

    def reload(
        self,
        config_path: str,
        pid_path: str,
        previous_pid: bytes = b"",
        service_name: str | None = None,
    ) -> ProcessOutcome:
        """Start a new engine instance that takes over from the previous one (-sf)."""
        args = ["-f", config_path, "-D", "-p", pid_path]
        old_pids = previous_pid.decode(errors="replace").split()
        if old_pids:
            args += ["-sf", *old_pids]
        return self.run(args, service_name=service_name, stage="reload")
