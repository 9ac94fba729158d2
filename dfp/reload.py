from __future__ import annotations

import time
from pathlib import Path
from threading import Event
from typing import Callable, Protocol


class ReloadTimeout(Exception):
    """Confirmation was cancelled or its deadline passed before the pid file changed."""


class Waiter(Protocol):
    def wait(self) -> bool: ...


class Ticker:
    """Blocks for one polling interval per wait() call.

    wait() returns False once ``cancel`` is set or ``timeout_s`` has elapsed
    since construction. Sleeping happens on an Event, so cancellation wakes
    the waiter immediately.
    """

    def __init__(
        self,
        interval_s: float = 0.5,
        cancel: Event | None = None,
        timeout_s: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.interval_s = interval_s
        self.cancel = cancel if cancel is not None else Event()
        self.timeout_s = timeout_s
        self._clock = clock
        self._t0 = clock()

    def wait(self) -> bool:
        if self.timeout_s is not None and self._clock() - self._t0 >= self.timeout_s:
            return False
        return not self.cancel.wait(self.interval_s)


def read_pid_file(path: str) -> bytes:
    return Path(path).read_bytes()


def wait_for_reload(
    previous_pid: bytes,
    pid_path: str,
    *,
    read_file: Callable[[str], bytes] = read_pid_file,
    ticker: Waiter | None = None,
) -> bytes:
    """Block until the pid file content differs from ``previous_pid``.

    The file is read once per tick; read errors are expected while the engine
    swaps instances and are ignored. Returns the new content.
    """
    ticker = ticker or Ticker()
    while ticker.wait():
        try:
            current = read_file(pid_path)
        except OSError:
            continue
        if current != previous_pid:
            return current
    raise ReloadTimeout(f"pid file {pid_path} did not change; reload is unconfirmed")
