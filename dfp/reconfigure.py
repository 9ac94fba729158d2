from __future__ import annotations

import os
from dataclasses import dataclass
from http import HTTPStatus
from threading import Event, Lock
from typing import Callable

from . import db
from .engine import EngineController, EngineError, SubprocessRunner
from .models import ServiceSpec
from .registry import ServiceRegistry
from .reload import ReloadTimeout, Ticker, Waiter, read_pid_file, wait_for_reload
from .settings import settings
from .templates import ConfigRenderer
from .validation import validate_reconf

MSG_DIVERGED = (
    " The live configuration file already holds the new configuration, but the registry"
    " was not updated; the two differ until the next successful reconfiguration."
)


@dataclass(frozen=True)
class ReconfigureResult:
    ok: bool
    stage: str  # validate|check|reload|confirm|done
    status_code: int
    message: str = ""
    warnings: tuple[str, ...] = ()


class Reconfigurer:
    """Validate -> check -> reload -> confirm, one request at a time."""

    def __init__(
        self,
        engine: EngineController,
        renderer: ConfigRenderer,
        registry: ServiceRegistry | None = None,
        config_path: str = settings.config_path,
        pid_path: str = settings.pid_path,
        read_file: Callable[[str], bytes] = read_pid_file,
        ticker_factory: Callable[[Event | None, float | None], Waiter] | None = None,
        poll_interval_s: float = settings.reload_poll_ms / 1000.0,
    ):
        self.engine = engine
        self.renderer = renderer
        self.registry = registry or ServiceRegistry()
        self.config_path = config_path
        self.pid_path = pid_path
        self.read_file = read_file
        self.poll_interval_s = poll_interval_s
        self.ticker_factory = ticker_factory or self._default_ticker
        self._lock = Lock()

    @classmethod
    def from_settings(cls) -> Reconfigurer:
        if settings.echo_engine_output:
            runner = SubprocessRunner(settings.haproxy_cmd)
        else:
            runner = SubprocessRunner(settings.haproxy_cmd, stdout=None, stderr=None)
        return cls(
            engine=EngineController(runner),
            renderer=ConfigRenderer(bind_port=settings.bind_port, pid_path=settings.pid_path),
        )

    def _default_ticker(self, cancel: Event | None, timeout_s: float | None) -> Waiter:
        return Ticker(self.poll_interval_s, cancel=cancel, timeout_s=timeout_s)

    def reconfigure(
        self,
        spec: ServiceSpec,
        *,
        cancel: Event | None = None,
        timeout_s: float | None = None,
    ) -> ReconfigureResult:
        status, msg = validate_reconf(spec)
        if status != HTTPStatus.OK:
            db.log_event("WARN", f"Rejected reconfiguration: {msg}", service_name=spec.service_name or None, stage="validate")
            return self._finish(spec.service_name, ReconfigureResult(False, "validate", int(status), msg))

        with self._lock:
            result = self._apply(self.registry.with_service(spec), spec.service_name, cancel, timeout_s)
            if result.ok:
                self.registry.put(spec)
        return self._finish(spec.service_name, result)

    def remove(
        self,
        service_name: str,
        *,
        cancel: Event | None = None,
        timeout_s: float | None = None,
    ) -> ReconfigureResult:
        with self._lock:
            if self.registry.get(service_name) is None:
                msg = f"Service '{service_name}' is not registered."
                return self._finish(service_name, ReconfigureResult(False, "validate", int(HTTPStatus.NOT_FOUND), msg))
            result = self._apply(self.registry.without_service(service_name), service_name, cancel, timeout_s)
            if result.ok:
                self.registry.remove(service_name)
        return self._finish(service_name, result)

    def _apply(
        self,
        services: list[ServiceSpec],
        service_name: str,
        cancel: Event | None,
        timeout_s: float | None,
    ) -> ReconfigureResult:
        warnings: list[str] = []
        candidate = f"{self.config_path}.new"

        try:
            with open(candidate, "w") as f:
                f.write(self.renderer.render(services))
            try:
                outcome = self.engine.check(candidate, service_name=service_name)
            except EngineError as e:
                return ReconfigureResult(
                    False, "check", int(HTTPStatus.INTERNAL_SERVER_ERROR), f"Configuration check failed:{e}"
                )
            os.replace(candidate, self.config_path)
        finally:
            if os.path.exists(candidate):
                os.remove(candidate)
        if outcome.warned:
            warnings.append(outcome.combined_diagnostic)

        # Snapshot before reloading; a later snapshot could already hold the new pid.
        try:
            previous = self.read_file(self.pid_path)
        except OSError:
            previous = b""

        try:
            outcome = self.engine.reload(self.config_path, self.pid_path, previous, service_name=service_name)
        except EngineError as e:
            self._note_diverged(service_name, "reload")
            return ReconfigureResult(
                False,
                "reload",
                int(HTTPStatus.INTERNAL_SERVER_ERROR),
                f"Reload failed (exit status {e.exit_code}):{e}{MSG_DIVERGED}",
                tuple(warnings),
            )
        if outcome.warned:
            warnings.append(outcome.combined_diagnostic)

        db.log_event("INFO", "Reload issued, waiting for the new instance", service_name=service_name, stage="reload")
        try:
            wait_for_reload(
                previous,
                self.pid_path,
                read_file=self.read_file,
                ticker=self.ticker_factory(cancel, timeout_s),
            )
        except ReloadTimeout as e:
            self._note_diverged(service_name, "confirm")
            return ReconfigureResult(
                False, "confirm", int(HTTPStatus.GATEWAY_TIMEOUT), f"{e}{MSG_DIVERGED}", tuple(warnings)
            )

        db.log_event("INFO", "Reload confirmed", service_name=service_name, stage="done")
        return ReconfigureResult(True, "done", int(HTTPStatus.OK), "", tuple(warnings))

    def _note_diverged(self, service_name: str, stage: str) -> None:
        db.log_event("WARN", f"{self.config_path}: {MSG_DIVERGED.strip()}", service_name=service_name, stage=stage)

    def _finish(self, service_name: str, result: ReconfigureResult) -> ReconfigureResult:
        db.record_attempt(service_name or None, result.ok, result.stage, result.status_code, result.message)
        if not result.ok and result.stage != "validate":
            db.log_event("ERROR", result.message, service_name=service_name or None, stage=result.stage)
        return result
