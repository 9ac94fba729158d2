from __future__ import annotations

from threading import Lock

from .models import ServiceDestination, ServiceSpec


class ServiceRegistry:
    """In-memory set of services the live proxy is configured with.

    Services keep their registration order; re-registering a name replaces
    the previous spec in place.
    """

    def __init__(self) -> None:
        self.lock = Lock()
        self._services: dict[str, ServiceSpec] = {}

    def get(self, name: str) -> ServiceSpec | None:
        with self.lock:
            return self._services.get(name)

    def list(self) -> list[ServiceSpec]:
        with self.lock:
            return list(self._services.values())

    def with_service(self, spec: ServiceSpec) -> list[ServiceSpec]:
        """Services as they would be if ``spec`` were registered (no mutation)."""
        with self.lock:
            staged = dict(self._services)
        staged[spec.service_name] = spec
        return list(staged.values())

    def without_service(self, name: str) -> list[ServiceSpec]:
        with self.lock:
            return [s for n, s in self._services.items() if n != name]

    def put(self, spec: ServiceSpec) -> None:
        with self.lock:
            self._services[spec.service_name] = spec

    def remove(self, name: str) -> bool:
        with self.lock:
            return self._services.pop(name, None) is not None

    def match(self, path: str, host: str = "") -> tuple[ServiceSpec, ServiceDestination] | None:
        """First (service, destination) whose HTTP rule accepts the request."""
        for spec in self.list():
            for dest in spec.service_destinations:
                if dest.is_http and dest.matches(path, host):
                    return spec, dest
        return None
