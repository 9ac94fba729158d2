from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .patterns import glob_any


class ServiceDestination(BaseModel):
    """One routing rule of a service."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    req_mode: str = Field("http", alias="reqMode", description="http|tcp (case-insensitive)")
    service_path: list[str] = Field(default_factory=list, alias="servicePath", description="Path patterns")
    service_domain: list[str] = Field(default_factory=list, alias="serviceDomain", description="Host patterns")
    src_port: int | None = Field(None, alias="srcPort", description="Frontend port (tcp mode)")
    port: str = Field("", description="Port the service listens on")

    @field_validator("service_path", "service_domain", mode="before")
    @classmethod
    def _split_csv(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [v.strip() for v in value.split(",") if v.strip()]
        return list(value)

    @field_validator("port", mode="before")
    @classmethod
    def _port_as_str(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value)

    @property
    def is_http(self) -> bool:
        return (self.req_mode or "http").lower() == "http"

    def matches(self, path: str, host: str = "") -> bool:
        """True when the request path and host satisfy this rule.

        An empty pattern list places no constraint on that attribute. Hosts
        compare case-insensitively, as in the rendered hdr(host) -i ACLs.
        """
        if self.service_path and not glob_any(self.service_path, path):
            return False
        if self.service_domain and not glob_any([d.lower() for d in self.service_domain], host.lower()):
            return False
        return True


class ServiceSpec(BaseModel):
    """A routing intent submitted for reconfiguration."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    service_name: str = Field("", alias="serviceName", description="Logical service name")
    service_destinations: tuple[ServiceDestination, ...] = Field(
        default_factory=tuple, alias="serviceDestinations"
    )

    def first_destination(self) -> ServiceDestination:
        if self.service_destinations:
            return self.service_destinations[0]
        return ServiceDestination()
