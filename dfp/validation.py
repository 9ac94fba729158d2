from __future__ import annotations

from http import HTTPStatus

from .models import ServiceSpec

MSG_NAME_MANDATORY = "serviceName parameter is mandatory."
MSG_HTTP_MANDATORY = "When using reqMode http, servicePath or serviceDomain are mandatory."
MSG_TCP_MANDATORY = "When NOT using reqMode http (e.g. tcp), srcPort and port parameters are mandatory."


def validate_reconf(spec: ServiceSpec) -> tuple[HTTPStatus, str]:
    """Check that a reconfiguration request is complete.

    Only the first destination is inspected. Returns (status, message);
    status is OK with an empty message when the request is valid.
    """
    if not spec.service_name:
        return HTTPStatus.BAD_REQUEST, MSG_NAME_MANDATORY

    dest = spec.first_destination()
    req_mode = dest.req_mode or "http"

    if req_mode.lower() == "http":
        if not dest.service_path and not dest.service_domain:
            return HTTPStatus.CONFLICT, MSG_HTTP_MANDATORY
    elif not (dest.src_port and dest.src_port > 0) or not dest.port:
        return HTTPStatus.BAD_REQUEST, MSG_TCP_MANDATORY

    return HTTPStatus.OK, ""
