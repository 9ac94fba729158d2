from http import HTTPStatus

import pytest

from dfp.models import ServiceSpec
from dfp.validation import validate_reconf


def _spec(name="web", **dest):
    return ServiceSpec.model_validate({"serviceName": name, "serviceDestinations": [dest]})


def test_empty_service_name_is_bad_request():
    status, msg = validate_reconf(_spec(name="", servicePath="/web"))
    assert status == HTTPStatus.BAD_REQUEST
    assert msg == "serviceName parameter is mandatory."


def test_http_without_path_or_domain_is_conflict():
    status, msg = validate_reconf(_spec(port="8080"))
    assert status == HTTPStatus.CONFLICT
    assert msg == "When using reqMode http, servicePath or serviceDomain are mandatory."


@pytest.mark.parametrize(
    "dest",
    [
        {"reqMode": "tcp", "port": "6379"},
        {"reqMode": "tcp", "srcPort": 6379},
        {"reqMode": "tcp", "srcPort": 0, "port": "6379"},
        {"reqMode": "TCP"},
    ],
)
def test_tcp_requires_src_port_and_port(dest):
    status, msg = validate_reconf(_spec(**dest))
    assert status == HTTPStatus.BAD_REQUEST
    assert msg == "When NOT using reqMode http (e.g. tcp), srcPort and port parameters are mandatory."


@pytest.mark.parametrize(
    "dest",
    [
        {"serviceDomain": "example.com"},
        {"servicePath": "/api"},
        {"reqMode": "HTTP", "servicePath": ["/a", "/b"]},
        {"reqMode": "", "serviceDomain": "*.example.com"},
        {"reqMode": "tcp", "srcPort": 6379, "port": "6379"},
    ],
)
def test_valid_specs(dest):
    assert validate_reconf(_spec(**dest)) == (HTTPStatus.OK, "")


def test_only_first_destination_is_checked():
    spec = ServiceSpec.model_validate(
        {
            "serviceName": "web",
            "serviceDestinations": [{"servicePath": "/web"}, {"reqMode": "tcp"}],
        }
    )
    assert validate_reconf(spec) == (HTTPStatus.OK, "")


def test_missing_destinations_fail_the_http_rule():
    status, _ = validate_reconf(ServiceSpec(serviceName="web"))
    assert status == HTTPStatus.CONFLICT
