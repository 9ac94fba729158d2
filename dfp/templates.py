from __future__ import annotations

from .models import ServiceDestination, ServiceSpec
from .patterns import WILDCARD, glob_to_regex, replace_non_alphabet_and_numbers
from .settings import get_secret_or_env_var, get_secret_or_env_var_split


def _acl_name(kind: str, spec: ServiceSpec, index: int) -> str:
    return replace_non_alphabet_and_numbers([kind, spec.service_name, str(index)])


def _backend_name(spec: ServiceSpec, dest: ServiceDestination) -> str:
    return replace_non_alphabet_and_numbers([spec.service_name, "be", dest.port or "80"])


def _path_acl(name: str, pattern: str) -> str:
    """ACL accepting the same request paths as glob(pattern, path)."""
    if WILDCARD not in pattern:
        return f"acl {name} path {pattern}"
    prefix = pattern[:-1]
    if prefix and pattern.endswith(WILDCARD) and WILDCARD not in prefix:
        return f"acl {name} path_beg {prefix}"
    return f"acl {name} path_reg {glob_to_regex(pattern)}"


def _domain_acl(name: str, pattern: str) -> str:
    if WILDCARD not in pattern:
        return f"acl {name} hdr(host) -i {pattern}"
    return f"acl {name} hdr_reg(host) -i {glob_to_regex(pattern)}"


class ConfigRenderer:
    """Renders a complete HAProxy configuration for a set of services."""

    def __init__(self, bind_port: int = 80, pid_path: str = "/var/run/haproxy.pid", **secret_kwargs):
        self.bind_port = int(bind_port)
        self.pid_path = pid_path
        # forwarded to get_secret_or_env_var (secrets_dir / read_file / environ)
        self.secret_kwargs = secret_kwargs

    def _value(self, key: str, default: str) -> str:
        return get_secret_or_env_var(key, default, **self.secret_kwargs)

    def _lines(self, key: str) -> str:
        extra = get_secret_or_env_var_split(key, "", **self.secret_kwargs)
        return f"    {extra}\n" if extra else ""

    def render(self, services: list[ServiceSpec]) -> str:
        return "\n".join(
            [
                self._header(),
                self._http_frontend(services),
                *self._tcp_sections(services),
                *self._http_backends(services),
            ]
        )

    def _header(self) -> str:
        return (
            "global\n"
            f"    pidfile {self.pid_path}\n"
            "    tune.ssl.default-dh-param 2048\n"
            f"{self._lines('EXTRA_GLOBAL')}"
            "\n"
            "defaults\n"
            "    mode http\n"
            "    balance roundrobin\n"
            "    option http-server-close\n"
            "    option forwardfor\n"
            f"    timeout connect {self._value('TIMEOUT_CONNECT', '5')}s\n"
            f"    timeout client {self._value('TIMEOUT_CLIENT', '20')}s\n"
            f"    timeout server {self._value('TIMEOUT_SERVER', '20')}s\n"
            f"    stats auth {self._value('STATS_USER', 'admin')}:{self._value('STATS_PASS', 'admin')}\n"
            "    stats enable\n"
            "    stats uri /admin?stats\n"
            f"{self._lines('EXTRA_DEFAULTS')}"
        )

    def _http_frontend(self, services: list[ServiceSpec]) -> str:
        out = ["frontend services", f"    bind *:{self.bind_port}", "    mode http"]
        for spec in services:
            for i, dest in enumerate(spec.service_destinations):
                if not dest.is_http:
                    continue
                conds: list[str] = []
                if dest.service_path:
                    acl = _acl_name("url", spec, i)
                    out.extend(f"    {_path_acl(acl, p)}" for p in dest.service_path)
                    conds.append(acl)
                if dest.service_domain:
                    acl = _acl_name("domain", spec, i)
                    out.extend(f"    {_domain_acl(acl, d)}" for d in dest.service_domain)
                    conds.append(acl)
                if conds:
                    out.append(f"    use_backend {_backend_name(spec, dest)} if {' '.join(conds)}")
        return "\n".join(out) + "\n"

    def _http_backends(self, services: list[ServiceSpec]) -> list[str]:
        seen: set[str] = set()
        out: list[str] = []
        for spec in services:
            for dest in spec.service_destinations:
                name = _backend_name(spec, dest)
                if not dest.is_http or name in seen:
                    continue
                seen.add(name)
                out.append(
                    f"backend {name}\n"
                    "    mode http\n"
                    f"    server {spec.service_name} {spec.service_name}:{dest.port or '80'}\n"
                )
        return out

    def _tcp_sections(self, services: list[ServiceSpec]) -> list[str]:
        out: list[str] = []
        for spec in services:
            for dest in spec.service_destinations:
                if dest.is_http or not dest.src_port:
                    continue
                name = replace_non_alphabet_and_numbers([spec.service_name, "be", str(dest.src_port)])
                out.append(
                    f"frontend tcpFE_{dest.src_port}\n"
                    f"    bind *:{dest.src_port}\n"
                    "    mode tcp\n"
                    f"    default_backend {name}\n"
                    "\n"
                    f"backend {name}\n"
                    "    mode tcp\n"
                    f"    server {spec.service_name} {spec.service_name}:{dest.port}\n"
                )
        return out
