from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _read_bytes(path: str) -> bytes:
    return Path(path).read_bytes()


@dataclass(frozen=True)
class Settings:
    # Core
    db_path: str = os.getenv("DFP_DB_PATH", "dfp.db")
    haproxy_cmd: str = os.getenv("DFP_HAPROXY_CMD", "haproxy")
    config_path: str = os.getenv("DFP_CONFIG_PATH", "/cfg/haproxy.cfg")
    pid_path: str = os.getenv("DFP_PID_PATH", "/var/run/haproxy.pid")
    secrets_dir: str = os.getenv("DFP_SECRETS_DIR", "/run/secrets")
    bind_port: int = _env_int("DFP_BIND_PORT", 80)

    # Reload confirmation
    reload_poll_ms: int = _env_int("DFP_RELOAD_POLL_MS", 500)
    # 0 keeps polling until the pid file changes.
    reload_timeout_s: int = _env_int("DFP_RELOAD_TIMEOUT_S", 0)

    # Echo engine output to this process' stdout/stderr.
    echo_engine_output: bool = _env_bool("DFP_ECHO_ENGINE_OUTPUT", True)


settings = Settings()


def get_secret_or_env_var(
    key: str,
    default: str,
    *,
    secrets_dir: str | None = None,
    read_file: Callable[[str], bytes] = _read_bytes,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Resolve a configuration value.

    Lookup order:
      1) secret file <secrets_dir>/dfp_<key lowercased> (trailing newlines stripped)
      2) environment variable <key> when non-empty
      3) default
    """
    base = secrets_dir if secrets_dir is not None else settings.secrets_dir
    path = os.path.join(base, f"dfp_{key.lower()}")
    try:
        return read_file(path).decode().rstrip("\n")
    except OSError:
        pass
    env = os.environ if environ is None else environ
    if env.get(key):
        return env[key]
    return default


def get_secret_or_env_var_split(key: str, default: str, **kwargs) -> str:
    """Same as get_secret_or_env_var, with commas turned into indented config lines."""
    value = get_secret_or_env_var(key, default, **kwargs)
    if value:
        value = value.replace(",", "\n    ")
    return value
