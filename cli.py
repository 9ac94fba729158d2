from __future__ import annotations

import argparse
import dataclasses
import json
import sys
from http import HTTPStatus

from pydantic import ValidationError

from dfp import db
from dfp.models import ServiceSpec
from dfp.patterns import glob
from dfp.reconfigure import Reconfigurer
from dfp.registry import ServiceRegistry
from dfp.settings import settings
from dfp.templates import ConfigRenderer
from dfp.validation import validate_reconf


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def _load_spec(path: str) -> ServiceSpec:
    with open(path) as f:
        return ServiceSpec.model_validate(json.load(f))


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Dynamic Frontend Proxy reconfiguration CLI")
    sub = p.add_subparsers(dest="cmd", required=True)

    s_val = sub.add_parser("validate", help="Validate a service spec (JSON file)")
    s_val.add_argument("spec")

    s_rec = sub.add_parser("reconfigure", help="Check, reload and confirm the proxy with a service spec")
    s_rec.add_argument("spec")
    s_rec.add_argument(
        "--timeout-s",
        type=float,
        default=settings.reload_timeout_s or None,
        help="Give up waiting for the pid file to change after this many seconds",
    )

    s_match = sub.add_parser("match", help="Test a candidate string against a glob pattern")
    s_match.add_argument("pattern")
    s_match.add_argument("candidate")

    s_render = sub.add_parser("render", help="Print the HAProxy configuration for service specs")
    s_render.add_argument("specs", nargs="+")

    s_route = sub.add_parser("route", help="Show which service a request path/host is routed to")
    s_route.add_argument("specs", nargs="+")
    s_route.add_argument("--path", required=True)
    s_route.add_argument("--host", default="")

    s_att = sub.add_parser("attempts", help="Show recorded reconfiguration attempts")
    s_att.add_argument("--service")
    s_att.add_argument("--limit", type=int, default=20)

    s_ev = sub.add_parser("events", help="Show journal events")
    s_ev.add_argument("--limit", type=int, default=20)

    args = p.parse_args(argv)

    if args.cmd == "match":
        matched = glob(args.pattern, args.candidate)
        _print({"pattern": args.pattern, "candidate": args.candidate, "matches": matched})
        return 0 if matched else 1

    try:
        if args.cmd == "validate":
            status, msg = validate_reconf(_load_spec(args.spec))
            _print({"status_code": int(status), "message": msg})
            return 0 if status == HTTPStatus.OK else 1

        if args.cmd == "route":
            registry = ServiceRegistry()
            for path in args.specs:
                registry.put(_load_spec(path))
            found = registry.match(args.path, args.host)
            if found is None:
                _print({"path": args.path, "host": args.host, "service": None})
                return 1
            spec, dest = found
            _print({"path": args.path, "host": args.host, "service": spec.service_name, "port": dest.port})
            return 0

        if args.cmd == "render":
            specs = [_load_spec(path) for path in args.specs]
            renderer = ConfigRenderer(bind_port=settings.bind_port, pid_path=settings.pid_path)
            sys.stdout.write(renderer.render(specs))
            return 0
    except ValidationError as e:
        _print({"status_code": int(HTTPStatus.BAD_REQUEST), "message": str(e)})
        return 1

    db.init_db()

    if args.cmd == "events":
        _print(db.latest_events(limit=args.limit))
        return 0

    if args.cmd == "attempts":
        _print([dataclasses.asdict(a) for a in db.list_attempts(args.service, limit=args.limit)])
        return 0

    if args.cmd == "reconfigure":
        try:
            spec = _load_spec(args.spec)
        except ValidationError as e:
            _print({"status_code": int(HTTPStatus.BAD_REQUEST), "message": str(e)})
            return 1
        result = Reconfigurer.from_settings().reconfigure(spec, timeout_s=args.timeout_s)
        _print(
            {
                "ok": result.ok,
                "stage": result.stage,
                "status_code": result.status_code,
                "message": result.message,
                "warnings": list(result.warnings),
            }
        )
        return 0 if result.ok else 1

    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
