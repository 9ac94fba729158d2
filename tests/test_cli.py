import json

import cli
from dfp import db


def _write(tmp_path, name, obj):
    p = tmp_path / name
    p.write_text(json.dumps(obj))
    return str(p)


def test_validate_command(tmp_path, capsys):
    good = _write(tmp_path, "good.json", {"serviceName": "web", "serviceDestinations": [{"servicePath": "/web"}]})
    bad = _write(tmp_path, "bad.json", {"serviceName": "web", "serviceDestinations": [{"reqMode": "tcp"}]})

    assert cli.main(["validate", good]) == 0
    assert json.loads(capsys.readouterr().out) == {"status_code": 200, "message": ""}

    assert cli.main(["validate", bad]) == 1
    out = json.loads(capsys.readouterr().out)
    assert out["status_code"] == 400


def test_validate_rejects_malformed_json_types(tmp_path, capsys):
    path = _write(tmp_path, "broken.json", {"serviceName": "web", "serviceDestinations": [{"srcPort": "abc"}]})
    assert cli.main(["validate", path]) == 1
    assert json.loads(capsys.readouterr().out)["status_code"] == 400


def test_match_command(capsys):
    assert cli.main(["match", "/api/*", "/api/users"]) == 0
    assert json.loads(capsys.readouterr().out)["matches"] is True
    assert cli.main(["match", "abc", "abcd"]) == 1


def test_render_command(tmp_path, capsys):
    path = _write(tmp_path, "s.json", {"serviceName": "web", "serviceDestinations": [{"servicePath": "/web", "port": "80"}]})
    assert cli.main(["render", path]) == 0
    assert "backend web_be_80" in capsys.readouterr().out


def test_events_command(capsys):
    cli.main(["events", "--limit", "5"])
    assert json.loads(capsys.readouterr().out) == []


def test_route_command(tmp_path, capsys):
    api = _write(
        tmp_path,
        "api.json",
        {"serviceName": "api", "serviceDestinations": [{"servicePath": "/api/*", "serviceDomain": "*.example.com", "port": "3000"}]},
    )
    web = _write(tmp_path, "web.json", {"serviceName": "web", "serviceDestinations": [{"servicePath": "/web", "port": "80"}]})

    assert cli.main(["route", api, web, "--path", "/api/v1", "--host", "Shop.Example.com"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["service"] == "api"
    assert out["port"] == "3000"

    assert cli.main(["route", api, web, "--path", "/other"]) == 1
    assert json.loads(capsys.readouterr().out)["service"] is None


def test_attempts_command(capsys):
    db.record_attempt("web", False, "check", 500, "Configuration check failed")
    db.record_attempt("api", True, "done", 200, "")

    assert cli.main(["attempts", "--service", "web"]) == 0
    rows = json.loads(capsys.readouterr().out)
    assert len(rows) == 1
    assert rows[0]["stage"] == "check"
    assert rows[0]["status_code"] == 500
