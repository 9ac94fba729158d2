import dataclasses
import os

from dfp import db, settings as settings_mod


def test_log_event_and_latest(journal_db):
    db.log_event("info", "hello", service_name="web", stage="check")
    db.log_event("warn", "second")

    events = db.latest_events(10)
    assert [e["message"] for e in events] == ["second", "hello"]
    assert events[1]["level"] == "INFO"
    assert events[1]["stage"] == "check"


def test_record_and_list_attempts():
    db.record_attempt("web", True, "done", 200, "")
    db.record_attempt("api", False, "check", 500, "boom")

    assert [a.service_name for a in db.list_attempts()] == ["api", "web"]
    only = db.list_attempts("api")
    assert len(only) == 1
    assert only[0].ok == 0
    assert only[0].message == "boom"


def test_directory_db_path(tmp_path, monkeypatch):
    d = tmp_path / "mounted"
    d.mkdir()
    monkeypatch.setattr(settings_mod, "settings", dataclasses.replace(settings_mod.settings, db_path=str(d)))

    db.init_db()

    assert os.path.isfile(d / "dfp.db")


def test_tables_created_on_first_use(tmp_path, monkeypatch):
    fresh = tmp_path / "never-initialised" / "journal.db"
    monkeypatch.setattr(settings_mod, "settings", dataclasses.replace(settings_mod.settings, db_path=str(fresh)))

    db.log_event("info", "first write")
    db.record_attempt("web", False, "validate", 400, "serviceName parameter is mandatory.")

    assert [e["message"] for e in db.latest_events()] == ["first write"]
    assert db.list_attempts("web")[0].status_code == 400


def test_tables_recreated_when_file_removed(tmp_path, monkeypatch):
    path = tmp_path / "journal2.db"
    monkeypatch.setattr(settings_mod, "settings", dataclasses.replace(settings_mod.settings, db_path=str(path)))
    db.log_event("info", "before")
    os.remove(path)

    db.log_event("info", "after")

    assert [e["message"] for e in db.latest_events()] == ["after"]
