import dataclasses
import sys

import pytest

# Ensure project root is importable (so `import dfp...` and `import cli` work without installing)
import os as _os
_project_root = _os.path.dirname(_os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from dfp import db, settings as settings_mod  # noqa: E402


@pytest.fixture(autouse=True)
def journal_db(tmp_path, monkeypatch):
    """Point the event journal at an isolated sqlite file for every test."""
    patched = dataclasses.replace(settings_mod.settings, db_path=str(tmp_path / "journal.db"))
    monkeypatch.setattr(settings_mod, "settings", patched)
    db.init_db()
    return patched.db_path
