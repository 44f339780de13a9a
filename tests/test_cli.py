"""Tests for the operator CLI and the database it points the server at."""

import sqlite3
import sys
from pathlib import Path
from unittest.mock import patch

from fastapi.testclient import TestClient

from compilestrength.cli import main
from compilestrength.db.database import get_default_db_path
from compilestrength.main import app


class TestServeDatabase:
    """`--db` reaches the server started by `serve`."""

    def test_serve_uses_db_flag(self, tmp_path, monkeypatch):
        # serve writes this variable; setenv restores it afterwards
        monkeypatch.setenv("COMPILESTRENGTH_DB_PATH", "")
        target = tmp_path / "chosen.db"
        seen = {}

        def fake_run(app_path, **kwargs):
            seen["app"] = app_path
            seen["db_path"] = get_default_db_path()

        monkeypatch.setattr(sys, "argv", ["compilestrength", "--db", str(target), "serve"])
        with patch("uvicorn.run", side_effect=fake_run):
            main()

        assert seen["app"] == "compilestrength.main:app"
        assert seen["db_path"] == target

    def test_serve_without_flag_keeps_environment(self, tmp_path, monkeypatch):
        configured = tmp_path / "configured.db"
        monkeypatch.setenv("COMPILESTRENGTH_DB_PATH", str(configured))
        monkeypatch.setattr(sys, "argv", ["compilestrength", "serve"])

        with patch("uvicorn.run") as run:
            main()

        run.assert_called_once()
        assert get_default_db_path() == configured

    def test_startup_creates_schema_at_resolved_path(self, tmp_path, monkeypatch):
        target = tmp_path / "startup.db"
        monkeypatch.setenv("COMPILESTRENGTH_DB_PATH", str(target))

        with TestClient(app) as client:
            assert client.get("/health").status_code == 200

        assert Path(target).exists()
        conn = sqlite3.connect(target)
        try:
            tables = {
                row[0]
                for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
            }
        finally:
            conn.close()
        assert "usage_periods" in tables
