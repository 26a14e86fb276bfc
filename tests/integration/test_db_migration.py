from __future__ import annotations

import os
import sqlite3
import subprocess
import sys
from pathlib import Path


def _alembic(repo_root: Path, env: dict[str, str], *args: str) -> None:
    subprocess.run(
        [sys.executable, "-m", "alembic", "-c", "alembic.ini", *args],
        cwd=repo_root,
        env=env,
        check=True,
    )


def _columns(conn: sqlite3.Connection, table: str) -> set[str]:
    cur = conn.execute(f"PRAGMA table_info({table})")
    return {row[1] for row in cur.fetchall()}


def test_alembic_upgrade_and_downgrade_for_job_version(tmp_path: Path) -> None:
    repo_root = Path(__file__).resolve().parents[2]
    db_path = tmp_path / "migration_test.db"
    env = os.environ.copy()
    env["DATABASE_URL"] = f"sqlite:///{db_path}"

    _alembic(repo_root, env, "upgrade", "0002_job_version")

    conn = sqlite3.connect(db_path)
    tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    assert {"companies", "profiles", "projects", "jobs", "job_history"} <= tables
    assert "version" in _columns(conn, "jobs")
    conn.close()

    _alembic(repo_root, env, "downgrade", "0001_initial_schema")

    conn = sqlite3.connect(db_path)
    assert "version" not in _columns(conn, "jobs")
    assert "status" in _columns(conn, "jobs")
    conn.close()
