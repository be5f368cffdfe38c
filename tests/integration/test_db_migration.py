from __future__ import annotations

import os
import sqlite3
import subprocess
import sys
from pathlib import Path

from sqlalchemy import create_engine

from rolescout.db.init import upgrade_schema


def _columns(conn: sqlite3.Connection, table: str) -> set[str]:
    cur = conn.cursor()
    cur.execute(f"PRAGMA table_info({table})")
    return {row[1] for row in cur.fetchall()}


def test_alembic_upgrade_and_downgrade_for_enrichment_columns(tmp_path: Path) -> None:
    repo_root = Path(__file__).resolve().parents[2]
    db_path = tmp_path / "migration_test.db"
    env = os.environ.copy()
    env["DATABASE_URL"] = f"sqlite:///{db_path}"

    subprocess.run(
        [sys.executable, "-m", "alembic", "-c", "alembic.ini", "upgrade", "0001_roles_ledger"],
        cwd=repo_root,
        env=env,
        check=True,
    )

    conn = sqlite3.connect(db_path)
    cur = conn.cursor()
    cur.execute("SELECT name FROM sqlite_master WHERE type='table' AND name='run_logs'")
    assert cur.fetchone() is not None
    base_cols = _columns(conn, "roles")
    assert {"canonical_url", "source", "discovered_date", "status"} <= base_cols
    assert "jd_text" not in base_cols

    subprocess.run(
        [sys.executable, "-m", "alembic", "-c", "alembic.ini", "upgrade", "head"],
        cwd=repo_root,
        env=env,
        check=True,
    )
    head_cols = _columns(conn, "roles")
    assert {"jd_text", "failure_reason", "fit_score", "rank_key", "scored_at"} <= head_cols

    subprocess.run(
        [sys.executable, "-m", "alembic", "-c", "alembic.ini", "downgrade", "0001_roles_ledger"],
        cwd=repo_root,
        env=env,
        check=True,
    )
    after_cols = _columns(conn, "roles")
    assert "jd_text" not in after_cols
    assert "rank_key" not in after_cols
    assert "canonical_url" in after_cols

    conn.close()


def test_upgrade_schema_adds_missing_columns_in_place(tmp_path: Path) -> None:
    db_path = tmp_path / "legacy.db"
    conn = sqlite3.connect(db_path)
    conn.execute(
        "CREATE TABLE roles (id INTEGER PRIMARY KEY, canonical_url VARCHAR(800) NOT NULL UNIQUE, "
        "company VARCHAR(255) NOT NULL, job_title VARCHAR(500) NOT NULL, source VARCHAR(40) NOT NULL, "
        "discovered_date DATETIME NOT NULL, status VARCHAR(20) NOT NULL)"
    )
    conn.execute(
        "INSERT INTO roles (canonical_url, company, job_title, source, discovered_date, status) "
        "VALUES ('https://jobs.ashbyhq.com/acme/1', 'Acme', 'Chief of Staff', 'ats_feed', '2026-01-05 00:00:00', 'New')"
    )
    conn.commit()
    conn.close()

    engine = create_engine(f"sqlite:///{db_path}")
    added = upgrade_schema(engine)
    engine.dispose()

    assert "roles.jd_text" in added
    assert "roles.rank_key" in added
    assert not any(name.startswith("run_logs.") for name in added)

    conn = sqlite3.connect(db_path)
    cols = _columns(conn, "roles")
    assert {"jd_text", "failure_reason", "fit_score", "created_at"} <= cols
    row = conn.execute("SELECT company, jd_text, fit_score FROM roles").fetchone()
    assert row == ("Acme", "", None)
    conn.close()

    assert upgrade_schema(create_engine(f"sqlite:///{db_path}")) == []
