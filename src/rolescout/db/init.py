from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy import Engine, inspect, text

from rolescout.config import get_settings
from rolescout.db.base import Base
from rolescout.db.session import engine
from rolescout.db import models  # noqa: F401

logger = logging.getLogger(__name__)


def ensure_data_directories() -> None:
    settings = get_settings()
    paths: list[Path] = [settings.data_dir]
    for path in paths:
        path.mkdir(parents=True, exist_ok=True)


def upgrade_schema(bind: Engine | None = None) -> list[str]:
    """Append model columns that an older database is missing.

    Existing rows are left as they are; new columns are always nullable or
    carry a server default so the ALTER never has to rewrite data.
    """
    bind = bind or engine
    inspector = inspect(bind)
    added: list[str] = []

    with bind.begin() as connection:
        for table in Base.metadata.sorted_tables:
            if not inspector.has_table(table.name):
                continue
            existing = {column["name"] for column in inspector.get_columns(table.name)}
            for column in table.columns:
                if column.name in existing:
                    continue
                column_type = column.type.compile(dialect=bind.dialect)
                ddl = f"ALTER TABLE {table.name} ADD COLUMN {column.name} {column_type}"
                if not column.nullable and column_type.upper().startswith(("VARCHAR", "TEXT")):
                    ddl += " NOT NULL DEFAULT ''"
                connection.execute(text(ddl))
                added.append(f"{table.name}.{column.name}")

    for name in added:
        logger.info("Added missing column %s", name)
    return added


def init_database() -> dict[str, int]:
    ensure_data_directories()
    Base.metadata.create_all(bind=engine)
    added = upgrade_schema(engine)
    return {"added_columns": len(added)}
