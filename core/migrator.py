"""
core/migrator.py -- Versioned schema migrations for the identity database.

Migrations are plain Python modules in core/migrations/ named
<YYYYMMDDHHMMSS>_<description>.py, each exposing up(conn). The numeric prefix
orders them; the full module name is what gets recorded in the
schema_migrations bookkeeping table once the migration has run.

Usage:
    engine = create_db_engine(settings.database_url)
    pending = list_pending(engine)     # dry run -- nothing is executed
    applied = run_pending(engine)      # executes and records each migration

Each migration runs in its own transaction together with its bookkeeping
insert, so a failure leaves earlier migrations applied and the failing one
unrecorded. Two runners racing on the same database collide on the
schema_migrations primary key; the loser's transaction rolls back.

Layer rule: core/ is the kernel. No imports from api/ or auth/.
"""

from __future__ import annotations

import importlib
import logging
import pkgutil
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy import Column, MetaData, String, Table, select
from sqlalchemy.engine import Engine

from core import migrations as _migrations_package
from core.database import to_iso, utcnow

logger = logging.getLogger("bonsai.migrator")

_PROJECT_ROOT = Path(__file__).resolve().parent.parent

_metadata = MetaData()

_schema_migrations = Table(
    "schema_migrations",
    _metadata,
    Column("name", String(255), primary_key=True),
    Column("run_on", String(32), nullable=False),
)


@dataclass
class Migration:
    """One migration file. timestamp is the numeric prefix of the file name."""

    path: str
    name: str
    timestamp: int


def discover() -> list[Migration]:
    """Return every migration shipped with the package, oldest first."""
    found: list[Migration] = []
    for module_info in pkgutil.iter_modules(_migrations_package.__path__):
        prefix, _, _ = module_info.name.partition("_")
        if not prefix.isdigit():
            continue
        file_path = (Path(module_info.module_finder.path) / f"{module_info.name}.py").resolve()
        found.append(
            Migration(
                path=str(file_path.relative_to(_PROJECT_ROOT)),
                name=module_info.name,
                timestamp=int(prefix),
            )
        )
    return sorted(found, key=lambda m: (m.timestamp, m.name))


def _applied_names(engine: Engine) -> set[str]:
    _metadata.create_all(engine)
    with engine.connect() as conn:
        rows = conn.execute(select(_schema_migrations.c.name)).fetchall()
    return {row.name for row in rows}


def list_pending(engine: Engine) -> list[Migration]:
    """Return migrations that have not been applied yet, oldest first."""
    applied = _applied_names(engine)
    return [m for m in discover() if m.name not in applied]


def run_pending(engine: Engine) -> list[Migration]:
    """Apply every pending migration in order and return the ones that ran."""
    pending = list_pending(engine)
    for migration in pending:
        module = importlib.import_module(f"{_migrations_package.__name__}.{migration.name}")
        with engine.begin() as conn:
            module.up(conn)
            conn.execute(_schema_migrations.insert().values(name=migration.name, run_on=to_iso(utcnow())))
        logger.info("Applied migration %s", migration.name)
    return pending
