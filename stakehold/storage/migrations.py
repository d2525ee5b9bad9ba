"""Schema migrations.

Each file in ``stakehold/migrations/`` named ``NNN_description.sql`` is one
schema version. A script records its own version in ``_schema_version`` and
wraps its DDL in ``BEGIN``/``COMMIT``, so a failed script leaves the
previous version in place.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from stakehold.storage.database import Database

logger = logging.getLogger(__name__)

MIGRATION_PATTERN = re.compile(r"^(\d{3})_(.+)\.sql$")

MIGRATION_DIR = Path(__file__).resolve().parent.parent / "migrations"


@dataclass(frozen=True)
class Migration:
    version: int
    name: str
    path: Path


def discover_migrations(directory: Path = MIGRATION_DIR) -> list[Migration]:
    """Migration scripts in version order. Files not matching NNN_*.sql are ignored."""
    if not directory.is_dir():
        logger.warning("Migration directory not found: %s", directory)
        return []

    found = []
    for path in directory.iterdir():
        match = MIGRATION_PATTERN.match(path.name)
        if match:
            found.append(Migration(int(match.group(1)), match.group(2), path))
    return sorted(found, key=lambda m: m.version)


def ensure_schema(db: Database, directory: Path = MIGRATION_DIR) -> int:
    """Bring the store up to the newest schema; returns the resulting version."""
    version = db.schema_version()
    pending = [m for m in discover_migrations(directory) if m.version > version]
    if not pending:
        logger.debug("Ledger schema current at v%d", version)
        return version

    for migration in pending:
        logger.info("Migrating ledger schema v%d -> v%d (%s)", version, migration.version, migration.name)
        try:
            db.executescript(migration.path.read_text())
        except Exception as e:
            logger.error("Migration %s failed: %s", migration.path.name, e)
            raise RuntimeError(f"Migration {migration.path.name} failed: {e}") from e
        version = migration.version

    logger.info("Ledger schema now at v%d (%d migration(s) applied)", version, len(pending))
    return version
