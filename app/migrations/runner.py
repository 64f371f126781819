# app/migrations/runner.py
import re
import time
from pathlib import Path
from pprint import pformat

from app import schema
from app.config import logger, get_current_utc_time
from app.migrations import MigrationError, load_migrations

MIGRATIONS_COLLECTION = "_migrations"
MIGRATIONS_DIR = Path(__file__).resolve().parent

MIGRATION_TEMPLATE = '''from app.migrations import register


def up(db):
    pass


def down(db):
    pass


register(__name__, up, down)
'''

SNAPSHOT_TEMPLATE = '''from app import schema
from app.migrations import register

COLLECTIONS = {collections}


def up(db):
    for document in COLLECTIONS:
        schema.save_collection(db, schema.Collection.model_validate(document))


def down(db):
    pass


register(__name__, up, down)
'''


class MigrationRunner:
    """Applies and reverts registered migrations, keeping history in ``_migrations``."""

    def __init__(self, db, migrations=None):
        self.db = db
        self.migrations = list(migrations) if migrations is not None else load_migrations()
        self.history = db[MIGRATIONS_COLLECTION]

    def _by_name(self):
        return {migration.name: migration for migration in self.migrations}

    def applied(self) -> list:
        """Names of applied migrations, oldest first."""
        entries = sorted(self.history.find({}), key=lambda doc: (doc["applied"], doc["_id"]))
        return [doc["_id"] for doc in entries]

    def pending(self) -> list:
        applied = set(self.applied())
        return [m for m in sorted(self.migrations, key=lambda m: m.name) if m.name not in applied]

    def up(self) -> list:
        """Applies every pending migration in order and returns their names."""
        done = []
        for migration in self.pending():
            logger.info(f"Applying migration {migration.name}...")
            try:
                migration.up(self.db)
            except Exception as e:
                raise MigrationError(f"Failed to apply migration {migration.name}: {e}") from e
            self.history.insert_one({"_id": migration.name, "applied": get_current_utc_time()})
            done.append(migration.name)
        if done:
            logger.info(f"Applied {len(done)} migration(s).")
        else:
            logger.info("No new migrations to apply.")
        return done

    def down(self, count: int = 1) -> list:
        """Reverts the last ``count`` applied migrations, newest first."""
        if count < 1:
            raise MigrationError("The number of migrations to revert must be at least 1.")
        registered = self._by_name()
        reverted = []
        for name in list(reversed(self.applied()))[:count]:
            migration = registered.get(name)
            if migration is None:
                raise MigrationError(f"Migration {name} is not registered, run history-sync first.")
            logger.info(f"Reverting migration {name}...")
            if migration.down is not None:
                try:
                    migration.down(self.db)
                except Exception as e:
                    raise MigrationError(f"Failed to revert migration {name}: {e}") from e
            self.history.delete_one({"_id": name})
            reverted.append(name)
        return reverted

    def history_sync(self) -> list:
        """Deletes history entries with no registered migration and returns their names."""
        registered = self._by_name()
        orphaned = [name for name in self.applied() if name not in registered]
        for name in orphaned:
            self.history.delete_one({"_id": name})
            logger.info(f"Removed orphaned migration history entry {name}.")
        return orphaned


def create_migration_file(name: str, directory=None, now=None, content=MIGRATION_TEMPLATE) -> Path:
    """Writes a new migration module (blank unless ``content`` is given) and returns its path."""
    slug = re.sub(r"\W+", "_", name.strip().lower()).strip("_")
    if not slug:
        raise MigrationError("Missing or invalid migration name.")
    timestamp = int(now if now is not None else time.time())
    directory = Path(directory) if directory is not None else MIGRATIONS_DIR
    path = directory / f"{timestamp}_{slug}.py"
    if path.exists():
        raise MigrationError(f"Migration file {path} already exists.")
    path.write_text(content)
    logger.info(f"Created migration {path}.")
    return path


def create_collections_snapshot(db, directory=None, now=None) -> Path:
    """Writes a migration that re-saves every collection currently stored in ``_collections``."""
    collections = schema.list_collections(db)
    if not collections:
        raise MigrationError("No collections to snapshot.")
    documents = [collection.model_dump() for collection in collections]
    content = SNAPSHOT_TEMPLATE.format(collections=pformat(documents, sort_dicts=False))
    return create_migration_file("collections_snapshot", directory=directory, now=now, content=content)
