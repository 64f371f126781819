# app/migrations/__init__.py
"""
Migration registry.

Each module in this package is named ``<unix timestamp>_<description>.py``
and calls ``register(__name__, up, down)`` at import time. Migrations are applied in
name order, which is also creation order.

Commands (see app/cli.py):
    habit-backend migrate create <name>  - Create a blank migration
    habit-backend migrate up             - Apply pending migrations
    habit-backend migrate down [n]       - Revert n migrations
    habit-backend migrate collections    - Snapshot current collections
    habit-backend migrate history-sync   - Clean orphaned history entries
"""
import importlib
import pkgutil
from typing import Callable, NamedTuple, Optional


class Migration(NamedTuple):
    name: str
    up: Callable
    down: Optional[Callable]


class MigrationError(RuntimeError):
    pass


_registry = {}


def register(name: str, up: Callable, down: Optional[Callable] = None) -> Migration:
    """Registers a migration; ``name`` is the module ``__name__`` or its last part."""
    migration = Migration(name=name.rsplit(".", 1)[-1], up=up, down=down)
    _registry[migration.name] = migration
    return migration


def load_migrations() -> list:
    """Imports every migration module of this package and returns them sorted by name."""
    for module in pkgutil.iter_modules(__path__):
        if module.name[:1].isdigit():
            importlib.import_module(f"{__name__}.{module.name}")
    return [_registry[name] for name in sorted(_registry)]
