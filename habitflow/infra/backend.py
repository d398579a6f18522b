"""
Factory for the persistence backend.

Architecture Decision: Tagged variant instead of a no-op client
A backend is either ConfiguredBackend (engine + repositories) or
UnconfiguredBackend (which settings are missing). Callers match on the
variant, so a missing configuration can never look like an empty account.
"""

import logging
from dataclasses import dataclass, field
from typing import Tuple, Union

from sqlalchemy.engine import make_url

from habitflow.infra.config import Settings
from habitflow.infra.db import DatabaseEngine
from habitflow.infra.repository import HabitEntryRepository, HabitRepository, TaskRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfiguredBackend:
    engine: DatabaseEngine
    habits: HabitRepository = field(init=False)
    tasks: TaskRepository = field(init=False)
    habit_entries: HabitEntryRepository = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "habits", HabitRepository(self.engine))
        object.__setattr__(self, "tasks", TaskRepository(self.engine))
        object.__setattr__(self, "habit_entries", HabitEntryRepository(self.engine))

    async def close(self):
        await self.engine.dispose()


@dataclass(frozen=True)
class UnconfiguredBackend:
    missing: Tuple[str, ...]

    async def close(self):
        pass


Backend = Union[ConfiguredBackend, UnconfiguredBackend]


def build_database_url(backend_url: str, api_key: str) -> str:
    """
    Use the API key as the connection credential for network databases.

    File-based SQLite URLs carry no credentials and are returned unchanged.
    """
    url = make_url(backend_url)
    if url.get_backend_name() == "sqlite" or url.password:
        return backend_url
    return url.set(password=api_key).render_as_string(hide_password=False)


def create_backend(settings: Settings) -> Backend:
    """
    Create the backend variant for the given settings.

    Returns:
        ConfiguredBackend when backend_url and api_key are both set,
        UnconfiguredBackend listing what is missing otherwise
    """
    missing = settings.missing_backend_settings()
    if missing:
        logger.error(f"Backend configuration missing: {', '.join(missing)}")
        return UnconfiguredBackend(missing=tuple(missing))

    db_url = build_database_url(settings.backend_url, settings.api_key.get_secret_value())
    return ConfiguredBackend(engine=DatabaseEngine(db_url))
