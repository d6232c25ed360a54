"""
Progression repositories.

Purpose
-------
Load and store `ProgressionRecord`s. Two backends share one contract:

- `ModDataProgressionRepository`: the record lives as a versioned blob inside
  the host's per-actor key-value data, so it travels with the actor's save.
- `SqlProgressionRepository`: one row per actor in ``progression_records``,
  accessed through `DatabaseService` sessions and transactions.

Non-Responsibilities
--------------------
- No business rules (handled by `ProgressionRecord` / `ProgressionService`)
- No caching (handled by `ProgressionService`)
"""

from __future__ import annotations

from typing import Any, Callable, MutableMapping, Protocol

from sqlalchemy.exc import SQLAlchemyError

from src.core.database.service import DatabaseService
from src.core.exceptions import DatabaseError
from src.core.logging.logger import get_logger
from src.database.models.progression import ProgressionRow
from src.domain.models.progression import ProgressionRecord
from src.modules.rewards import constants

logger = get_logger(__name__)

ActorDataProvider = Callable[[str], MutableMapping[str, Any]]


class ProgressionRepository(Protocol):
    def load(self, actor_id: str) -> ProgressionRecord: ...

    def save(self, record: ProgressionRecord) -> None: ...


class ModDataProgressionRepository:
    """
    Stores the record blob under ``actor_data[actor_id]["progression"]``.

    Blobs found under the legacy ``"BCR"`` key are migrated on first load:
    the converted blob is written under the current key and the legacy key
    is dropped.

    Args:
        actor_data: Returns the mutable per-actor data mapping; may raise
            `HostError` if the actor is not available.
    """

    def __init__(self, actor_data: ActorDataProvider) -> None:
        self._actor_data = actor_data

    def load(self, actor_id: str) -> ProgressionRecord:
        data = self._actor_data(actor_id)
        blob = data.get(constants.MOD_DATA_KEY)
        if blob is None and constants.LEGACY_MOD_DATA_KEY in data:
            record = ProgressionRecord.from_blob(actor_id, data[constants.LEGACY_MOD_DATA_KEY])
            data[constants.MOD_DATA_KEY] = record.to_blob()
            del data[constants.LEGACY_MOD_DATA_KEY]
            logger.info(
                "Migrated legacy progression data",
                extra={
                    "actor_id": actor_id,
                    "counter": record.counter,
                    "milestones_granted": record.milestones_granted,
                },
            )
            return record
        return ProgressionRecord.from_blob(actor_id, blob)

    def save(self, record: ProgressionRecord) -> None:
        self._actor_data(record.actor_id)[constants.MOD_DATA_KEY] = record.to_blob()


class SqlProgressionRepository:
    """
    SQL-backed repository.

    All SQLAlchemy failures are wrapped in `DatabaseError`.
    """

    def __init__(self, database_service: type[DatabaseService] = DatabaseService) -> None:
        self._db = database_service

    def load(self, actor_id: str) -> ProgressionRecord:
        try:
            with self._db.get_session() as session:
                row = session.get(ProgressionRow, actor_id)
                if row is None:
                    return ProgressionRecord.new(actor_id)
                blob = {
                    "schema_version": row.schema_version,
                    "counter": row.counter,
                    "milestones_granted": row.milestones_granted,
                    "history": list(row.history or []),
                }
        except SQLAlchemyError as exc:
            raise DatabaseError("load_progression", exc) from exc
        return ProgressionRecord.from_blob(actor_id, blob)

    def save(self, record: ProgressionRecord) -> None:
        blob = record.to_blob()
        try:
            with self._db.get_transaction() as session:
                row = session.get(ProgressionRow, record.actor_id)
                if row is None:
                    row = ProgressionRow(actor_id=record.actor_id)
                    session.add(row)
                row.schema_version = blob["schema_version"]
                row.counter = blob["counter"]
                row.milestones_granted = blob["milestones_granted"]
                row.history = blob["history"]
        except SQLAlchemyError as exc:
            raise DatabaseError("save_progression", exc) from exc

        logger.debug(
            "Progression record saved",
            extra={
                "actor_id": record.actor_id,
                "counter": record.counter,
                "milestones_granted": record.milestones_granted,
            },
        )
