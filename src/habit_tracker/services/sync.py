"""Replay of mutations recorded while the remote store was unreachable."""

import asyncio
import logging
from dataclasses import dataclass
from uuid import UUID

from pydantic import TypeAdapter, ValidationError

from habit_tracker.domain.missions import Category, Frequency, NewMission
from habit_tracker.domain.pending import PendingOperationRecord, PendingOperationType
from habit_tracker.services.completions import CompletionService
from habit_tracker.services.missions import MissionService
from habit_tracker.services.storage import KeyValueStore

PENDING_OPERATIONS_KEY = "pendingOperations"

_RECORDS = TypeAdapter(list[PendingOperationRecord])
_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncResult:
    """Counts from one replay pass."""

    replayed: int = 0
    failed: int = 0
    skipped: int = 0


@dataclass
class PendingOperationSync:
    """Replays recorded mutations through the regular service entry points."""

    store: KeyValueStore
    mission_service: MissionService
    completion_service: CompletionService
    storage_key: str = PENDING_OPERATIONS_KEY

    def record(
        self, operation_type: PendingOperationType, payload: dict[str, object]
    ) -> None:
        """Append a mutation to the stored list."""
        records = self._load_for_append()
        records.append(
            PendingOperationRecord(operation_type=operation_type.value, payload=payload)
        )
        self.store.set(
            self.storage_key, _RECORDS.dump_json(records, by_alias=True).decode()
        )

    def pending(self) -> list[PendingOperationRecord]:
        """Return the stored records without replaying them."""
        raw = self.store.get(self.storage_key)
        if raw is None:
            return []
        return _RECORDS.validate_json(raw)

    async def sync(self) -> SyncResult:
        """Replay every stored mutation, then drop it from the stored list.

        All replays are attempted even when some fail; the replayed records are
        dropped either way, while records appended during the replay are kept
        for the next pass. A payload that cannot be parsed is discarded whole.
        """
        raw = self.store.get(self.storage_key)
        if raw is None:
            return SyncResult()
        try:
            records = _RECORDS.validate_json(raw)
        except ValidationError:
            _logger.exception("Discarding malformed pending operations")
            self.store.remove(self.storage_key)
            return SyncResult()

        outcomes = await asyncio.gather(
            *(self._replay(record) for record in records), return_exceptions=True
        )
        replayed = failed = skipped = 0
        for record, outcome in zip(records, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                failed += 1
                _logger.warning(
                    "Pending %s replay failed: %s", record.operation_type, outcome
                )
            elif outcome:
                replayed += 1
            else:
                skipped += 1
        self._drop_replayed(len(records))
        _logger.info(
            "Pending operations synced: replayed=%s failed=%s skipped=%s",
            replayed,
            failed,
            skipped,
        )
        return SyncResult(replayed=replayed, failed=failed, skipped=skipped)

    async def _replay(self, record: PendingOperationRecord) -> bool:
        payload = record.payload
        if record.operation_type == PendingOperationType.CREATE_MISSION:
            await self.mission_service.create_mission(_new_mission(payload))
        elif record.operation_type == PendingOperationType.COMPLETE_MISSION:
            await self.completion_service.complete_mission(
                _uuid_field(payload, "user_id", "userId"),
                _uuid_field(payload, "mission_id", "missionId"),
            )
        elif record.operation_type == PendingOperationType.DELETE_MISSION:
            await self.mission_service.delete_mission(
                _uuid_field(payload, "mission_id", "missionId")
            )
        else:
            _logger.warning(
                "Skipping unknown pending operation: %s", record.operation_type
            )
            return False
        return True

    def _drop_replayed(self, count: int) -> None:
        remaining = self._load_for_append()[count:]
        if remaining:
            self.store.set(
                self.storage_key, _RECORDS.dump_json(remaining, by_alias=True).decode()
            )
        else:
            self.store.remove(self.storage_key)

    def _load_for_append(self) -> list[PendingOperationRecord]:
        try:
            return self.pending()
        except ValidationError:
            _logger.warning("Replacing malformed pending operations")
            return []


def _uuid_field(payload: dict[str, object], *names: str) -> UUID:
    for name in names:
        value = payload.get(name)
        if value is not None:
            return UUID(str(value))
    raise KeyError(names[0])


def _new_mission(payload: dict[str, object]) -> NewMission:
    return NewMission(
        user_id=_uuid_field(payload, "user_id", "userId"),
        title=str(payload["title"]),
        category=Category(payload["category"]),
        frequency=Frequency(payload["frequency"]),
        sticker=str(payload.get("sticker", "⭐")),
        is_custom=bool(payload.get("is_custom", True)),
    )
