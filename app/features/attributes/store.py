"""
Attribute store: current values plus an append-only history.

Writes to one attribute are serialized with a per ``(subject, attribute)``
lock, and every value change appends exactly one snapshot in the same
``put`` that changes the value. Writes to different attributes never wait on
each other.
"""
import asyncio
from datetime import datetime
from typing import Callable
from weakref import WeakValueDictionary

from app.core.database.base import utcnow
from app.core.errors import AlreadyExists, ConflictingHistory, NotFound
from app.features.attributes.repository import AttributeRepository
from app.features.attributes.schemas import Attribute, AttributeSnapshot, AttributeValue, BlamedMessage
from app.utils import get_logger


log = get_logger(__name__)

# Locks disappear once no writer holds a reference to them
_locks: "WeakValueDictionary[tuple[str, str], asyncio.Lock]" = WeakValueDictionary()


def attribute_lock(subject_id: str, attribute_id: str) -> asyncio.Lock:
    """Get the lock serializing writes to one attribute of one subject."""
    key = (subject_id, attribute_id)
    lock = _locks.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _locks[key] = lock
    return lock


class AttributeStore:
    """
    CRUD over a subject's attributes.

    Callers must obtain an allow decision from the permission engine first;
    the store itself applies no policy.

    Usage:
        store = AttributeStore(SqlAttributeRepository(db))
        attribute = await store.create(user_id, "smartness", 0, observer_id=actor.id)
    """

    def __init__(self, repository: AttributeRepository, clock: Callable[[], datetime] = utcnow):
        self.repository = repository
        self.clock = clock

    def _snapshot(
        self,
        value: AttributeValue,
        observer_id: str,
        blame: BlamedMessage | None,
        history: tuple[AttributeSnapshot, ...] = (),
    ) -> AttributeSnapshot:
        timestamp = self.clock()
        if history and timestamp < history[-1].timestamp:
            raise ConflictingHistory(
                f"Snapshot at {timestamp.isoformat()} precedes the last recorded change "
                f"at {history[-1].timestamp.isoformat()}"
            )
        return AttributeSnapshot(value=value, observer=observer_id, timestamp=timestamp, message=blame)

    async def create(
        self,
        subject_id: str,
        attribute_id: str,
        value: AttributeValue,
        observer_id: str,
        blame: BlamedMessage | None = None,
    ) -> Attribute:
        """
        Create an attribute whose history holds its first value.

        Raises:
            AlreadyExists: if the subject already has the attribute
        """
        async with attribute_lock(subject_id, attribute_id):
            if await self.repository.get(subject_id, attribute_id) is not None:
                raise AlreadyExists(f"Attribute {attribute_id} already exists")

            snapshot = self._snapshot(value, observer_id, blame)
            attribute = Attribute(id=attribute_id, value=value, history=(snapshot,))
            await self.repository.put(subject_id, attribute)

        log.info("Attribute %s of %s created by %s", attribute_id, subject_id, observer_id)
        return attribute

    async def update(
        self,
        subject_id: str,
        attribute_id: str,
        value: AttributeValue,
        observer_id: str,
        blame: BlamedMessage | None = None,
    ) -> Attribute:
        """
        Change an attribute's value, appending one snapshot.

        Raises:
            NotFound: if the subject has no such attribute
            ConflictingHistory: if the clock went backwards past the last snapshot
        """
        async with attribute_lock(subject_id, attribute_id):
            current = await self.repository.get(subject_id, attribute_id)
            if current is None:
                raise NotFound(f"Attribute {attribute_id} not found")

            snapshot = self._snapshot(value, observer_id, blame, current.history)
            attribute = current.model_copy(
                update={"value": value, "history": (*current.history, snapshot)}
            )
            await self.repository.put(subject_id, attribute)

        log.info(
            "Attribute %s of %s updated by %s (%d changes)",
            attribute_id, subject_id, observer_id, len(attribute.history),
        )
        return attribute

    async def get(self, subject_id: str, attribute_id: str) -> Attribute:
        """
        Raises:
            NotFound: if the subject has no such attribute
        """
        attribute = await self.repository.get(subject_id, attribute_id)
        if attribute is None:
            raise NotFound(f"Attribute {attribute_id} not found")
        return attribute

    async def list(self, subject_id: str) -> list[Attribute]:
        return await self.repository.list(subject_id)

    async def delete(self, subject_id: str, attribute_id: str) -> None:
        """
        Delete an attribute together with its history.

        Raises:
            NotFound: if the subject has no such attribute
        """
        async with attribute_lock(subject_id, attribute_id):
            if not await self.repository.delete(subject_id, attribute_id):
                raise NotFound(f"Attribute {attribute_id} not found")

        log.info("Attribute %s of %s deleted", attribute_id, subject_id)
