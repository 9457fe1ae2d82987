"""
Attribute persistence: get, list, put and delete keyed by subject and attribute ID.
"""
from typing import Protocol
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from app.core.database.base import as_utc
from app.core.errors import ConflictingHistory
from app.features.attributes.models import AttributeRecord, AttributeSnapshotRecord
from app.features.attributes.schemas import Attribute, AttributeSnapshot, BlamedMessage


class AttributeRepository(Protocol):
    """Storage the attribute store is written against."""

    async def get(self, subject_id: str, attribute_id: str) -> Attribute | None: ...

    async def list(self, subject_id: str) -> list[Attribute]: ...

    async def put(self, subject_id: str, attribute: Attribute) -> None: ...

    async def delete(self, subject_id: str, attribute_id: str) -> bool: ...


def to_attribute(record: AttributeRecord) -> Attribute:
    """Convert a stored record (with its history loaded) to the domain model."""
    return Attribute(
        id=record.attribute_id,
        value=record.value,
        history=tuple(
            AttributeSnapshot(
                value=snapshot.value,
                observer=snapshot.observer,
                timestamp=as_utc(snapshot.timestamp),
                message=BlamedMessage.model_validate(snapshot.message) if snapshot.message else None,
            )
            for snapshot in record.history
        ),
    )


class SqlAttributeRepository:
    """
    Attribute repository backed by an async SQLAlchemy session.

    ``put`` only ever inserts snapshots past the stored history length; the
    stored history is never rewritten.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _load(self, subject_id: str, attribute_id: str) -> AttributeRecord | None:
        # Value and history come from a single SELECT so they always agree
        result = await self.db.execute(
            select(AttributeRecord)
            .where(
                AttributeRecord.subject_id == subject_id,
                AttributeRecord.attribute_id == attribute_id,
            )
            .options(joinedload(AttributeRecord.history))
            .execution_options(populate_existing=True)
        )
        return result.unique().scalar_one_or_none()

    async def get(self, subject_id: str, attribute_id: str) -> Attribute | None:
        record = await self._load(subject_id, attribute_id)
        return to_attribute(record) if record else None

    async def list(self, subject_id: str) -> list[Attribute]:
        """List the attributes of ``subject_id`` in the order they were created."""
        first_change = (
            select(AttributeSnapshotRecord.timestamp)
            .where(
                AttributeSnapshotRecord.subject_id == AttributeRecord.subject_id,
                AttributeSnapshotRecord.attribute_id == AttributeRecord.attribute_id,
                AttributeSnapshotRecord.position == 0,
            )
            .correlate(AttributeRecord)
            .scalar_subquery()
        )
        result = await self.db.execute(
            select(AttributeRecord)
            .where(AttributeRecord.subject_id == subject_id)
            .options(joinedload(AttributeRecord.history))
            .order_by(first_change, AttributeRecord.attribute_id)
            .execution_options(populate_existing=True)
        )
        return [to_attribute(record) for record in result.unique().scalars().all()]

    async def put(self, subject_id: str, attribute: Attribute) -> None:
        """
        Store the value and append any snapshots not yet stored, in one commit.

        Raises:
            ConflictingHistory: if another writer stored the same history slot first
        """
        record = await self._load(subject_id, attribute.id)
        if record is None:
            record = AttributeRecord(subject_id=subject_id, attribute_id=attribute.id, value=attribute.value)
            self.db.add(record)

        stored = len(record.history)
        if stored > len(attribute.history):
            raise ConflictingHistory(f"Attribute {attribute.id} has more history than the update")

        record.value = attribute.value
        for position, snapshot in enumerate(attribute.history[stored:], start=stored):
            record.history.append(
                AttributeSnapshotRecord(
                    position=position,
                    value=snapshot.value,
                    observer=snapshot.observer,
                    timestamp=snapshot.timestamp,
                    message=snapshot.message.model_dump(by_alias=True) if snapshot.message else None,
                )
            )

        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictingHistory(f"Attribute {attribute.id} was changed concurrently")

    async def delete(self, subject_id: str, attribute_id: str) -> bool:
        record = await self._load(subject_id, attribute_id)
        if record is None:
            return False
        await self.db.delete(record)
        await self.db.commit()
        return True
