import asyncio
import sqlite3
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import event

from app.core.errors import AlreadyExists, ConflictingHistory, NotFound
from app.features.attributes.repository import SqlAttributeRepository
from app.features.attributes.schemas import Attribute, BlamedMessage, BOT_OBSERVER
from app.features.attributes.store import AttributeStore


class MemoryAttributeRepository:
    """Dict-backed repository that yields to the event loop on every call."""

    def __init__(self):
        self.attributes: dict[tuple[str, str], Attribute] = {}

    async def get(self, subject_id, attribute_id):
        await asyncio.sleep(0)
        return self.attributes.get((subject_id, attribute_id))

    async def list(self, subject_id):
        await asyncio.sleep(0)
        return [a for (subject, _), a in sorted(self.attributes.items()) if subject == subject_id]

    async def put(self, subject_id, attribute):
        await asyncio.sleep(0)
        stored = self.attributes.get((subject_id, attribute.id))
        if stored is not None and len(stored.history) > len(attribute.history):
            raise ConflictingHistory("stale write")
        self.attributes[(subject_id, attribute.id)] = attribute

    async def delete(self, subject_id, attribute_id):
        await asyncio.sleep(0)
        return self.attributes.pop((subject_id, attribute_id), None) is not None


def ticking_clock(start=datetime(2024, 1, 1, tzinfo=timezone.utc)):
    ticks = iter(start + timedelta(seconds=i) for i in range(10_000))
    return lambda: next(ticks)


@pytest.mark.asyncio
async def test_create_records_first_value():
    store = AttributeStore(MemoryAttributeRepository(), clock=ticking_clock())
    blame = BlamedMessage(in_="question", id="q1")

    attribute = await store.create("pfy", "smartness", 0, observer_id="bofh", blame=blame)

    assert attribute.value == 0
    assert len(attribute.history) == 1
    assert attribute.history[0].observer == "bofh"
    assert attribute.history[0].message == blame
    assert await store.get("pfy", "smartness") == attribute


@pytest.mark.asyncio
async def test_create_twice_fails():
    store = AttributeStore(MemoryAttributeRepository(), clock=ticking_clock())
    await store.create("pfy", "smartness", 0, observer_id="bofh")

    with pytest.raises(AlreadyExists):
        await store.create("pfy", "smartness", 1, observer_id="bofh")
    assert (await store.get("pfy", "smartness")).value == 0


@pytest.mark.asyncio
async def test_updates_only_append_history():
    store = AttributeStore(MemoryAttributeRepository(), clock=ticking_clock())
    before = await store.create("pfy", "smartness", 0, observer_id="bofh")

    after = await store.update("pfy", "smartness", 100, observer_id="groot")
    latest = await store.update("pfy", "smartness", "genius", observer_id=BOT_OBSERVER)

    assert after.history[:1] == before.history
    assert latest.history[:2] == after.history
    assert [s.value for s in latest.history] == [0, 100, "genius"]
    assert latest.value == latest.history[-1].value
    assert latest.history[-1].observer == BOT_OBSERVER
    timestamps = [s.timestamp for s in latest.history]
    assert timestamps == sorted(timestamps)


@pytest.mark.asyncio
async def test_missing_attribute():
    store = AttributeStore(MemoryAttributeRepository())

    with pytest.raises(NotFound):
        await store.get("pfy", "smartness")
    with pytest.raises(NotFound):
        await store.update("pfy", "smartness", 1, observer_id="bofh")
    with pytest.raises(NotFound):
        await store.delete("pfy", "smartness")
    assert await store.list("pfy") == []


@pytest.mark.asyncio
async def test_delete_removes_value_and_history():
    store = AttributeStore(MemoryAttributeRepository(), clock=ticking_clock())
    await store.create("pfy", "smartness", 0, observer_id="bofh")
    await store.create("pfy", "patience", 3, observer_id="bofh")

    await store.delete("pfy", "smartness")

    assert [a.id for a in await store.list("pfy")] == ["patience"]
    with pytest.raises(NotFound):
        await store.get("pfy", "smartness")


@pytest.mark.asyncio
async def test_clock_going_backwards_is_a_conflict():
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    times = iter([start, start - timedelta(minutes=1)])
    store = AttributeStore(MemoryAttributeRepository(), clock=lambda: next(times))
    await store.create("pfy", "smartness", 0, observer_id="bofh")

    with pytest.raises(ConflictingHistory):
        await store.update("pfy", "smartness", 1, observer_id="bofh")
    assert len((await store.get("pfy", "smartness")).history) == 1


@pytest.mark.asyncio
async def test_concurrent_updates_are_serialized():
    store = AttributeStore(MemoryAttributeRepository(), clock=ticking_clock())
    await store.create("pfy", "counter", 0, observer_id="bofh")

    await asyncio.gather(*(
        store.update("pfy", "counter", i, observer_id="bofh") for i in range(1, 21)
    ))

    attribute = await store.get("pfy", "counter")
    assert len(attribute.history) == 21
    assert sorted(s.value for s in attribute.history) == list(range(21))
    assert attribute.value == attribute.history[-1].value


@pytest.mark.asyncio
async def test_sql_repository_round_trip(session_factory, cast):
    async with session_factory() as db:
        store = AttributeStore(SqlAttributeRepository(db))
        await store.create("pfy", "smartness", 0, observer_id="bofh",
                           blame=BlamedMessage(in_="message", id="m1"))
        await store.update("pfy", "smartness", 100, observer_id="groot")

    async with session_factory() as db:
        attribute = await AttributeStore(SqlAttributeRepository(db)).get("pfy", "smartness")

    assert attribute.value == 100
    assert [s.value for s in attribute.history] == [0, 100]
    assert attribute.history[0].message.in_ == "message"
    assert attribute.history[1].message is None
    assert attribute.history[0].timestamp.tzinfo is not None


@pytest.mark.asyncio
async def test_sql_repository_rejects_shorter_history(session_factory, cast):
    async with session_factory() as db:
        store = AttributeStore(SqlAttributeRepository(db))
        created = await store.create("pfy", "smartness", 0, observer_id="bofh")
        await store.update("pfy", "smartness", 1, observer_id="bofh")

        with pytest.raises(ConflictingHistory):
            await SqlAttributeRepository(db).put("pfy", created)


@pytest.mark.asyncio
async def test_sql_concurrent_updates_keep_every_change(session_factory, cast):
    async with session_factory() as db:
        await AttributeStore(SqlAttributeRepository(db)).create("pfy", "counter", 0, observer_id="bofh")

    async def bump(value):
        async with session_factory() as db:
            await AttributeStore(SqlAttributeRepository(db)).update("pfy", "counter", value, observer_id="bofh")

    await asyncio.gather(*(bump(i) for i in range(1, 6)))

    async with session_factory() as db:
        attribute = await AttributeStore(SqlAttributeRepository(db)).get("pfy", "counter")
    assert len(attribute.history) == 6
    assert sorted(s.value for s in attribute.history) == list(range(6))


@pytest.mark.asyncio
async def test_sql_delete(session_factory, cast):
    async with session_factory() as db:
        store = AttributeStore(SqlAttributeRepository(db))
        await store.create("pfy", "smartness", 0, observer_id="bofh")
        await store.delete("pfy", "smartness")
        assert await store.list("pfy") == []
        with pytest.raises(NotFound):
            await store.delete("pfy", "smartness")


@pytest.mark.asyncio
async def test_sql_value_matches_history_despite_concurrent_write(session_factory, cast, tmp_path):
    async with session_factory() as db:
        await AttributeStore(SqlAttributeRepository(db)).create("pfy", "smartness", 0, observer_id="bofh")

    # Another process commits an update just before the history is read
    written = []

    def write_elsewhere(conn, cursor, statement, parameters, context, executemany):
        if written or not statement.lstrip().upper().startswith("SELECT") or "attribute_snapshots" not in statement:
            return
        other = sqlite3.connect(tmp_path / "test.db")
        try:
            other.execute("UPDATE attributes SET value = '1' WHERE subject_id = 'pfy' AND attribute_id = 'smartness'")
            other.execute(
                "INSERT INTO attribute_snapshots (id, subject_id, attribute_id, position, value, observer, timestamp) "
                "VALUES ('01J0000000000000000000WRTE', 'pfy', 'smartness', 1, '1', 'moss', '2099-01-01 00:00:00.000000')"
            )
            other.commit()
        finally:
            other.close()
        written.append(statement)

    engine = session_factory.kw["bind"].sync_engine
    event.listen(engine, "before_cursor_execute", write_elsewhere)
    try:
        async with session_factory() as db:
            attribute = await SqlAttributeRepository(db).get("pfy", "smartness")
    finally:
        event.remove(engine, "before_cursor_execute", write_elsewhere)

    assert written
    assert [s.value for s in attribute.history] == [0, 1]
    assert attribute.value == attribute.history[-1].value


@pytest.mark.asyncio
async def test_sql_list_keeps_creation_order(session_factory, cast):
    async with session_factory() as db:
        store = AttributeStore(SqlAttributeRepository(db), clock=ticking_clock())
        for attribute_id in ("zeta", "alpha", "mid"):
            await store.create("pfy", attribute_id, 0, observer_id="bofh")
        await store.update("pfy", "zeta", 1, observer_id="bofh")

    async with session_factory() as db:
        attributes = await AttributeStore(SqlAttributeRepository(db)).list("pfy")

    assert [a.id for a in attributes] == ["zeta", "alpha", "mid"]
