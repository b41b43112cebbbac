"""Fixtures partagees / Shared fixtures: one SQLite file database per test."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import inspect as sa_inspect, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rewind.database import create_engine, init_db
from rewind.exceptions import NotFoundError
from rewind.services.factory import create_services


class FakeClock:
    """Horloge pilotable / Controllable clock (naive UTC)."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeWebSocket:
    def __init__(self, fail: bool = False):
        self.sent: list[str] = []
        self.fail = fail

    async def accept(self):
        pass

    async def send_text(self, data: str):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(data)


class Tracker:
    """Simule un handler metier : mutation + enregistrement dans la meme transaction /
    Plays a business handler: mutation and recording in the same transaction.
    """

    def __init__(self, services, session_factory):
        self.services = services
        self.session_factory = session_factory

    async def create(self, actor: str, entity_type: str, obj) -> tuple[str, int]:
        async with self.session_factory() as session, session.begin():
            session.add(obj)
            await session.flush()
            entity_id = str(sa_inspect(obj).identity[0])
            after = await self.services.serializer.snapshot(session, entity_type, entity_id)
            change_id = await self.services.recorder.record(
                session, actor, entity_type, entity_id, "create", after=after
            )
        return entity_id, change_id

    async def update(self, actor: str, entity_type: str, entity_id: str, **values) -> int:
        registry = self.services.registry
        catalog = self.services.catalog
        table_name = registry.canonical(entity_type)
        table = catalog.table(table_name)
        key_column = registry.key_column(table_name)
        async with self.session_factory() as session, session.begin():
            before = await self.services.serializer.snapshot(session, entity_type, entity_id)
            await session.execute(
                update(table)
                .where(table.c[key_column] == catalog.key_value(table_name, key_column, entity_id))
                .values(**values)
            )
            after = await self.services.serializer.snapshot(session, entity_type, entity_id)
            return await self.services.recorder.record(
                session, actor, entity_type, entity_id, "update", before, after
            )

    async def delete(self, actor: str, entity_type: str, entity_id: str) -> int:
        async with self.session_factory() as session, session.begin():
            before = await self.services.serializer.snapshot(session, entity_type, entity_id)
            await self.services.dispatcher.delete(session, entity_type, entity_id)
            return await self.services.recorder.record(
                session, actor, entity_type, entity_id, "delete", before=before
            )

    async def current(self, entity_type: str, entity_id: str) -> dict | None:
        async with self.session_factory() as session:
            try:
                return await self.services.serializer.snapshot(session, entity_type, entity_id)
            except NotFoundError:
                return None


@pytest.fixture
async def engine(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'rewind.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 1, 15, 9, 0, 0))


@pytest.fixture
async def services(engine, session_factory, clock):
    services = await create_services(engine, session_factory, clock=clock)
    yield services
    await services.feed.drain()


@pytest.fixture
def tracker(services, session_factory):
    return Tracker(services, session_factory)


@pytest.fixture
def websocket_factory():
    return FakeWebSocket
