# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Tests for SqlAlchemyStorageAdapter and the SQL expression compiler."""

import asyncio
from dataclasses import dataclass
from uuid import UUID, uuid4

import pytest
from sqlalchemy import String, select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from kirei.data.adapters.sqlalchemy import SqlAlchemyExpressionCompiler, SqlAlchemyStorageAdapter
from kirei.data.batching import BatchScope, RepositoryDataLoader
from kirei.data.expression import selector, where
from kirei.data.ordering import Ordering
from kirei.data.repository import Repository


class Base(DeclarativeBase):
    pass


class WidgetRow(Base):
    __tablename__ = "widgets"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(50), default="")
    price: Mapped[float] = mapped_column(default=0.0)
    note: Mapped[str | None] = mapped_column(String(50), nullable=True, default=None)


class PartRow(Base):
    __tablename__ = "parts"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    label: Mapped[str] = mapped_column(String(50), default="")


class GaugeRow(Base):
    __tablename__ = "gauges"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(50), default="")
    reading: Mapped[float | None] = mapped_column(nullable=True, default=None)


@dataclass
class Widget:
    id: UUID | None = None
    name: str = ""
    price: float = 0.0


@dataclass
class Part:
    id: int | None = None
    label: str = ""


@dataclass
class Gauge:
    id: int | None = None
    name: str = ""
    reading: float | None = None


SEED = [("A", 5.0), ("B", 20.0), ("C", 15.0), ("D", 30.0)]


@pytest.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session(engine):
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
def storage(session):
    return SqlAlchemyStorageAdapter(WidgetRow, session)


@pytest.fixture
def repo(storage):
    return Repository(Widget, storage)


@pytest.fixture
async def seeded(storage):
    rows = []
    for index, (name, price) in enumerate(SEED):
        # Keys ascend with insertion order so natural order is A, B, C, D.
        row = WidgetRow(id=UUID(int=index + 1), name=name, price=price)
        await storage.insert(row)
        rows.append(row)
    return rows


by_price = selector(WidgetRow, lambda r: r.price)
by_name = selector(WidgetRow, lambda r: r.name)


class TestCompiler:
    def test_comparison_compiles_to_column_expression(self):
        clause = SqlAlchemyExpressionCompiler(WidgetRow).compile(where(WidgetRow, lambda r: r.price > 10))
        assert str(clause) == "widgets.price > :price_1"

    def test_and_or_not(self):
        predicate = where(WidgetRow, lambda r: ((r.price > 10) & (r.name != "C")) | ~r.note.is_none())
        sql = str(SqlAlchemyExpressionCompiler(WidgetRow).compile(predicate))
        assert " AND " in sql
        assert " OR " in sql
        assert "IS NOT NULL" in sql or "NOT (widgets.note IS NULL)" in sql

    def test_constant_on_the_left(self):
        sql = str(SqlAlchemyExpressionCompiler(WidgetRow).compile(where(WidgetRow, lambda r: (100 - r.price) > 80)))
        assert "widgets.price" in sql


class TestSqlAlchemyStorage:
    @pytest.mark.asyncio
    async def test_query_with_filter_ordering_and_window(self, storage, seeded):
        rows = await storage.query(where(WidgetRow, lambda r: r.price > 10), Ordering.asc(by_name), skip=1, take=2)
        assert [r.name for r in rows] == ["C", "D"]

    @pytest.mark.asyncio
    async def test_unordered_query_uses_key_order(self, storage, seeded):
        rows = await storage.query()
        assert [r.name for r in rows] == ["A", "B", "C", "D"]

    @pytest.mark.asyncio
    async def test_descending_then_by(self, storage, seeded):
        await storage.insert(WidgetRow(id=UUID(int=9), name="E", price=20.0))
        rows = await storage.query(ordering=Ordering.desc(by_price).then(by_name, descending=True))
        assert [r.name for r in rows] == ["D", "E", "B", "C", "A"]

    @pytest.mark.asyncio
    async def test_skip_without_take(self, storage, seeded):
        rows = await storage.query(skip=3)
        assert [r.name for r in rows] == ["D"]

    @pytest.mark.asyncio
    async def test_string_calls(self, storage, seeded):
        async def names(fn):
            return [r.name for r in await storage.query(where(WidgetRow, fn))]

        assert await names(lambda r: r.name.in_(["B", "D"])) == ["B", "D"]
        assert await names(lambda r: r.name.lower() == "c") == ["C"]
        assert await names(lambda r: r.name.startswith("A")) == ["A"]
        assert await names(lambda r: r.note.is_none() & (r.price >= 20)) == ["B", "D"]

    @pytest.mark.asyncio
    async def test_count(self, storage, seeded):
        assert await storage.count() == 4
        assert await storage.count(where(WidgetRow, lambda r: r.price > 10)) == 3
        assert await storage.count(where(WidgetRow, lambda r: r.price > 10), skip=2, take=5) == 1

    @pytest.mark.asyncio
    async def test_find_by_key_and_delete(self, storage, seeded):
        key = seeded[0].id
        row = await storage.find_by_key(key)
        assert row.name == "A"

        await storage.delete(row)
        assert await storage.find_by_key(key) is None

    def test_missing_session(self):
        storage = SqlAlchemyStorageAdapter(WidgetRow)
        with pytest.raises(RuntimeError):
            storage._require_session()


class TestSqlAlchemyRepository:
    @pytest.mark.asyncio
    async def test_find_all_scenario(self, repo, seeded):
        result = await repo.find_all(
            where(Widget, lambda w: w.price > 10),
            selector(Widget, lambda w: w.name),
            skip=1,
            take=2,
        )
        assert [w.name for w in result] == ["C", "D"]
        assert all(isinstance(w, Widget) for w in result)

    @pytest.mark.asyncio
    async def test_save_insert_then_update(self, repo, session):
        widget = await repo.create()
        widget.name = "Sprocket"
        await repo.save(widget)

        widget.price = 4.5
        await repo.save(widget)

        rows = (await session.execute(select(WidgetRow))).scalars().all()
        assert len(rows) == 1
        assert rows[0].id == widget.id
        assert rows[0].price == 4.5

    @pytest.mark.asyncio
    async def test_remove(self, repo, seeded):
        assert await repo.remove(seeded[1].id) is True
        assert await repo.remove(seeded[1].id) is False
        assert await repo.count() == 3

    @pytest.mark.asyncio
    async def test_store_assigned_key_is_copied_back(self, session):
        parts = Repository(Part, SqlAlchemyStorageAdapter(PartRow, session))
        part = await parts.create()
        assert part.id is None

        part.label = "bolt"
        await parts.save(part)

        assert isinstance(part.id, int)
        assert (await parts.find(part.id)).label == "bolt"


class CountingSqlStorage(SqlAlchemyStorageAdapter):
    def __init__(self, entity, session):
        super().__init__(entity, session)
        self.queries = []

    async def query(self, where=None, ordering=None, skip=0, take=None):
        self.queries.append((where, ordering, skip, take))
        return await super().query(where, ordering, skip, take)


class TestSqlAlchemyBatching:
    @pytest.fixture
    async def tied(self, session):
        storage = CountingSqlStorage(WidgetRow, session)
        # Insertion order differs from key order; prices tie at 20.
        for key, name, price in [(3, "P", 20.0), (1, "Q", 20.0), (4, "R", 5.0), (2, "S", 20.0), (5, "T", 30.0)]:
            await storage.insert(WidgetRow(id=UUID(int=key), name=name, price=price))
        return storage

    @pytest.mark.asyncio
    async def test_ties_resolve_the_same_alone_and_batched(self, tied):
        repo = Repository(Widget, tied)
        loader = RepositoryDataLoader(repo)
        dear = where(Widget, lambda w: w.price >= 20)
        named_r = where(Widget, lambda w: w.name == "R")
        by_price_asc = Ordering.asc(selector(Widget, lambda w: w.price))
        by_price_desc = Ordering.desc(selector(Widget, lambda w: w.price))

        async with BatchScope():
            alone_asc = await loader.queue_find_all(dear, by_price_asc, take=2)
        async with BatchScope():
            alone_desc = await loader.queue_find_all(dear, by_price_desc, skip=1)
        assert len(tied.queries) == 2
        assert all(ordering is not None for _, ordering, _, _ in tied.queries)

        tied.queries.clear()
        async with BatchScope():
            batched_asc, batched_desc, sibling = await asyncio.gather(
                loader.queue_find_all(dear, by_price_asc, take=2),
                loader.queue_find_all(dear, by_price_desc, skip=1),
                loader.queue_find_all(named_r),
            )
        assert len(tied.queries) == 1

        assert [w.name for w in alone_asc] == ["Q", "S"]
        assert [w.name for w in alone_desc] == ["Q", "S", "P"]
        assert [w.name for w in batched_asc] == [w.name for w in alone_asc]
        assert [w.name for w in batched_desc] == [w.name for w in alone_desc]
        assert [w.name for w in sibling] == ["R"]

    @pytest.mark.asyncio
    async def test_null_members_match_direct_find_all(self, session):
        gauges = Repository(Gauge, SqlAlchemyStorageAdapter(GaugeRow, session))
        for key, name, reading in [(1, "A", 5.0), (2, "B", 20.0), (3, "X", None)]:
            await gauges.save(Gauge(id=key, name=name, reading=reading))
        high = where(Gauge, lambda g: g.reading > 10)
        loader = RepositoryDataLoader(gauges)

        direct = [g.name for g in await gauges.find_all(high)]
        async with BatchScope():
            batched, sibling = await asyncio.gather(
                loader.queue_find_all(high),
                loader.queue_find_all(where(Gauge, lambda g: g.name == "X")),
            )

        assert direct == ["B"]
        assert [g.name for g in batched] == direct
        assert [g.name for g in sibling] == ["X"]
