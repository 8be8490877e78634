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
"""StoragePort over a SQLAlchemy 2.0 ``AsyncSession``."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from kirei.data.adapters.sqlalchemy.compiler import SqlAlchemyExpressionCompiler
from kirei.data.expression import Lambda
from kirei.data.ordering import Ordering
from kirei.data.schema import SchemaRegistry, default_registry

S = TypeVar("S")
ID = TypeVar("ID")


class SqlAlchemyStorageAdapter(Generic[S, ID]):
    """Relational storage for one mapped entity class.

    Result order is always deterministic: requested ordering keys come
    first and the primary key breaks ties; unordered queries come back in
    primary-key order. Writes flush but do not commit; the session owner
    decides the transaction boundary.

    Usage::

        storage = SqlAlchemyStorageAdapter(WidgetRow, session)
        repository = Repository(Widget, storage)
    """

    def __init__(
        self,
        entity: type[S],
        session: AsyncSession | None = None,
        registry: SchemaRegistry | None = None,
    ) -> None:
        registry = registry or default_registry()
        self._entity = entity
        self._session = session
        self._compiler = SqlAlchemyExpressionCompiler(entity)
        self._key_column = getattr(entity, registry.get(entity).key.name)

    @property
    def storage_type(self) -> type[S]:
        return self._entity

    def _require_session(self) -> AsyncSession:
        if self._session is None:
            raise RuntimeError("No AsyncSession configured for SqlAlchemyStorageAdapter")
        return self._session

    def _filtered(self, where: Lambda[S] | None) -> Select[Any]:
        stmt = select(self._entity)
        if where is not None:
            stmt = stmt.where(self._compiler.compile(where))
        return stmt

    def _order_clauses(self, ordering: Ordering[S] | None) -> list[Any]:
        clauses: list[Any] = []
        if ordering is not None:
            for key, descending in ordering.keys():
                column = self._compiler.compile(key)
                clauses.append(column.desc() if descending else column.asc())
        clauses.append(self._key_column.asc())
        return clauses

    async def query(
        self,
        where: Lambda[S] | None = None,
        ordering: Ordering[S] | None = None,
        skip: int = 0,
        take: int | None = None,
    ) -> list[S]:
        stmt = self._filtered(where).order_by(*self._order_clauses(ordering))
        if skip:
            stmt = stmt.offset(skip)
        if take is not None:
            stmt = stmt.limit(take)
        result = await self._require_session().execute(stmt)
        return list(result.scalars().all())

    async def find_by_key(self, key: ID) -> S | None:
        return await self._require_session().get(self._entity, key)

    async def insert(self, record: S) -> None:
        session = self._require_session()
        session.add(record)
        await session.flush()

    async def update(self, record: S) -> None:
        session = self._require_session()
        session.add(record)
        await session.flush()

    async def delete(self, record: S) -> None:
        session = self._require_session()
        await session.delete(record)
        await session.flush()

    async def count(self, where: Lambda[S] | None = None, skip: int = 0, take: int | None = None) -> int:
        stmt = self._filtered(where)
        if skip or take is not None:
            stmt = stmt.order_by(self._key_column.asc())
            if skip:
                stmt = stmt.offset(skip)
            if take is not None:
                stmt = stmt.limit(take)
        count_stmt = select(func.count()).select_from(stmt.subquery())
        result = await self._require_session().execute(count_stmt)
        return result.scalar_one()
