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
"""StoragePort over a list-backed :class:`RepositoryStore`.

Expressions are compiled and evaluated in memory. Records handed out are
detached copies, so changes only reach the store through ``insert`` and
``update``.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from kirei.data.expression import Lambda
from kirei.data.mapper import Mapper
from kirei.data.ordering import Ordering, paginate
from kirei.data.ports.outbound import RepositoryStore
from kirei.data.schema import SchemaRegistry, default_registry

S = TypeVar("S")
ID = TypeVar("ID")


class StoreStorageAdapter(Generic[S, ID]):
    """In-memory query engine over any repository store.

    Natural order is insertion order; ordering is stable on top of it.
    """

    def __init__(
        self,
        store: RepositoryStore[S],
        mapper: Mapper | None = None,
        registry: SchemaRegistry | None = None,
    ) -> None:
        registry = registry or default_registry()
        self._store = store
        self._mapper = mapper or Mapper(registry)
        self._key_name = registry.get(store.record_type).key.name

    @property
    def storage_type(self) -> type[S]:
        return self._store.record_type

    @property
    def store(self) -> RepositoryStore[S]:
        return self._store

    def _detach(self, record: S) -> S:
        return self._mapper.map(record, self.storage_type)

    async def _filtered(self, where: Lambda[S] | None) -> list[S]:
        data = await self._store.load()
        if where is None:
            return list(data)
        predicate = where.compile()
        return [record for record in data if predicate(record)]

    def _index_of(self, data: list[S], key: Any) -> int | None:
        for index, record in enumerate(data):
            if getattr(record, self._key_name) == key:
                return index
        return None

    async def query(
        self,
        where: Lambda[S] | None = None,
        ordering: Ordering[S] | None = None,
        skip: int = 0,
        take: int | None = None,
    ) -> list[S]:
        records = await self._filtered(where)
        if ordering is not None:
            records = ordering.sort(records)
        return [self._detach(r) for r in paginate(records, skip, take)]

    async def find_by_key(self, key: ID) -> S | None:
        data = await self._store.load()
        index = self._index_of(data, key)
        return self._detach(data[index]) if index is not None else None

    async def insert(self, record: S) -> None:
        data = await self._store.load()
        data.append(self._detach(record))
        await self._store.save()

    async def update(self, record: S) -> None:
        data = await self._store.load()
        index = self._index_of(data, getattr(record, self._key_name))
        if index is None:
            data.append(self._detach(record))
        else:
            data[index] = self._detach(record)
        await self._store.save()

    async def delete(self, record: S) -> None:
        data = await self._store.load()
        index = self._index_of(data, getattr(record, self._key_name))
        if index is not None:
            del data[index]
            await self._store.save()

    async def count(self, where: Lambda[S] | None = None, skip: int = 0, take: int | None = None) -> int:
        return len(paginate(await self._filtered(where), skip, take))
