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
"""Outbound ports: storage and repository interfaces."""

from __future__ import annotations

from typing import Protocol, TypeVar, runtime_checkable

from kirei.data.expression import Lambda
from kirei.data.ordering import Ordering

T = TypeVar("T")
S = TypeVar("S")
ID = TypeVar("ID")


@runtime_checkable
class StoragePort(Protocol[S, ID]):
    """What a backing store offers the repository.

    Every expression handed to a port is already typed against
    :attr:`storage_type`. ``query`` applies filter, then ordering, then
    skip, then take.
    """

    @property
    def storage_type(self) -> type[S]: ...

    async def query(
        self,
        where: Lambda[S] | None = None,
        ordering: Ordering[S] | None = None,
        skip: int = 0,
        take: int | None = None,
    ) -> list[S]: ...

    async def find_by_key(self, key: ID) -> S | None: ...

    async def insert(self, record: S) -> None: ...

    async def update(self, record: S) -> None: ...

    async def delete(self, record: S) -> None: ...

    async def count(self, where: Lambda[S] | None = None, skip: int = 0, take: int | None = None) -> int: ...


@runtime_checkable
class RepositoryPort(Protocol[T, ID]):
    """CRUD and query contract exposed to callers and to the web layer."""

    @property
    def model_type(self) -> type[T]: ...

    @property
    def key_name(self) -> str: ...

    async def create(self, id: ID | None = None) -> T: ...

    async def find(self, id: ID) -> T | None: ...

    async def find_one(
        self, where: Lambda[T] | None = None, order_by: Ordering[T] | Lambda[T] | None = None
    ) -> T | None: ...

    async def find_all(
        self,
        where: Lambda[T] | None = None,
        order_by: Ordering[T] | Lambda[T] | None = None,
        skip: int = 0,
        take: int | None = None,
    ) -> list[T]: ...

    async def save(self, model: T) -> bool: ...

    async def remove(self, id: ID) -> bool: ...

    async def count(self, where: Lambda[T] | None = None, skip: int = 0, take: int | None = None) -> int: ...


@runtime_checkable
class RepositoryStore(Protocol[S]):
    """A list of records plus a way to persist it (memory and JSON-file stores)."""

    @property
    def record_type(self) -> type[S]: ...

    async def load(self) -> list[S]: ...

    async def save(self) -> bool: ...


__all__ = ["RepositoryPort", "RepositoryStore", "StoragePort"]
