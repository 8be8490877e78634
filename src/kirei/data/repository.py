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
"""Generic repository over any :class:`StoragePort`.

The repository is the public CRUD/query facade. When the public model type
and the storage type differ it rewrites predicates and ordering keys into the
storage type's terms and copies records between the two shapes; when they are
the same type records pass straight through.

Usage::

    repository = Repository(Widget, StoreStorageAdapter(MemoryRepositoryStore(Widget)))

    widget = await repository.create()
    widget.name = "Sprocket"
    await repository.save(widget)

    cheap = await repository.find_all(where(Widget, lambda w: w.price < 10), take=5)
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from typing import Any, Generic, TypeVar

import structlog

from kirei.data.converter import ExpressionConverter
from kirei.data.events import RepositoryEvents
from kirei.data.expression import Lambda
from kirei.data.mapper import Mapper
from kirei.data.ordering import Ordering, check_window
from kirei.data.ports.outbound import StoragePort
from kirei.data.schema import EntitySchema, SchemaRegistry, default_registry
from kirei.kernel.exceptions import KeyResolutionError

T = TypeVar("T")
ID = TypeVar("ID")

logger = structlog.get_logger("kirei.data.repository")


class Repository(Generic[T, ID]):
    """CRUD repository parameterised by a storage port.

    Type Parameters:
        T: The public model type.
        ID: The primary key type.

    Args:
        model_type: The public model type.
        storage: Port onto the backing store; its ``storage_type`` may differ
            from *model_type* as long as members match by name.
        events: Lifecycle observers, invoked in order.
        mapper: Structural copier used between model and storage shapes.
        converter: Expression rewriter used between model and storage shapes.
        registry: Schema registry; defaults to the process-wide one.

    Raises:
        KeyResolutionError: Either type has no resolvable key member.
    """

    def __init__(
        self,
        model_type: type[T],
        storage: StoragePort[Any, ID],
        events: Iterable[RepositoryEvents[T]] = (),
        mapper: Mapper | None = None,
        converter: ExpressionConverter | None = None,
        registry: SchemaRegistry | None = None,
    ) -> None:
        registry = registry or default_registry()
        self._model_type = model_type
        self._storage = storage
        self._events = list(events)
        self._mapper = mapper or Mapper(registry)
        self._converter = converter or ExpressionConverter(registry)
        self._schema: EntitySchema = registry.get(model_type)
        self._storage_schema: EntitySchema = registry.get(storage.storage_type)

        # Keys resolve eagerly; the model is keyed by the storage key's name.
        self._key_name = self._storage_schema.key.name
        if self._schema.field(self._key_name) is None:
            raise KeyResolutionError(
                f"{self._schema.name} has no member '{self._key_name}' matching the key of {self._storage_schema.name}",
                code="SCHEMA_NO_KEY",
            )
        self._passthrough = storage.storage_type is model_type

    @property
    def model_type(self) -> type[T]:
        return self._model_type

    @property
    def key_name(self) -> str:
        """Name of the key member, shared by the model and storage types."""
        return self._key_name

    @property
    def storage(self) -> StoragePort[Any, ID]:
        return self._storage

    def add_events(self, events: RepositoryEvents[T]) -> None:
        self._events.append(events)

    # ------------------------------------------------------------------
    # Model <-> storage translation
    # ------------------------------------------------------------------

    def get_key(self, model: T) -> ID:
        """Read the key of *model* through the storage type's key member."""
        return getattr(model, self._key_name)

    def _to_model(self, record: Any) -> T:
        if self._passthrough:
            return record
        return self._mapper.map(record, self._model_type)

    def _to_storage_where(self, where: Lambda[T] | None) -> Lambda[Any] | None:
        if where is None or self._passthrough:
            return where
        return self._converter.convert_to(where, self._model_type, self._storage.storage_type)

    def _to_storage_ordering(self, ordering: Ordering[T] | None) -> Ordering[Any] | None:
        if ordering is None or self._passthrough:
            return ordering
        return ordering.map_keys(
            lambda key: self._converter.convert_to(key, self._model_type, self._storage.storage_type)
        )

    def _raise(self, hook: str, model: T) -> None:
        for handler in self._events:
            getattr(handler, hook)(model)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def create(self, id: ID | None = None) -> T:
        """Create a new, unsaved model.

        The key is set to *id*, or generated for ``UUID`` and ``str`` keys.
        Text members are ``""`` rather than ``None``. Storage is not touched.
        """
        model = self._schema.instantiate()
        if id is None:
            id = self._generate_key()
        if id is not None:
            setattr(model, self._key_name, id)
        self._schema.normalize_text(model)

        self._raise("created", model)
        return model

    def _generate_key(self) -> Any:
        key_type = self._schema.field(self._key_name).type  # type: ignore[union-attr]
        if key_type is uuid.UUID:
            return uuid.uuid4()
        if key_type is str:
            return uuid.uuid4().hex
        return None

    async def find(self, id: ID) -> T | None:
        """Find a model by key; ``None`` when absent."""
        record = await self._storage.find_by_key(id)
        if record is None:
            logger.debug("repository_find_missing", model=self._schema.name, id=str(id))
            return None

        model = self._to_model(record)
        self._raise("found", model)
        return model

    async def find_one(
        self, where: Lambda[T] | None = None, order_by: Ordering[T] | Lambda[T] | None = None
    ) -> T | None:
        """First model matching *where* (ordered by *order_by*), or ``None``."""
        results = await self.find_all(where, order_by, take=1)
        return results[0] if results else None

    async def find_all(
        self,
        where: Lambda[T] | None = None,
        order_by: Ordering[T] | Lambda[T] | None = None,
        skip: int = 0,
        take: int | None = None,
    ) -> list[T]:
        """Find models: filter, then order, then skip, then take.

        *order_by* is either a full :class:`Ordering` or a bare key selector,
        which sorts ascending.

        Raises:
            RewriteError: *where* or *order_by* references a member the
                storage type cannot provide.
        """
        check_window(skip, take)
        ordering = Ordering.asc(order_by) if isinstance(order_by, Lambda) else order_by
        records = await self._storage.query(
            self._to_storage_where(where),
            self._to_storage_ordering(ordering),
            skip,
            take,
        )

        models = []
        for record in records:
            model = self._to_model(record)
            self._raise("found", model)
            models.append(model)
        return models

    async def save(self, model: T) -> bool:
        """Insert *model* if its key is unknown to storage, otherwise update it."""
        self._raise("saving", model)

        id = self.get_key(model)
        record = await self._storage.find_by_key(id) if id is not None else None
        if record is None:
            if self._passthrough:
                await self._storage.insert(model)
            else:
                record = self._mapper.map(model, self._storage.storage_type)
                await self._storage.insert(record)
                if id is None:
                    # Pick up a key assigned by the store.
                    setattr(model, self._key_name, getattr(record, self._key_name))
            logger.debug("repository_inserted", model=self._schema.name, id=str(self.get_key(model)))
        else:
            if record is not model:
                self._mapper.copy_properties(model, record)
            await self._storage.update(record)
            logger.debug("repository_updated", model=self._schema.name, id=str(id))

        self._raise("saved", model)
        return True

    async def remove(self, id: ID) -> bool:
        """Delete the model with key *id*; ``False`` when there was nothing to delete."""
        record = await self._storage.find_by_key(id)
        if record is None:
            return False

        await self._storage.delete(record)
        logger.debug("repository_removed", model=self._schema.name, id=str(id))

        if self._events:
            self._raise("removed", self._to_model(record))
        return True

    async def count(self, where: Lambda[T] | None = None, skip: int = 0, take: int | None = None) -> int:
        """Count models matching *where*, after skip and take."""
        check_window(skip, take)
        return await self._storage.count(self._to_storage_where(where), skip, take)


class UUIDRepository(Repository[T, uuid.UUID]):
    """Repository whose models are keyed by ``UUID``."""
