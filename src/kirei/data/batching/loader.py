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
"""Batched repository lookups for resolver-style callers.

Many independent callers each ask for a small slice of the same repository
within one event-loop tick. The loader collects those requests in the active
:class:`BatchScope`, answers them with one storage query (the OR of every
request's predicate), and splits the shared result back out per request in
memory. Each caller sees exactly what ``repository.find_all`` would have
returned for its own arguments.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import structlog

from kirei.data.batching.scope import BatchEntry, BatchScope
from kirei.data.combinator import combine_or
from kirei.data.expression import Lambda
from kirei.data.ordering import Ordering, check_window, paginate
from kirei.data.repository import Repository
from kirei.kernel.exceptions import BatchPartitionError

T = TypeVar("T")

logger = structlog.get_logger("kirei.data.batching")


@dataclass(frozen=True, eq=False)
class LoadRequest(Generic[T]):
    """One queued lookup; frozen once queued."""

    where: Lambda[T] | None
    ordering: Ordering[T] | None = None
    skip: int = 0
    take: int | None = None
    first_only: bool = False

    def resolve(self, models: list[T]) -> Any:
        if self.first_only:
            return models[0] if models else None
        return models

    def partition(self, models: list[T]) -> list[T]:
        """Apply this request's filter, order, skip and take to a shared result."""
        selected = models
        if self.where is not None:
            predicate = self.where.compile()
            selected = [m for m in selected if predicate(m)]
        if self.ordering is not None:
            selected = self.ordering.sort(selected)
        return paginate(selected, self.skip, self.take)


class RepositoryDataLoader(Generic[T]):
    """Queue ``find``/``find_all`` calls against one repository for batching.

    Args:
        repository: The repository every batch reads from.
        scope: Collection window to queue into; defaults to
            :meth:`BatchScope.current` at queue time.

    Usage::

        loader = RepositoryDataLoader(widgets)
        async with BatchScope():
            first = loader.queue_find_all(where(Widget, lambda w: w.price > 10), Ordering.asc(by_name), take=1)
            second = loader.queue_find_all(where(Widget, lambda w: w.price > 20), Ordering.asc(by_name))
            print(await first, await second)
    """

    def __init__(self, repository: Repository[T, Any], scope: BatchScope | None = None) -> None:
        self._repository = repository
        self._scope = scope

    @property
    def repository(self) -> Repository[T, Any]:
        return self._repository

    def default_loader_key(self, method: str) -> str:
        model = self._repository.model_type
        return f"_{model.__module__}.{model.__qualname__}_{method}_DataLoader"

    def queue_find_all(
        self,
        where: Lambda[T] | None,
        ordering: Ordering[T] | None = None,
        skip: int = 0,
        take: int | None = None,
        loader_key: str | None = None,
    ) -> asyncio.Future[list[T]]:
        """Queue a ``find_all``; the future resolves once its batch has run.

        Raises:
            BatchScopeError: No scope was given and none is active.
        """
        check_window(skip, take)
        request = LoadRequest(where, ordering, skip, take)
        return self._enqueue(loader_key or self.default_loader_key("FindAll"), request)

    def queue_find(
        self,
        where: Lambda[T] | None,
        ordering: Ordering[T] | None = None,
        loader_key: str | None = None,
    ) -> asyncio.Future[T | None]:
        """Queue a single-model lookup: first match or ``None``."""
        request = LoadRequest(where, ordering, take=1, first_only=True)
        return self._enqueue(loader_key or self.default_loader_key("Find"), request)

    def _enqueue(self, key: str, request: LoadRequest[T]) -> asyncio.Future[Any]:
        scope = self._scope or BatchScope.require()
        return scope.enqueue(key, self._execute, request)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def _execute(self, entries: list[BatchEntry]) -> None:
        requests: tuple[LoadRequest[T], ...] = tuple(request for request, _ in entries)

        if len(requests) == 1:
            await self._execute_single(entries[0])
            return

        # One None predicate means the shared fetch must read everything.
        if any(request.where is None for request in requests):
            combined = None
        else:
            combined = combine_or(*(request.where for request in requests))

        try:
            models = await self._repository.find_all(combined)
        except Exception as exc:
            logger.warning("batch_fetch_failed", size=len(requests), error=str(exc), error_type=type(exc).__name__)
            for _, future in entries:
                if not future.done():
                    future.set_exception(exc)
            return

        logger.debug("batch_fetched", size=len(requests), rows=len(models))
        for request, future in entries:
            if future.done():
                continue
            try:
                result = request.resolve(request.partition(models))
            except Exception as exc:
                logger.warning("batch_request_failed", error=str(exc), error_type=type(exc).__name__)
                error = BatchPartitionError(
                    f"Failed to evaluate batched request against the shared result: {exc}",
                    code="BATCH_PARTITION",
                    context={"request": repr(request.where)},
                )
                error.__cause__ = exc
                future.set_exception(error)
            else:
                future.set_result(result)

    async def _execute_single(self, entry: BatchEntry) -> None:
        request, future = entry
        try:
            models = await self._repository.find_all(request.where, request.ordering, request.skip, request.take)
        except Exception as exc:
            if not future.done():
                future.set_exception(exc)
            return
        if not future.done():
            future.set_result(request.resolve(models))
