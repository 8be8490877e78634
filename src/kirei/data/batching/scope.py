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
"""Batch collection windows backed by contextvars.

A :class:`BatchScope` owns the pending batches of one unit of work (an HTTP
request, a GraphQL execution, a job). Loaders queue requests under a loader
key; every key moves Idle -> Collecting -> Executing -> Idle. A batch opens
on the first request for its key and is dispatched at the end of the current
event-loop tick, or when :meth:`BatchScope.dispatch` is awaited.

Usage::

    async with BatchScope():
        first = loader.queue_find_all(where(Widget, lambda w: w.price > 10))
        second = loader.queue_find_all(where(Widget, lambda w: w.price > 20))
        cheap, dear = await asyncio.gather(first, second)
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

import structlog

from kirei.core.config import config_properties
from kirei.kernel.exceptions import BatchScopeError

logger = structlog.get_logger("kirei.data.batching")

_batch_scope_var: ContextVar[BatchScope | None] = ContextVar("kirei_batch_scope", default=None)

BatchEntry = tuple[Any, "asyncio.Future[Any]"]
BatchExecutor = Callable[[list[BatchEntry]], Awaitable[None]]


@config_properties(prefix="kirei.data.batching")
@dataclass
class BatchingProperties:
    """Batch dispatch settings.

    ``auto_dispatch``: dispatch each batch at the end of the event-loop tick
    in which it opened. When off, batches wait for ``await scope.dispatch()``.
    """

    auto_dispatch: bool = True


@dataclass
class _Batch:
    key: str
    execute: BatchExecutor
    entries: list[BatchEntry] = field(default_factory=list)


class BatchScope:
    """Collects queued requests per loader key and runs each batch once.

    The executor registered by the first request for a key handles the
    whole batch; it must resolve every future it is given. Batches for
    unrelated keys run as independent tasks.
    """

    def __init__(
        self,
        auto_dispatch: bool | None = None,
        properties: BatchingProperties | None = None,
    ) -> None:
        if auto_dispatch is None:
            auto_dispatch = (properties or BatchingProperties()).auto_dispatch
        self._auto_dispatch = auto_dispatch
        self._pending: dict[str, _Batch] = {}
        self._handles: dict[str, asyncio.Handle] = {}
        self._running: dict[asyncio.Task[None], _Batch] = {}
        self._tokens: list[Any] = []
        self._log_tokens: list[Any] = []
        self._scope_id = uuid.uuid4().hex[:12]

    @classmethod
    def current(cls) -> BatchScope | None:
        """The scope active in the current async context, or None."""
        return _batch_scope_var.get()

    @classmethod
    def require(cls) -> BatchScope:
        scope = _batch_scope_var.get()
        if scope is None:
            raise BatchScopeError(
                "No active BatchScope; wrap the unit of work in 'async with BatchScope()'",
                code="BATCH_NO_SCOPE",
            )
        return scope

    @property
    def scope_id(self) -> str:
        """Short id bound into structlog context as ``batch_scope`` while active."""
        return self._scope_id

    @property
    def auto_dispatch(self) -> bool:
        return self._auto_dispatch

    def pending_keys(self) -> list[str]:
        """Loader keys currently collecting."""
        return list(self._pending)

    async def __aenter__(self) -> BatchScope:
        self._tokens.append(_batch_scope_var.set(self))
        self._log_tokens.append(structlog.contextvars.bind_contextvars(batch_scope=self._scope_id))
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        try:
            if exc_type is not None:
                self.cancel()
            else:
                await self.dispatch()
                await self.join()
        finally:
            structlog.contextvars.reset_contextvars(**self._log_tokens.pop())
            _batch_scope_var.reset(self._tokens.pop())

    # ------------------------------------------------------------------
    # Queueing
    # ------------------------------------------------------------------

    def enqueue(self, key: str, execute: BatchExecutor, request: Any) -> asyncio.Future[Any]:
        """Append *request* to the batch collecting under *key*.

        Returns a future the batch's executor resolves with the request's
        result.
        """
        loop = asyncio.get_running_loop()
        batch = self._pending.get(key)
        if batch is None:
            batch = _Batch(key, execute)
            self._pending[key] = batch
            if self._auto_dispatch:
                self._handles[key] = loop.call_soon(self._start, key)

        future: asyncio.Future[Any] = loop.create_future()
        batch.entries.append((request, future))
        return future

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _start(self, key: str) -> asyncio.Task[None] | None:
        handle = self._handles.pop(key, None)
        if handle is not None:
            handle.cancel()
        batch = self._pending.pop(key, None)
        if batch is None:
            return None

        logger.debug("batch_dispatched", loader_key=key, size=len(batch.entries))
        task = asyncio.get_running_loop().create_task(self._run(batch))
        self._running[task] = batch
        task.add_done_callback(self._finished)
        return task

    def _finished(self, task: asyncio.Task[None]) -> None:
        self._running.pop(task, None)

    async def _run(self, batch: _Batch) -> None:
        try:
            await batch.execute(batch.entries)
        except asyncio.CancelledError:
            _cancel_entries(batch.entries)
            raise
        except Exception as exc:
            logger.error("batch_failed", loader_key=batch.key, error=str(exc), error_type=type(exc).__name__)
            for _, future in batch.entries:
                if not future.done():
                    future.set_exception(exc)

    async def dispatch(self) -> None:
        """Run every collecting batch now and wait for them to finish."""
        tasks = [task for key in list(self._pending) if (task := self._start(key)) is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def join(self) -> None:
        """Wait for batches that are already executing."""
        while self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)

    def cancel(self) -> None:
        """Cancel scheduled and running batches and every waiting future."""
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()

        for batch in self._pending.values():
            _cancel_entries(batch.entries)
        self._pending.clear()

        for task, batch in list(self._running.items()):
            task.cancel()
            _cancel_entries(batch.entries)
        logger.debug("batch_scope_cancelled")


def _cancel_entries(entries: list[BatchEntry]) -> None:
    for _, future in entries:
        if not future.done():
            future.cancel()
