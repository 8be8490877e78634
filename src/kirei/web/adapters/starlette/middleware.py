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
"""Batch scope middleware: one BatchScope per HTTP request, pure ASGI."""

from __future__ import annotations

from starlette.types import ASGIApp, Receive, Scope, Send

from kirei.data.batching.scope import BatchingProperties, BatchScope


class BatchScopeMiddleware:
    """Runs each HTTP request inside its own :class:`BatchScope`.

    Loaders used while handling the request batch together; batches still
    collecting when the response completes are drained, and an error
    escaping the app cancels them.
    """

    def __init__(self, app: ASGIApp, properties: BatchingProperties | None = None) -> None:
        self.app = app
        self._properties = properties or BatchingProperties()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async with BatchScope(properties=self._properties):
            await self.app(scope, receive, send)
