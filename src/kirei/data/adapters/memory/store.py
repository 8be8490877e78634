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
"""List-backed repository store with no persistence between sessions."""

from __future__ import annotations

from typing import Generic, TypeVar

S = TypeVar("S")


class MemoryRepositoryStore(Generic[S]):
    """Holds records in a list; ``save()`` is a no-op."""

    def __init__(self, record_type: type[S]) -> None:
        self._record_type = record_type
        self._data: list[S] = []

    @property
    def record_type(self) -> type[S]:
        return self._record_type

    async def load(self) -> list[S]:
        return self._data

    async def save(self) -> bool:
        return True
