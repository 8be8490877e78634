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
"""Repository store persisted as one JSON file per record type.

Records of type ``Widget`` live in ``<base_dir>/<resources_path>/Widget.json``
as a JSON array. The file is read lazily on first access; a missing file is
an empty store. ``save()`` rewrites the whole file.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Generic, TypeVar

import structlog
from pydantic import TypeAdapter

from kirei.core.config import config_properties

S = TypeVar("S")

logger = structlog.get_logger("kirei.data.jsonfile")


@config_properties(prefix="kirei.data.json")
@dataclass
class JsonFileStoreProperties:
    """Configuration for JSON-file stores (kirei.data.json.*)."""

    resources_path: str = "Resources"


class JsonFileRepositoryStore(Generic[S]):
    """List-backed store that loads from and saves to a JSON file."""

    def __init__(
        self,
        record_type: type[S],
        properties: JsonFileStoreProperties | None = None,
        base_dir: str | Path | None = None,
    ) -> None:
        properties = properties or JsonFileStoreProperties()
        self._record_type = record_type
        self._path = Path(base_dir or Path.cwd()) / properties.resources_path / f"{record_type.__name__}.json"
        self._adapter: TypeAdapter[list[S]] = TypeAdapter(list[record_type])  # type: ignore[valid-type]
        self._data: list[S] = []
        self._loaded = False
        self._lock = asyncio.Lock()

    @property
    def record_type(self) -> type[S]:
        return self._record_type

    @property
    def path(self) -> Path:
        return self._path

    async def load(self) -> list[S]:
        if not self._loaded:
            async with self._lock:
                if not self._loaded:
                    self._data.extend(await asyncio.to_thread(self._read))
                    self._loaded = True
        return self._data

    def _read(self) -> list[S]:
        if not self._path.is_file():
            logger.debug("json_store_missing", path=str(self._path))
            return []
        return self._adapter.validate_json(self._path.read_bytes())

    async def save(self) -> bool:
        await self.load()
        payload = self._adapter.dump_json(self._data, indent=2)
        await asyncio.to_thread(self._write, payload)
        logger.debug("json_store_saved", path=str(self._path), records=len(self._data))
        return True

    def _write(self, payload: bytes) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_bytes(payload)
