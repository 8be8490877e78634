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
"""Tests for JsonFileRepositoryStore."""

import json
from dataclasses import dataclass
from uuid import UUID, uuid4

import pytest

from kirei.core.config import Config
from kirei.data.adapters.jsonfile import JsonFileRepositoryStore, JsonFileStoreProperties
from kirei.data.adapters.memory import StoreStorageAdapter
from kirei.data.expression import where
from kirei.data.repository import Repository


@dataclass
class Widget:
    id: UUID | None = None
    name: str = ""
    price: float = 0.0


class TestJsonFileStore:
    def test_path_follows_record_type_name(self, tmp_path):
        store = JsonFileRepositoryStore(Widget, base_dir=tmp_path)
        assert store.path == tmp_path / "Resources" / "Widget.json"

    def test_resources_path_from_properties(self, tmp_path):
        store = JsonFileRepositoryStore(Widget, JsonFileStoreProperties(resources_path="data"), base_dir=tmp_path)
        assert store.path == tmp_path / "data" / "Widget.json"

    def test_properties_bind_from_config(self):
        config = Config({"kirei": {"data": {"json": {"resources_path": "fixtures"}}}})
        assert config.bind(JsonFileStoreProperties).resources_path == "fixtures"

    @pytest.mark.asyncio
    async def test_missing_file_is_empty(self, tmp_path):
        store = JsonFileRepositoryStore(Widget, base_dir=tmp_path)
        assert await store.load() == []

    @pytest.mark.asyncio
    async def test_load_is_lazy_and_cached(self, tmp_path):
        key = uuid4()
        path = tmp_path / "Resources" / "Widget.json"
        path.parent.mkdir()
        path.write_text(json.dumps([{"id": str(key), "name": "A", "price": 5.0}]))

        store = JsonFileRepositoryStore(Widget, base_dir=tmp_path)
        first = await store.load()
        path.write_text("[]")

        assert first == [Widget(id=key, name="A", price=5.0)]
        assert await store.load() is first

    @pytest.mark.asyncio
    async def test_save_writes_whole_list(self, tmp_path):
        store = JsonFileRepositoryStore(Widget, base_dir=tmp_path)
        records = await store.load()
        records.append(Widget(id=uuid4(), name="A", price=5.0))

        assert await store.save() is True
        written = json.loads(store.path.read_text())
        assert [r["name"] for r in written] == ["A"]


class TestJsonFileRepository:
    @pytest.mark.asyncio
    async def test_repository_round_trip_through_file(self, tmp_path):
        repo = Repository(Widget, StoreStorageAdapter(JsonFileRepositoryStore(Widget, base_dir=tmp_path)))
        for name, price in [("A", 5.0), ("B", 20.0)]:
            widget = await repo.create()
            widget.name = name
            widget.price = price
            await repo.save(widget)

        reopened = Repository(Widget, StoreStorageAdapter(JsonFileRepositoryStore(Widget, base_dir=tmp_path)))
        result = await reopened.find_all(where(Widget, lambda w: w.price > 10))

        assert [w.name for w in result] == ["B"]
        assert isinstance(result[0].id, UUID)
