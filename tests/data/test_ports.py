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
"""Tests for the outbound port protocols."""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from kirei.data.adapters.jsonfile import JsonFileRepositoryStore
from kirei.data.adapters.memory import MemoryRepositoryStore, StoreStorageAdapter
from kirei.data.adapters.sqlalchemy import SqlAlchemyStorageAdapter
from kirei.data.ports.outbound import RepositoryPort, RepositoryStore, StoragePort
from kirei.data.repository import Repository


@dataclass
class Widget:
    id: UUID | None = None
    name: str = ""


class Base(DeclarativeBase):
    pass


class WidgetRow(Base):
    __tablename__ = "port_widgets"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(50), default="")


class TestPortConformance:
    def test_stores_are_repository_stores(self, tmp_path):
        assert isinstance(MemoryRepositoryStore(Widget), RepositoryStore)
        assert isinstance(JsonFileRepositoryStore(Widget, base_dir=tmp_path), RepositoryStore)

    def test_adapters_are_storage_ports(self):
        assert isinstance(StoreStorageAdapter(MemoryRepositoryStore(Widget)), StoragePort)
        assert isinstance(SqlAlchemyStorageAdapter(WidgetRow), StoragePort)

    def test_repository_is_a_repository_port(self):
        repo = Repository(Widget, StoreStorageAdapter(MemoryRepositoryStore(Widget)))
        assert isinstance(repo, RepositoryPort)

    def test_incomplete_store_is_rejected(self):
        class ReadOnly:
            record_type = Widget

            async def load(self):
                return []

        assert not isinstance(ReadOnly(), RepositoryStore)
