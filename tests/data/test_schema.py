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
"""Tests for entity schemas and primary key resolution."""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

import pytest
from sqlalchemy import String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from kirei.data.schema import FieldInfo, SchemaRegistry, key_field
from kirei.kernel.exceptions import ConfigurationError, KeyResolutionError


@dataclass
class WithId:
    id: UUID | None = None
    name: str = ""


@dataclass
class WithTypeNamedKey:
    OrderLineId: int = 0
    quantity: int = 0


@dataclass
class OrderLine:
    order_line_id: int = 0
    quantity: int = 0


@dataclass
class WithMarker:
    code: str = key_field(default="")
    id: int = 0


@dataclass
class Keyless:
    name: str = ""


@dataclass
class Required:
    id: int
    name: str
    note: Optional[str] = None


class PlainAnnotated:
    id: int
    label: str

    def __init__(self):
        self.id = 0
        self.label = ""


class Base(DeclarativeBase):
    pass


class PartRow(Base):
    __tablename__ = "parts"

    serial: Mapped[str] = mapped_column(String(20), primary_key=True)
    weight: Mapped[float] = mapped_column(default=0.0)


@pytest.fixture
def registry():
    return SchemaRegistry()


class TestKeyResolution:
    def test_id_member(self, registry):
        assert registry.get(WithId).key.name == "id"

    def test_type_named_key(self, registry):
        assert registry.get(WithTypeNamedKey).key.name == "OrderLineId"

    def test_snake_case_type_named_key(self, registry):
        assert registry.get(OrderLine).key.name == "order_line_id"

    def test_explicit_marker_wins_over_id(self, registry):
        assert registry.get(WithMarker).key.name == "code"

    def test_sqlalchemy_primary_key(self, registry):
        schema = registry.get(PartRow)
        assert schema.key.name == "serial"
        assert schema.field("weight").type is float

    def test_registered_key(self, registry):
        schema = registry.register(Keyless, key="name")
        assert schema.key.name == "name"

    def test_registering_unknown_key_fails(self, registry):
        with pytest.raises(ConfigurationError):
            registry.register(Keyless, key="missing")

    def test_no_key_raises(self, registry):
        with pytest.raises(KeyResolutionError) as exc_info:
            registry.get(Keyless).key
        assert exc_info.value.code == "SCHEMA_NO_KEY"
        assert isinstance(exc_info.value, ConfigurationError)


class TestSchema:
    def test_fields_are_ordered_and_unwrapped(self, registry):
        schema = registry.get(Required)
        assert [f.name for f in schema.fields] == ["id", "name", "note"]
        note = schema.field("note")
        assert note.type is str
        assert note.nullable is True

    def test_text_fields(self, registry):
        assert [f.name for f in registry.get(Required).text_fields] == ["name", "note"]

    def test_instantiate_fills_required_members(self, registry):
        instance = registry.get(Required).instantiate()
        assert instance.id is None
        assert instance.name == ""
        assert instance.note is None

    def test_normalize_text(self, registry):
        instance = Required(id=1, name=None)
        registry.get(Required).normalize_text(instance)
        assert instance.name == ""
        assert instance.note == ""

    def test_plain_annotated_class(self, registry):
        schema = registry.get(PlainAnnotated)
        assert schema.key.name == "id"
        assert isinstance(schema.instantiate(), PlainAnnotated)

    def test_explicit_fields(self, registry):
        schema = registry.register(Keyless, [("name", str), FieldInfo("extra", int)])
        assert schema.field("extra").type is int

    def test_non_entity_types_are_rejected(self, registry):
        assert registry.is_entity(int) is False
        with pytest.raises(ConfigurationError) as exc_info:
            registry.get(str)
        assert exc_info.value.code == "SCHEMA_NOT_ENTITY"

    def test_compatibility(self, registry):
        assert registry.is_compatible(int, int)
        assert registry.is_compatible(int, float)
        assert not registry.is_compatible(float, int)
        assert registry.is_compatible(WithId, Required)
