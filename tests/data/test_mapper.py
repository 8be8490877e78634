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
"""Tests for Mapper -- structural copies between model types."""

from dataclasses import dataclass
from uuid import UUID, uuid4

from kirei.data.mapper import Mapper, ModelConverterEvents


@dataclass
class Widget:
    id: UUID | None = None
    name: str = ""
    price: float = 0.0


@dataclass
class WidgetRecord:
    id: UUID | None = None
    name: str = ""
    price: str = ""
    audit_note: str = "untouched"


class TestMapper:
    def test_map_copies_matching_members(self):
        widget = Widget(id=uuid4(), name="Sprocket", price=9.5)
        record = Mapper().map(widget, WidgetRecord)

        assert isinstance(record, WidgetRecord)
        assert record.id == widget.id
        assert record.name == "Sprocket"

    def test_type_mismatch_is_skipped(self):
        record = Mapper().map(Widget(price=9.5), WidgetRecord)
        assert record.price == ""

    def test_copy_properties_leaves_unknown_members(self):
        record = WidgetRecord(audit_note="kept")
        Mapper().copy_properties(Widget(name="New"), record)
        assert record.name == "New"
        assert record.audit_note == "kept"

    def test_none_source_is_tolerated(self):
        record = WidgetRecord(name="same")
        assert Mapper().copy_properties(None, record) is record
        assert record.name == "same"

    def test_map_returns_a_copy(self):
        widget = Widget(name="A")
        copy = Mapper().map(widget, Widget)
        assert copy == widget
        assert copy is not widget

    def test_map_list(self):
        records = Mapper().map_list([Widget(name="A"), Widget(name="B")], WidgetRecord)
        assert [r.name for r in records] == ["A", "B"]

    def test_plain_object_source(self):
        class Payload:
            def __init__(self):
                self.name = "from payload"
                self.price = 3.0

        widget = Mapper().map(Payload(), Widget)
        assert widget.name == "from payload"
        assert widget.price == 3.0

    def test_events_raised_around_copy(self):
        seen = []

        class Recorder(ModelConverterEvents[Widget, WidgetRecord]):
            def converting(self, source, dest):
                seen.append(("converting", dest.name))

            def converted(self, source, dest):
                seen.append(("converted", dest.name))

        mapper = Mapper()
        mapper.add_events(Widget, WidgetRecord, Recorder())
        mapper.map(Widget(name="A"), WidgetRecord)

        assert seen == [("converting", ""), ("converted", "A")]
