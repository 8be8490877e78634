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
"""Structural copy between differently shaped model types.

Copies every member whose name and declared type match on both sides;
anything else is left untouched on the destination. Copying never fails on
shape differences.

Example::

    mapper = Mapper()
    row = mapper.map(widget, WidgetRow)
    mapper.copy_properties(widget, existing_row)

    # Observe conversions
    mapper.add_events(Widget, WidgetRow, AuditEvents())
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Generic, TypeVar

from kirei.data.schema import SchemaRegistry, default_registry

S = TypeVar("S")
D = TypeVar("D")


class ModelConverterEvents(Generic[S, D]):
    """Hooks raised around each copy from ``S`` to ``D``. Override as needed."""

    def converting(self, source: S, dest: D) -> None:
        pass

    def converted(self, source: S, dest: D) -> None:
        pass


class Mapper:
    """Copies same-named, same-typed members between entity types."""

    def __init__(self, registry: SchemaRegistry | None = None) -> None:
        self._registry = registry or default_registry()
        self._events: dict[tuple[type, type], list[ModelConverterEvents[Any, Any]]] = {}

    def add_events(self, source_type: type[S], dest_type: type[D], events: ModelConverterEvents[S, D]) -> None:
        """Register conversion hooks for ``source_type -> dest_type`` copies."""
        self._events.setdefault((source_type, dest_type), []).append(events)

    def copy_properties(self, source: S | None, dest: D) -> D:
        """Copy matching members from *source* onto *dest* and return *dest*."""
        events = self._events.get((type(source), type(dest)), [])
        for handler in events:
            handler.converting(source, dest)

        if source is not None:
            source_types = self._member_types(type(source), source)
            for info in self._registry.get(type(dest)).fields:
                if source_types.get(info.name, _MISSING) == info.type:
                    setattr(dest, info.name, getattr(source, info.name))

        for handler in events:
            handler.converted(source, dest)
        return dest

    def map(self, source: S, dest_type: type[D]) -> D:
        """Copy *source* into a fresh instance of *dest_type*."""
        dest = self._registry.get(dest_type).instantiate()
        return self.copy_properties(source, dest)

    def map_list(self, sources: Iterable[S], dest_type: type[D]) -> list[D]:
        return [self.map(s, dest_type) for s in sources]

    def _member_types(self, source_type: type, source: Any) -> dict[str, Any]:
        if self._registry.is_entity(source_type):
            return {info.name: info.type for info in self._registry.get(source_type).fields}
        return {name: type(value) for name, value in vars(source).items()}


_MISSING = object()
