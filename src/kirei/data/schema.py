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
"""Entity schema descriptors.

An :class:`EntitySchema` is the ordered list of members an entity type
exposes, as ``(name, type, is_key)`` triples. Schemas are built once per type
and cached in a :class:`SchemaRegistry`; expression building, expression
rewriting, key resolution and model conversion all consult the registry
instead of inspecting types on every call.

Schemas are derived automatically from dataclasses, SQLAlchemy mapped
classes and annotated plain classes, or registered explicitly::

    @dataclass
    class Widget:
        code: str = key_field(default="")
        name: str = ""
        price: float = 0.0

    schema_of(Widget).key.name  # "code"

Primary key convention, first match wins:

1. an explicit key marker (``key_field()``, a SQLAlchemy primary-key column,
   or ``register_schema(..., key="...")``);
2. a member named ``id`` or ``Id``;
3. a member named ``<type_name>_id`` or ``<TypeName>Id``.
"""

from __future__ import annotations

import dataclasses
import re
import types
import typing
from collections.abc import Iterable
from typing import Any, ClassVar, Union, get_args, get_origin, get_type_hints

from kirei.kernel.exceptions import ConfigurationError, KeyResolutionError

KEY_METADATA = "kirei_key"

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def key_field(**kwargs: Any) -> Any:
    """``dataclasses.field()`` that marks the member as the primary key."""
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[KEY_METADATA] = True
    return dataclasses.field(metadata=metadata, **kwargs)


def _unwrap(tp: Any) -> tuple[Any, bool]:
    """Strip ``Mapped[...]`` and ``Optional[...]``; return ``(type, nullable)``."""
    origin = get_origin(tp)
    if origin is not None and getattr(origin, "__name__", "") == "Mapped":
        return _unwrap(get_args(tp)[0])
    if origin in (Union, types.UnionType):
        args = [a for a in get_args(tp) if a is not type(None)]
        if len(args) == 1:
            inner, _ = _unwrap(args[0])
            return inner, True
        return tp, True
    return tp, False


@dataclasses.dataclass(frozen=True)
class FieldInfo:
    """One member of an entity type."""

    name: str
    type: Any
    is_key: bool = False
    nullable: bool = False

    @property
    def is_text(self) -> bool:
        return self.type is str


@dataclasses.dataclass(frozen=True)
class EntitySchema:
    """Ordered member descriptor for one entity type."""

    entity_type: type
    fields: tuple[FieldInfo, ...]

    def field(self, name: str) -> FieldInfo | None:
        for info in self.fields:
            if info.name == name:
                return info
        return None

    @property
    def name(self) -> str:
        return self.entity_type.__name__

    @property
    def key(self) -> FieldInfo:
        """Resolve the primary key member by convention.

        Raises:
            KeyResolutionError: No member matches the key convention.
        """
        for info in self.fields:
            if info.is_key:
                return info

        type_name = self.entity_type.__name__
        snake = _CAMEL_RE.sub("_", type_name).lower()
        for candidate in ("id", "Id", f"{snake}_id", f"{type_name}Id"):
            info = self.field(candidate)
            if info is not None:
                return info

        raise KeyResolutionError(
            f"{self.entity_type.__module__}.{self.entity_type.__qualname__} has no key member defined",
            code="SCHEMA_NO_KEY",
            context={"entity": type_name, "fields": [f.name for f in self.fields]},
        )

    @property
    def text_fields(self) -> tuple[FieldInfo, ...]:
        return tuple(info for info in self.fields if info.is_text)

    def get_key(self, instance: Any) -> Any:
        return getattr(instance, self.key.name)

    def set_key(self, instance: Any, value: Any) -> None:
        setattr(instance, self.key.name, value)

    def instantiate(self) -> Any:
        """Create a blank instance, filling required dataclass members.

        Required text members start as ``""``; other required members start
        as ``None``.
        """
        cls = self.entity_type
        if not dataclasses.is_dataclass(cls):
            return cls()

        kwargs: dict[str, Any] = {}
        for f in dataclasses.fields(cls):
            if not f.init:
                continue
            if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING:
                info = self.field(f.name)
                kwargs[f.name] = "" if info is not None and info.is_text else None
        return cls(**kwargs)

    def normalize_text(self, instance: Any) -> Any:
        """Replace ``None`` in every text member of *instance* with ``""``."""
        for info in self.text_fields:
            if getattr(instance, info.name, None) is None:
                setattr(instance, info.name, "")
        return instance


class SchemaRegistry:
    """Cache of :class:`EntitySchema` per entity type."""

    def __init__(self) -> None:
        self._schemas: dict[type, EntitySchema] = {}

    def register(
        self,
        entity_type: type,
        fields: Iterable[FieldInfo | tuple[str, Any]] | None = None,
        *,
        key: str | None = None,
    ) -> EntitySchema:
        """Register (or replace) the schema for *entity_type*.

        Args:
            entity_type: The entity class.
            fields: Explicit members; derived from the type when omitted.
            key: Name of the member to mark as the primary key.
        """
        if fields is None:
            infos = list(self._derive(entity_type))
        else:
            infos = [f if isinstance(f, FieldInfo) else FieldInfo(f[0], _unwrap(f[1])[0]) for f in fields]

        if key is not None:
            if not any(info.name == key for info in infos):
                raise ConfigurationError(
                    f"{entity_type.__name__} has no member '{key}' to use as key",
                    code="SCHEMA_UNKNOWN_KEY",
                )
            infos = [dataclasses.replace(info, is_key=info.name == key) for info in infos]

        schema = EntitySchema(entity_type=entity_type, fields=tuple(infos))
        self._schemas[entity_type] = schema
        return schema

    def get(self, entity_type: type) -> EntitySchema:
        """Return the cached schema for *entity_type*, deriving it on first use."""
        schema = self._schemas.get(entity_type)
        if schema is None:
            if not self.is_entity(entity_type):
                raise ConfigurationError(
                    f"{entity_type!r} is not an entity type",
                    code="SCHEMA_NOT_ENTITY",
                )
            schema = self.register(entity_type)
        return schema

    def is_entity(self, tp: Any) -> bool:
        if tp in self._schemas:
            return True
        if not isinstance(tp, type) or tp.__module__ == "builtins":
            return False
        return dataclasses.is_dataclass(tp) or hasattr(tp, "__mapper__") or bool(_plain_annotations(tp))

    def is_compatible(self, source: Any, target: Any) -> bool:
        """Whether a member typed *source* may be read as *target*."""
        if source == target:
            return True
        if source is int and target is float:
            return True
        return self.is_entity(source) and self.is_entity(target)

    @staticmethod
    def _derive(entity_type: type) -> Iterable[FieldInfo]:
        if hasattr(entity_type, "__mapper__"):
            yield from _derive_sqlalchemy(entity_type)
        elif dataclasses.is_dataclass(entity_type):
            hints = get_type_hints(entity_type)
            for f in dataclasses.fields(entity_type):
                tp, nullable = _unwrap(hints.get(f.name, Any))
                yield FieldInfo(f.name, tp, bool(f.metadata.get(KEY_METADATA)), nullable)
        else:
            for name, hint in _plain_annotations(entity_type).items():
                tp, nullable = _unwrap(hint)
                yield FieldInfo(name, tp, False, nullable)


def _plain_annotations(tp: type) -> dict[str, Any]:
    try:
        hints = get_type_hints(tp)
    except (NameError, TypeError):
        return {}
    return {k: v for k, v in hints.items() if not k.startswith("_") and get_origin(v) is not ClassVar}


def _derive_sqlalchemy(entity_type: type) -> Iterable[FieldInfo]:
    from sqlalchemy import inspect

    mapper = inspect(entity_type)
    try:
        hints = get_type_hints(entity_type)
    except (NameError, TypeError):
        hints = {}

    for attr in mapper.column_attrs:
        column = attr.columns[0]
        if attr.key in hints:
            tp, nullable = _unwrap(hints[attr.key])
        else:
            try:
                tp = column.type.python_type
            except NotImplementedError:
                tp = typing.Any
            nullable = bool(column.nullable)
        yield FieldInfo(attr.key, tp, bool(column.primary_key), nullable)


_default_registry = SchemaRegistry()


def default_registry() -> SchemaRegistry:
    return _default_registry


def schema_of(entity_type: type) -> EntitySchema:
    """Shortcut for ``default_registry().get(entity_type)``."""
    return _default_registry.get(entity_type)


def register_schema(
    entity_type: type,
    fields: Iterable[FieldInfo | tuple[str, Any]] | None = None,
    *,
    key: str | None = None,
) -> EntitySchema:
    """Shortcut for ``default_registry().register(...)``."""
    return _default_registry.register(entity_type, fields, key=key)
