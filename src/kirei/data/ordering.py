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
"""Ordering keys: a primary key selector plus an optional secondary one.

Each level carries its own direction. In-memory ordering is stable, and
``None`` sorts before every other value (so it comes last when descending).
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from typing import Any, Generic, TypeVar

from kirei.data.expression import Lambda

T = TypeVar("T")


def _nulls_first(key: Callable[[Any], Any]) -> Callable[[Any], tuple[bool, Any]]:
    def wrapped(item: Any) -> tuple[bool, Any]:
        value = key(item)
        return (value is not None, value)

    return wrapped


@dataclass(frozen=True)
class Ordering(Generic[T]):
    """``order_by`` then ``then_by``, each with an independent direction."""

    order_by: Lambda[T]
    descending: bool = False
    then_by: Lambda[T] | None = None
    then_by_descending: bool = False

    @staticmethod
    def asc(key: Lambda[T]) -> Ordering[T]:
        return Ordering(order_by=key)

    @staticmethod
    def desc(key: Lambda[T]) -> Ordering[T]:
        return Ordering(order_by=key, descending=True)

    def then(self, key: Lambda[T], descending: bool = False) -> Ordering[T]:
        """Return a copy with *key* as the secondary sort key."""
        return replace(self, then_by=key, then_by_descending=descending)

    def keys(self) -> list[tuple[Lambda[T], bool]]:
        """``(selector, descending)`` pairs, most significant first."""
        result = [(self.order_by, self.descending)]
        if self.then_by is not None:
            result.append((self.then_by, self.then_by_descending))
        return result

    def map_keys(self, convert: Callable[[Lambda[T]], Lambda[Any]]) -> Ordering[Any]:
        """Return a copy with every key selector passed through *convert*."""
        then_by = convert(self.then_by) if self.then_by is not None else None
        return replace(self, order_by=convert(self.order_by), then_by=then_by)

    def sort(self, items: Iterable[T]) -> list[T]:
        """Sort *items* in memory, stably."""
        result = list(items)
        # Least significant key first; list.sort is stable, also when reversed.
        for key, descending in reversed(self.keys()):
            result.sort(key=_nulls_first(key.compile()), reverse=descending)
        return result


def paginate(items: Iterable[T], skip: int = 0, take: int | None = None) -> list[T]:
    """Apply *skip* then *take* to *items*."""
    result = list(items)
    if skip:
        result = result[skip:]
    if take is not None:
        result = result[:take]
    return result


def check_window(skip: int, take: int | None) -> None:
    """Validate skip/take arguments."""
    if skip < 0:
        raise ValueError(f"skip must be >= 0, got {skip}")
    if take is not None and take < 0:
        raise ValueError(f"take must be >= 0, got {take}")
