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
"""Combine predicates over the same entity type with AND / OR.

The second predicate's parameters are rebound onto the first's by position,
so the combined tree references a single set of parameters::

    cheap_or_new = or_(where(Widget, lambda w: w.price < 10), where(Widget, lambda x: x.is_new))
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from kirei.data.expression import Binary, Expression, Lambda, Operator, ParameterRebinder
from kirei.kernel.exceptions import RewriteError


def compose(
    first: Lambda[Any],
    second: Lambda[Any],
    merge: Callable[[Expression, Expression], Expression],
) -> Lambda[Any]:
    """Merge two lambdas' bodies under *first*'s parameter list."""
    if len(first.parameters) != len(second.parameters):
        raise RewriteError(
            "Cannot combine lambdas with different parameter counts",
            code="COMBINE_ARITY",
        )
    for a, b in zip(first.parameters, second.parameters):
        if a.type != b.type:
            raise RewriteError(
                f"Cannot combine lambdas over {a.type!r} and {b.type!r}",
                code="COMBINE_TYPE",
            )

    mapping = dict(zip(second.parameters, first.parameters))
    second_body = ParameterRebinder(mapping).visit(second.body)
    return Lambda(first.parameters, merge(first.body, second_body), first.result_type)


def and_(first: Lambda[Any], second: Lambda[Any]) -> Lambda[Any]:
    return compose(first, second, lambda left, right: Binary(Operator.AND, left, right, bool))


def or_(first: Lambda[Any], second: Lambda[Any]) -> Lambda[Any]:
    return compose(first, second, lambda left, right: Binary(Operator.OR, left, right, bool))


def _fold(
    predicates: tuple[Lambda[Any] | None, ...],
    combine: Callable[[Lambda[Any], Lambda[Any]], Lambda[Any]],
) -> Lambda[Any] | None:
    result: Lambda[Any] | None = None
    for predicate in predicates:
        if predicate is None:
            continue
        result = predicate if result is None else combine(result, predicate)
    return result


def combine_and(*predicates: Lambda[Any] | None) -> Lambda[Any] | None:
    """AND all non-``None`` predicates, left to right.

    Returns ``None`` (no filter) when every entry is ``None``.
    """
    return _fold(predicates, and_)


def combine_or(*predicates: Lambda[Any] | None) -> Lambda[Any] | None:
    """OR all non-``None`` predicates, left to right.

    Returns ``None`` (no filter) when every entry is ``None``.
    """
    return _fold(predicates, or_)
