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
"""Rewrite expressions written against one type into the equivalent expression
against another, statically compatible type.

A predicate written against a public model (``Widget``) is rewritten into the
predicate the storage layer understands (``WidgetRow``) by swapping the
parameter type and re-resolving every member access by name::

    converter = ExpressionConverter()
    row_predicate = converter.convert(predicate, (WidgetRow, bool))

Members that do not exist on the target, or exist with an incompatible type,
raise :class:`RewriteError`; a filter is never dropped silently.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from kirei.data.expression import Expression, ExpressionRewriter, Lambda, Member, Parameter
from kirei.data.schema import SchemaRegistry, default_registry
from kirei.kernel.exceptions import ConfigurationError, RewriteError, SignatureMismatchError


class ExpressionConverter:
    """Converts :class:`Lambda` trees between structurally matching types."""

    def __init__(self, registry: SchemaRegistry | None = None) -> None:
        self._registry = registry or default_registry()

    def convert(self, expression: Lambda[Any], to_signature: Sequence[Any]) -> Lambda[Any]:
        """Rewrite *expression* so its signature becomes *to_signature*.

        Args:
            expression: The lambda to rewrite.
            to_signature: Target ``(*parameter types, result type)``.

        Raises:
            SignatureMismatchError: The signatures have a different arity.
            RewriteError: A dereferenced member is missing or incompatible on
                the rewritten receiver type.
        """
        from_types = expression.signature
        to_types = tuple(to_signature)
        if len(from_types) != len(to_types):
            raise SignatureMismatchError(
                "Incompatible lambda signatures",
                code="REWRITE_SIGNATURE",
                context={"from": from_types, "to": to_types},
            )

        type_map = {old: new for old, new in zip(from_types, to_types) if old != new}
        if not type_map:
            return expression

        parameter_map: dict[Parameter, Parameter] = {}
        parameters: list[Parameter] = []
        for parameter in expression.parameters:
            new_type = type_map.get(parameter.type)
            if new_type is None:
                parameters.append(parameter)
                continue
            replacement = Parameter(parameter.name, new_type)
            parameter_map[parameter] = replacement
            parameters.append(replacement)

        body = _TypeConversionRewriter(parameter_map, self._registry).visit(expression.body)
        result_type = type_map.get(expression.result_type, expression.result_type)
        return Lambda(tuple(parameters), body, result_type)

    def convert_to(self, expression: Lambda[Any], source_type: type, target_type: type) -> Lambda[Any]:
        """Rewrite *expression*, replacing every *source_type* in its signature."""
        signature = tuple(target_type if tp is source_type else tp for tp in expression.signature)
        return self.convert(expression, signature)


class _TypeConversionRewriter(ExpressionRewriter):
    def __init__(self, parameter_map: dict[Parameter, Parameter], registry: SchemaRegistry) -> None:
        self._parameter_map = parameter_map
        self._registry = registry

    def visit_parameter(self, node: Parameter) -> Expression:
        return self._parameter_map.get(node, node)

    def visit_member(self, node: Member) -> Expression:
        receiver = self.visit(node.receiver)
        if receiver.type == node.receiver.type:
            if receiver is node.receiver:
                return node
            return Member(receiver, node.name, node.type)

        # The receiver changed type: the old member binding is stale.
        try:
            schema = self._registry.get(receiver.type)
        except ConfigurationError as exc:
            raise RewriteError(
                f"Cannot resolve '{node.name}' on non-entity type {receiver.type!r}",
                code="REWRITE_RECEIVER",
                context={"member": node.name},
            ) from exc

        info = schema.field(node.name)
        if info is None:
            raise RewriteError(
                f"{schema.name} has no member '{node.name}'",
                code="REWRITE_MEMBER_MISSING",
                context={"member": node.name, "target": schema.name},
            )
        if not self._registry.is_compatible(node.type, info.type):
            raise RewriteError(
                f"{schema.name}.{node.name} is {info.type!r}, expected {node.type!r}",
                code="REWRITE_MEMBER_TYPE",
                context={"member": node.name, "target": schema.name},
            )
        return Member(receiver, node.name, info.type)
