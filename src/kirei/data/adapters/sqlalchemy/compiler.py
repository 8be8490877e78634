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
"""Compile expression trees into SQLAlchemy column expressions.

The lambda's single parameter stands for the mapped entity class, so
``w.price > 10`` over ``WidgetRow`` becomes ``WidgetRow.price > 10``.
"""

from __future__ import annotations

import operator
from collections.abc import Callable
from typing import Any

from sqlalchemy import ColumnElement, and_, func, literal, not_, or_, true
from sqlalchemy.sql.elements import ClauseElement

from kirei.data.expression import (
    Binary,
    Call,
    Constant,
    ExpressionVisitor,
    Lambda,
    Member,
    Operator,
    Parameter,
    Unary,
)

_BINARY_FUNCS: dict[Operator, Callable[[Any, Any], Any]] = {
    Operator.EQ: operator.eq,
    Operator.NE: operator.ne,
    Operator.LT: operator.lt,
    Operator.LE: operator.le,
    Operator.GT: operator.gt,
    Operator.GE: operator.ge,
    Operator.ADD: operator.add,
    Operator.SUB: operator.sub,
    Operator.MUL: operator.mul,
    Operator.DIV: operator.truediv,
}


class SqlAlchemyExpressionCompiler(ExpressionVisitor[Any]):
    """Translate a one-parameter :class:`Lambda` over a mapped class."""

    def __init__(self, entity: type) -> None:
        self._entity = entity
        self._parameter: Parameter | None = None

    def compile(self, expression: Lambda[Any]) -> ColumnElement[Any]:
        if len(expression.parameters) != 1:
            raise ValueError("SQL expressions take exactly one parameter")
        self._parameter = expression.parameters[0]
        try:
            clause = self.visit(expression.body)
        finally:
            self._parameter = None
        return _as_clause(clause)

    def visit_parameter(self, node: Parameter) -> Any:
        if node is not self._parameter:
            raise ValueError(f"unbound parameter '{node.name}'")
        return self._entity

    def visit_member(self, node: Member) -> Any:
        if not isinstance(node.receiver, Parameter):
            raise NotImplementedError(f"nested member access '{node.name}' cannot be translated to SQL")
        return getattr(self.visit(node.receiver), node.name)

    def visit_constant(self, node: Constant) -> Any:
        return node.value

    def visit_binary(self, node: Binary) -> Any:
        left, right = self.visit(node.left), self.visit(node.right)
        if node.op is Operator.AND:
            return and_(_as_clause(left), _as_clause(right))
        if node.op is Operator.OR:
            return or_(_as_clause(left), _as_clause(right))
        if not isinstance(left, ClauseElement) and not hasattr(left, "__clause_element__"):
            left = literal(left)
        return _BINARY_FUNCS[node.op](left, right)

    def visit_unary(self, node: Unary) -> Any:
        operand = self.visit(node.operand)
        if node.op is Operator.NOT:
            return not_(_as_clause(operand))
        return -operand

    def visit_call(self, node: Call) -> Any:
        receiver = self.visit(node.receiver)
        args = [self.visit(a) for a in node.args]
        match node.method:
            case "contains":
                return receiver.contains(args[0])
            case "startswith":
                return receiver.startswith(args[0])
            case "endswith":
                return receiver.endswith(args[0])
            case "in_":
                return receiver.in_(list(args[0]))
            case "is_none":
                return receiver.is_(None)
            case "is_not_none":
                return receiver.is_not(None)
            case "lower":
                return func.lower(receiver)
            case "upper":
                return func.upper(receiver)
        raise NotImplementedError(f"call '{node.method}' cannot be translated to SQL")

    def visit_lambda(self, node: Lambda[Any]) -> Any:
        raise NotImplementedError("nested lambdas cannot be translated to SQL")


def _as_clause(value: Any) -> Any:
    if value is True:
        return true()
    if value is False:
        return not_(true())
    return value
