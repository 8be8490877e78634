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
"""Typed expression trees for predicates and ordering keys.

Expressions are immutable trees of :class:`Expression` nodes rooted in a
:class:`Lambda`. They are written as ordinary Python lambdas over typed
parameter references and captured once::

    cheap = where(Widget, lambda w: (w.price < 10) & (w.name != ""))
    by_name = selector(Widget, lambda w: w.name)

    cheap.compile()(widget)  # evaluate in memory

Member access is resolved against the entity schema while the tree is built,
so a misspelt member fails immediately with ``AttributeError``. Combine
predicates with ``&``, ``|`` and ``~``; Python's ``and``/``or``/``not`` and
chained comparisons cannot be captured and raise ``TypeError``.
"""

from __future__ import annotations

import enum
import inspect
import operator
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from kirei.data.schema import SchemaRegistry, default_registry

T = TypeVar("T")
R = TypeVar("R")


class Operator(enum.Enum):
    """Binary and unary operators understood by every expression consumer."""

    EQ = "=="
    NE = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    AND = "&"
    OR = "|"
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    NOT = "~"
    NEG = "neg"

    @property
    def is_boolean(self) -> bool:
        return self in _BOOLEAN_OPERATORS


_BOOLEAN_OPERATORS = frozenset(
    {Operator.EQ, Operator.NE, Operator.LT, Operator.LE, Operator.GT, Operator.GE, Operator.AND, Operator.OR}
)

# Call methods and their result type; ``None`` means "same as the receiver".
CALL_METHODS: dict[str, type | None] = {
    "contains": bool,
    "startswith": bool,
    "endswith": bool,
    "in_": bool,
    "is_none": bool,
    "is_not_none": bool,
    "lower": str,
    "upper": str,
}


# =============================================================================
# Nodes
# =============================================================================


class Expression:
    """Base class of every expression node."""

    type: Any

    def accept(self, visitor: ExpressionVisitor[R]) -> R:
        raise NotImplementedError


@dataclass(frozen=True, eq=False)
class Parameter(Expression):
    """A bound variable. Parameters compare by identity."""

    name: str
    type: Any

    def accept(self, visitor: ExpressionVisitor[R]) -> R:
        return visitor.visit_parameter(self)


@dataclass(frozen=True, eq=False)
class Member(Expression):
    """Read of the member *name* on *receiver*."""

    receiver: Expression
    name: str
    type: Any

    def accept(self, visitor: ExpressionVisitor[R]) -> R:
        return visitor.visit_member(self)


@dataclass(frozen=True, eq=False)
class Constant(Expression):
    value: Any
    type: Any

    def accept(self, visitor: ExpressionVisitor[R]) -> R:
        return visitor.visit_constant(self)


@dataclass(frozen=True, eq=False)
class Binary(Expression):
    op: Operator
    left: Expression
    right: Expression
    type: Any

    def accept(self, visitor: ExpressionVisitor[R]) -> R:
        return visitor.visit_binary(self)


@dataclass(frozen=True, eq=False)
class Unary(Expression):
    op: Operator
    operand: Expression
    type: Any

    def accept(self, visitor: ExpressionVisitor[R]) -> R:
        return visitor.visit_unary(self)


@dataclass(frozen=True, eq=False)
class Call(Expression):
    """Invocation of one of :data:`CALL_METHODS` on *receiver*."""

    method: str
    receiver: Expression
    args: tuple[Expression, ...]
    type: Any

    def accept(self, visitor: ExpressionVisitor[R]) -> R:
        return visitor.visit_call(self)


@dataclass(frozen=True, eq=False)
class Lambda(Expression, Generic[T]):
    """Root of an expression tree: parameters, body and declared result type.

    ``Lambda[T]`` is parameterised by the type of its first parameter purely
    for annotations; the runtime signature is :attr:`signature`.
    """

    parameters: tuple[Parameter, ...]
    body: Expression
    result_type: Any

    @property
    def type(self) -> Any:  # type: ignore[override]
        return self.result_type

    @property
    def signature(self) -> tuple[Any, ...]:
        """``(*parameter types, result type)``."""
        return (*(p.type for p in self.parameters), self.result_type)

    def accept(self, visitor: ExpressionVisitor[R]) -> R:
        return visitor.visit_lambda(self)

    def compile(self) -> Callable[..., Any]:
        """Compile into a Python callable taking one argument per parameter."""
        body = _Compiler().visit(self.body)
        parameters = self.parameters

        def invoke(*args: Any) -> Any:
            if len(args) != len(parameters):
                raise TypeError(f"expected {len(parameters)} argument(s), got {len(args)}")
            return body(dict(zip(parameters, args)))

        return invoke

    def __repr__(self) -> str:
        names = ", ".join(p.name for p in self.parameters)
        return f"Lambda({names} => {_Formatter().visit(self.body)})"


# =============================================================================
# Visitors
# =============================================================================


class ExpressionVisitor(Generic[R]):
    """Double-dispatch visitor over expression nodes."""

    def visit(self, node: Expression) -> R:
        return node.accept(self)

    def visit_parameter(self, node: Parameter) -> R:
        raise NotImplementedError

    def visit_member(self, node: Member) -> R:
        raise NotImplementedError

    def visit_constant(self, node: Constant) -> R:
        raise NotImplementedError

    def visit_binary(self, node: Binary) -> R:
        raise NotImplementedError

    def visit_unary(self, node: Unary) -> R:
        raise NotImplementedError

    def visit_call(self, node: Call) -> R:
        raise NotImplementedError

    def visit_lambda(self, node: Lambda[Any]) -> R:
        raise NotImplementedError


class ExpressionRewriter(ExpressionVisitor[Expression]):
    """Visitor that rebuilds the tree, reusing nodes whose children are unchanged.

    Subclasses override the ``visit_*`` hooks they need to replace.
    """

    def visit_parameter(self, node: Parameter) -> Expression:
        return node

    def visit_member(self, node: Member) -> Expression:
        receiver = self.visit(node.receiver)
        if receiver is node.receiver:
            return node
        return Member(receiver, node.name, node.type)

    def visit_constant(self, node: Constant) -> Expression:
        return node

    def visit_binary(self, node: Binary) -> Expression:
        left, right = self.visit(node.left), self.visit(node.right)
        if left is node.left and right is node.right:
            return node
        return Binary(node.op, left, right, node.type)

    def visit_unary(self, node: Unary) -> Expression:
        operand = self.visit(node.operand)
        if operand is node.operand:
            return node
        return Unary(node.op, operand, node.type)

    def visit_call(self, node: Call) -> Expression:
        receiver = self.visit(node.receiver)
        args = tuple(self.visit(a) for a in node.args)
        if receiver is node.receiver and all(a is b for a, b in zip(args, node.args)):
            return node
        return Call(node.method, receiver, args, node.type)

    def visit_lambda(self, node: Lambda[Any]) -> Expression:
        body = self.visit(node.body)
        if body is node.body:
            return node
        return Lambda(node.parameters, body, node.result_type)


class ParameterRebinder(ExpressionRewriter):
    """Replace parameter references according to *mapping*."""

    def __init__(self, mapping: dict[Parameter, Parameter]) -> None:
        self._mapping = mapping

    def visit_parameter(self, node: Parameter) -> Expression:
        return self._mapping.get(node, node)


_Env = dict[Parameter, Any]
_Thunk = Callable[[_Env], Any]

def _lifted(func: Callable[[Any, Any], Any], null_result: Any) -> Callable[[Any, Any], Any]:
    """Wrap *func* so a ``None`` operand yields *null_result* instead of raising."""

    def apply(left: Any, right: Any) -> Any:
        if left is None or right is None:
            return null_result
        return func(left, right)

    return apply


# Null operands follow SQL: ordering comparisons are false, arithmetic is null.
_BINARY_FUNCS: dict[Operator, Callable[[Any, Any], Any]] = {
    Operator.EQ: operator.eq,
    Operator.NE: operator.ne,
    Operator.LT: _lifted(operator.lt, False),
    Operator.LE: _lifted(operator.le, False),
    Operator.GT: _lifted(operator.gt, False),
    Operator.GE: _lifted(operator.ge, False),
    Operator.ADD: _lifted(operator.add, None),
    Operator.SUB: _lifted(operator.sub, None),
    Operator.MUL: _lifted(operator.mul, None),
    Operator.DIV: _lifted(operator.truediv, None),
}

# Calls that must see a None receiver; every other call maps None to null.
_NULL_AWARE_CALLS = frozenset({"is_none", "is_not_none"})

_CALL_FUNCS: dict[str, Callable[..., Any]] = {
    "contains": lambda value, item: item in value,
    "startswith": lambda value, prefix: value.startswith(prefix),
    "endswith": lambda value, suffix: value.endswith(suffix),
    "in_": lambda value, options: value in options,
    "is_none": lambda value: value is None,
    "is_not_none": lambda value: value is not None,
    "lower": lambda value: value.lower(),
    "upper": lambda value: value.upper(),
}


class _Compiler(ExpressionVisitor[_Thunk]):
    """Turn a tree into nested closures over a parameter environment."""

    def visit_parameter(self, node: Parameter) -> _Thunk:
        return lambda env: env[node]

    def visit_member(self, node: Member) -> _Thunk:
        receiver, name = self.visit(node.receiver), node.name
        return lambda env: getattr(receiver(env), name)

    def visit_constant(self, node: Constant) -> _Thunk:
        value = node.value
        return lambda env: value

    def visit_binary(self, node: Binary) -> _Thunk:
        left, right = self.visit(node.left), self.visit(node.right)
        if node.op is Operator.AND:
            return lambda env: bool(left(env)) and bool(right(env))
        if node.op is Operator.OR:
            return lambda env: bool(left(env)) or bool(right(env))
        func = _BINARY_FUNCS[node.op]
        return lambda env: func(left(env), right(env))

    def visit_unary(self, node: Unary) -> _Thunk:
        operand = self.visit(node.operand)
        if node.op is Operator.NOT:
            return lambda env: not operand(env)

        def negate(env: _Env) -> Any:
            value = operand(env)
            return None if value is None else -value

        return negate

    def visit_call(self, node: Call) -> _Thunk:
        receiver = self.visit(node.receiver)
        args = [self.visit(a) for a in node.args]
        func = _CALL_FUNCS[node.method]
        if node.method in _NULL_AWARE_CALLS:
            return lambda env: func(receiver(env), *(a(env) for a in args))

        null_result = False if node.type is bool else None

        def call(env: _Env) -> Any:
            value = receiver(env)
            if value is None:
                return null_result
            return func(value, *(a(env) for a in args))

        return call

    def visit_lambda(self, node: Lambda[Any]) -> _Thunk:
        raise TypeError("nested lambdas are not supported")


class _Formatter(ExpressionVisitor[str]):
    def visit_parameter(self, node: Parameter) -> str:
        return node.name

    def visit_member(self, node: Member) -> str:
        return f"{self.visit(node.receiver)}.{node.name}"

    def visit_constant(self, node: Constant) -> str:
        return repr(node.value)

    def visit_binary(self, node: Binary) -> str:
        return f"({self.visit(node.left)} {node.op.value} {self.visit(node.right)})"

    def visit_unary(self, node: Unary) -> str:
        prefix = "~" if node.op is Operator.NOT else "-"
        return f"{prefix}{self.visit(node.operand)}"

    def visit_call(self, node: Call) -> str:
        args = ", ".join(self.visit(a) for a in node.args)
        return f"{self.visit(node.receiver)}.{node.method}({args})"

    def visit_lambda(self, node: Lambda[Any]) -> str:
        return repr(node)


# =============================================================================
# Building
# =============================================================================


def _arithmetic_type(left: Any, right: Any, op: Operator) -> Any:
    if op is Operator.DIV:
        return float
    if left is int and right is int:
        return int
    if float in (left, right) and {left, right} <= {int, float}:
        return float
    return left


class Ref:
    """Proxy handed to expression-building lambdas.

    Attribute access resolves members through the schema registry; operators
    build :class:`Binary` and :class:`Unary` nodes.
    """

    __slots__ = ("__node__", "__registry__")

    def __init__(self, node: Expression, registry: SchemaRegistry) -> None:
        object.__setattr__(self, "__node__", node)
        object.__setattr__(self, "__registry__", registry)

    def _wrap(self, node: Expression) -> Ref:
        return Ref(node, self.__registry__)

    def _lift(self, value: Any) -> Expression:
        if isinstance(value, Ref):
            return value.__node__
        if isinstance(value, Expression):
            return value
        return Constant(value, type(value))

    def __getattr__(self, name: str) -> Ref:
        if name.startswith("__"):
            raise AttributeError(name)
        node = self.__node__
        registry = self.__registry__
        if not registry.is_entity(node.type):
            raise AttributeError(f"{node.type!r} has no member '{name}'")
        info = registry.get(node.type).field(name)
        if info is None:
            raise AttributeError(f"{node.type.__name__} has no member '{name}'")
        return self._wrap(Member(node, name, info.type))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("expression references are read-only")

    def __bool__(self) -> bool:
        raise TypeError("expressions cannot be used as booleans; combine them with &, | and ~")

    __hash__ = None  # type: ignore[assignment]

    def _binary(self, op: Operator, other: Any, reflected: bool = False) -> Ref:
        left, right = self.__node__, self._lift(other)
        if reflected:
            left, right = right, left
        result_type = bool if op.is_boolean else _arithmetic_type(left.type, right.type, op)
        return self._wrap(Binary(op, left, right, result_type))

    def __eq__(self, other: Any) -> Ref:  # type: ignore[override]
        return self._binary(Operator.EQ, other)

    def __ne__(self, other: Any) -> Ref:  # type: ignore[override]
        return self._binary(Operator.NE, other)

    def __lt__(self, other: Any) -> Ref:
        return self._binary(Operator.LT, other)

    def __le__(self, other: Any) -> Ref:
        return self._binary(Operator.LE, other)

    def __gt__(self, other: Any) -> Ref:
        return self._binary(Operator.GT, other)

    def __ge__(self, other: Any) -> Ref:
        return self._binary(Operator.GE, other)

    def __and__(self, other: Any) -> Ref:
        return self._binary(Operator.AND, other)

    def __rand__(self, other: Any) -> Ref:
        return self._binary(Operator.AND, other, reflected=True)

    def __or__(self, other: Any) -> Ref:
        return self._binary(Operator.OR, other)

    def __ror__(self, other: Any) -> Ref:
        return self._binary(Operator.OR, other, reflected=True)

    def __add__(self, other: Any) -> Ref:
        return self._binary(Operator.ADD, other)

    def __radd__(self, other: Any) -> Ref:
        return self._binary(Operator.ADD, other, reflected=True)

    def __sub__(self, other: Any) -> Ref:
        return self._binary(Operator.SUB, other)

    def __rsub__(self, other: Any) -> Ref:
        return self._binary(Operator.SUB, other, reflected=True)

    def __mul__(self, other: Any) -> Ref:
        return self._binary(Operator.MUL, other)

    def __rmul__(self, other: Any) -> Ref:
        return self._binary(Operator.MUL, other, reflected=True)

    def __truediv__(self, other: Any) -> Ref:
        return self._binary(Operator.DIV, other)

    def __rtruediv__(self, other: Any) -> Ref:
        return self._binary(Operator.DIV, other, reflected=True)

    def __invert__(self) -> Ref:
        return self._wrap(Unary(Operator.NOT, self.__node__, bool))

    def __neg__(self) -> Ref:
        return self._wrap(Unary(Operator.NEG, self.__node__, self.__node__.type))

    def _call(self, method: str, *args: Any) -> Ref:
        result_type = CALL_METHODS[method] or self.__node__.type
        lifted = tuple(self._lift(a) for a in args)
        return self._wrap(Call(method, self.__node__, lifted, result_type))

    def contains(self, item: Any) -> Ref:
        return self._call("contains", item)

    def startswith(self, prefix: str) -> Ref:
        return self._call("startswith", prefix)

    def endswith(self, suffix: str) -> Ref:
        return self._call("endswith", suffix)

    def in_(self, options: Iterable[Any]) -> Ref:
        return self._call("in_", tuple(options))

    def is_none(self) -> Ref:
        return self._call("is_none")

    def is_not_none(self) -> Ref:
        return self._call("is_not_none")

    def lower(self) -> Ref:
        return self._call("lower")

    def upper(self) -> Ref:
        return self._call("upper")


def build(
    fn: Callable[..., Any],
    *parameter_types: Any,
    result_type: Any = None,
    registry: SchemaRegistry | None = None,
) -> Lambda[Any]:
    """Capture *fn* as a :class:`Lambda` over parameters of *parameter_types*.

    Parameter names are taken from *fn*'s signature. When *result_type* is
    omitted the body's inferred type is used.
    """
    registry = registry or default_registry()
    names = list(inspect.signature(fn).parameters)
    if len(names) != len(parameter_types):
        raise TypeError(f"lambda takes {len(names)} parameter(s) but {len(parameter_types)} type(s) were given")

    parameters = tuple(Parameter(name, tp) for name, tp in zip(names, parameter_types))
    result = fn(*(Ref(p, registry) for p in parameters))
    if isinstance(result, Ref):
        body = result.__node__
    elif isinstance(result, Expression):
        body = result
    else:
        body = Constant(result, type(result))
    return Lambda(parameters, body, result_type if result_type is not None else body.type)


def where(entity_type: type[T], fn: Callable[[Any], Any], *, registry: SchemaRegistry | None = None) -> Lambda[T]:
    """Build a boolean predicate over *entity_type*."""
    predicate = build(fn, entity_type, registry=registry)
    if predicate.body.type is not bool:
        raise TypeError(f"predicate must produce bool, got {predicate.body.type!r}")
    return predicate


def selector(entity_type: type[T], fn: Callable[[Any], Any], *, registry: SchemaRegistry | None = None) -> Lambda[T]:
    """Build a key selector (e.g. an ordering key) over *entity_type*."""
    return build(fn, entity_type, registry=registry)
