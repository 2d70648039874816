# Copyright 2025 The IREE Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""Index expression handles and their algebra.

Every combinator tries, in order:

1. the literal tier, when all operands are compile time integers;
2. the affine tier, when the operation keeps the result affine: `+` and `-`
   always do, `*` needs a literal operand, and floor/ceil division and modulo
   need a positive literal divisor;
3. the value tier, which materializes the operands and emits `arith` ops. No
   code may be emitted during shape inference, so there the result is a
   questionmark instead.

An undefined operand makes the result undefined.
"""

from __future__ import annotations

import operator
from typing import Callable, Sequence, TYPE_CHECKING, Union

from ..compiler.base import ContractViolation, NDEBUG, options
from ..support.ir_imports import (
    AffineConstantExpr,
    AffineExpr,
    Value,
    arith_d,
)
from ..support.logging import get_logger
from .emitter import (
    ArithOp,
    Reduction,
    apply_affine,
    constant_index,
    emit_affine_reduction,
    emit_arith,
    emit_reduction,
    emit_select,
)
from .kinds import (
    COMPUTED,
    Affine,
    IndexExprRecord,
    Kind,
    Literal,
    Origin,
    Questionmark,
    Undefined,
)

if TYPE_CHECKING:
    from .scope import IndexExprScope

logger = get_logger(__name__)

Operand = Union["IndexExpr", int]

_UINT64_MASK = (1 << 64) - 1


def _unsigned(compare: Callable[[int, int], bool]) -> Callable[[int, int], bool]:
    return lambda a, b: compare(a & _UINT64_MASK, b & _UINT64_MASK)


_PREDICATES: dict[arith_d.CmpIPredicate, Callable[[int, int], bool]] = {
    arith_d.CmpIPredicate.eq: operator.eq,
    arith_d.CmpIPredicate.ne: operator.ne,
    arith_d.CmpIPredicate.slt: operator.lt,
    arith_d.CmpIPredicate.sle: operator.le,
    arith_d.CmpIPredicate.sgt: operator.gt,
    arith_d.CmpIPredicate.sge: operator.ge,
    arith_d.CmpIPredicate.ult: _unsigned(operator.lt),
    arith_d.CmpIPredicate.ule: _unsigned(operator.le),
    arith_d.CmpIPredicate.ugt: _unsigned(operator.gt),
    arith_d.CmpIPredicate.uge: _unsigned(operator.ge),
}


def evaluate_predicate(predicate: arith_d.CmpIPredicate, lhs: int, rhs: int) -> bool:
    return _PREDICATES[predicate](lhs, rhs)


def fold_literal(op: ArithOp, lhs: int, rhs: int) -> int:
    """Integer semantics of the arithmetic ops: divisions round toward -inf
    (floor) or +inf (ceil) and the remainder takes the sign of the divisor."""
    match op:
        case ArithOp.ADD:
            return lhs + rhs
        case ArithOp.SUB:
            return lhs - rhs
        case ArithOp.MUL:
            return lhs * rhs
        case ArithOp.FLOOR_DIV:
            return lhs // rhs
        case ArithOp.CEIL_DIV:
            return -(-lhs // rhs)
        case ArithOp.MOD:
            return lhs % rhs
    raise ContractViolation(f"Unsupported arithmetic op {op}")


_DIVISIONS = (ArithOp.FLOOR_DIV, ArithOp.CEIL_DIV, ArithOp.MOD)


class IndexExpr:
    """Handle to an index expression record owned by a scope.

    Copying a handle aliases the record. Handles stay valid as long as their
    scope is open.
    """

    __slots__ = ("scope", "slot")

    def __init__(self, scope: IndexExprScope, slot: int):
        self.scope = scope
        self.slot = slot

    def record(self) -> IndexExprRecord:
        return self.scope.record(self.slot)

    @property
    def kind(self) -> Kind:
        return self.record().kind

    # Queries.

    def is_defined(self) -> bool:
        return not isinstance(self.kind, Undefined)

    def is_undefined(self) -> bool:
        return isinstance(self.kind, Undefined)

    def is_literal(self) -> bool:
        return isinstance(self.kind, Literal)

    def is_questionmark(self) -> bool:
        return isinstance(self.kind, Questionmark)

    def is_affine(self) -> bool:
        return isinstance(self.kind, (Literal, Affine))

    def has_affine_expr(self) -> bool:
        return isinstance(self.kind, Affine)

    def _origin(self) -> Origin:
        match self.kind:
            case Affine(origin=origin):
                return origin
            case Literal():
                return Origin.NONE
        raise ContractViolation(f"Dim/symbol query on a non affine index expression {self!r}")

    def is_dim(self) -> bool:
        return self._origin() == Origin.DIM

    def is_symbol(self) -> bool:
        return self._origin() == Origin.SYMBOL

    def has_value(self) -> bool:
        return self.record().value is not None

    def is_shape_inference_pass(self) -> bool:
        return self.scope.is_shape_inference_pass()

    @property
    def loc(self):
        return self.scope.loc

    # Getters.

    def get_literal(self) -> int:
        kind = self.kind
        if not isinstance(kind, Literal):
            raise ContractViolation(f"Expected a literal index expression, got {self!r}")
        return kind.value

    def get_affine_expr(self) -> AffineExpr:
        match self.kind:
            case Literal(value=value):
                return AffineConstantExpr.get(value, context=self.scope.context)
            case Affine(expr=expr):
                return expr
        raise ContractViolation(f"Expected an affine index expression, got {self!r}")

    def get_value(self) -> Value:
        """Returns the runtime value, emitting the code computing it if needed."""
        record = self.record()
        if record.value is not None:
            return record.value
        match record.kind:
            case Undefined() | Questionmark():
                raise ContractViolation(f"{self!r} has no runtime value")
        scope = self.scope
        if scope.is_shape_inference_pass():
            raise ContractViolation(
                f"Cannot materialize {self!r} during shape inference"
            )
        with scope.emission():
            match record.kind:
                case Literal(value=value):
                    record.value = constant_index(value)
                case Affine(expr=expr):
                    operands = scope.get_dim_and_symbol_list()
                    assert NDEBUG or all(v is not None for v in operands)
                    record.value = apply_affine(
                        expr, scope.num_dims, scope.num_symbols, operands
                    )
        assert NDEBUG or record.value is not None
        return record.value

    # Arithmetic.

    def _coerce(self, other: Operand) -> IndexExpr:
        if isinstance(other, IndexExpr):
            if other.scope is not self.scope:
                raise ContractViolation(
                    "Cannot combine index expressions from different scopes"
                )
            return other
        if isinstance(other, int):
            return self.scope.create_literal_index(other)
        raise TypeError(f"Cannot use {type(other).__name__} as an index expression")

    def _binary(self, other: Operand, op: ArithOp) -> IndexExpr:
        rhs = self._coerce(other)
        scope = self.scope
        a, b = self.kind, rhs.kind
        if isinstance(a, Undefined) or isinstance(b, Undefined):
            return scope.create_undefined_index()
        if op in _DIVISIONS and isinstance(b, Literal) and b.value == 0:
            raise ContractViolation(f"Division by zero in {self!r} {op.value} 0")
        if isinstance(a, Literal) and isinstance(b, Literal):
            return scope.create_literal_index(fold_literal(op, a.value, b.value))
        if isinstance(a, Questionmark) or isinstance(b, Questionmark):
            return scope.create_questionmark_index()
        if self.is_affine() and rhs.is_affine() and _keeps_affine(op, a, b):
            lhs_expr = self.get_affine_expr()
            rhs_expr = rhs.get_affine_expr()
            match op:
                case ArithOp.ADD:
                    expr = lhs_expr + rhs_expr
                case ArithOp.SUB:
                    expr = lhs_expr - rhs_expr
                case ArithOp.MUL:
                    expr = lhs_expr * rhs_expr
                case ArithOp.FLOOR_DIV:
                    expr = AffineExpr.get_floor_div(lhs_expr, rhs_expr)
                case ArithOp.CEIL_DIV:
                    expr = AffineExpr.get_ceil_div(lhs_expr, rhs_expr)
                case ArithOp.MOD:
                    expr = lhs_expr % rhs_expr
            return scope.create_affine_index(expr)
        return _computed(
            scope, op.value, lambda: emit_arith(op, self.get_value(), rhs.get_value())
        )

    def __add__(self, other: Operand) -> IndexExpr:
        return self._binary(other, ArithOp.ADD)

    def __radd__(self, other: Operand) -> IndexExpr:
        return self._binary(other, ArithOp.ADD)

    def __sub__(self, other: Operand) -> IndexExpr:
        return self._binary(other, ArithOp.SUB)

    def __rsub__(self, other: Operand) -> IndexExpr:
        return self._coerce(other)._binary(self, ArithOp.SUB)

    def __mul__(self, other: Operand) -> IndexExpr:
        return self._binary(other, ArithOp.MUL)

    def __rmul__(self, other: Operand) -> IndexExpr:
        return self._binary(other, ArithOp.MUL)

    def floor_div(self, other: Operand) -> IndexExpr:
        return self._binary(other, ArithOp.FLOOR_DIV)

    def ceil_div(self, other: Operand) -> IndexExpr:
        return self._binary(other, ArithOp.CEIL_DIV)

    def __floordiv__(self, other: Operand) -> IndexExpr:
        return self.floor_div(other)

    def __rfloordiv__(self, other: Operand) -> IndexExpr:
        return self._coerce(other).floor_div(self)

    def __mod__(self, other: Operand) -> IndexExpr:
        return self._binary(other, ArithOp.MOD)

    def __rmod__(self, other: Operand) -> IndexExpr:
        return self._coerce(other)._binary(self, ArithOp.MOD)

    # Clamp, select and reductions.

    def clamp(self, min_value: Operand, max_value: Operand) -> IndexExpr:
        """Clips to `[min_value, max_value]`: `max(min_value, min(self, max_value))`."""
        lower = self._coerce(min_value)
        upper = self._coerce(max_value)
        operands = [self, lower, upper]
        if any(e.is_undefined() for e in operands):
            return self.scope.create_undefined_index()
        if all(e.is_literal() for e in operands):
            return self.scope.create_literal_index(
                max(lower.get_literal(), min(self.get_literal(), upper.get_literal()))
            )
        return IndexExpr.max([lower, IndexExpr.min([self, upper])])

    @staticmethod
    def select(
        cond_a: Operand,
        predicate: arith_d.CmpIPredicate,
        cond_b: Operand,
        true_val: Operand,
        false_val: Operand,
    ) -> IndexExpr:
        """`true_val if cond_a <predicate> cond_b else false_val`.

        Literal conditions are decided at compile time and return the chosen
        branch itself, whatever the other branch is.
        """
        anchor = _anchor([cond_a, cond_b, true_val, false_val])
        cond_a, cond_b, true_val, false_val = (
            anchor._coerce(e) for e in (cond_a, cond_b, true_val, false_val)
        )
        scope = anchor.scope
        if cond_a.is_undefined() or cond_b.is_undefined():
            return scope.create_undefined_index()
        if cond_a.is_literal() and cond_b.is_literal():
            taken = evaluate_predicate(
                predicate, cond_a.get_literal(), cond_b.get_literal()
            )
            return true_val if taken else false_val
        if true_val.is_undefined() or false_val.is_undefined():
            return scope.create_undefined_index()
        if (
            true_val.is_literal()
            and false_val.is_literal()
            and true_val.get_literal() == false_val.get_literal()
        ):
            return true_val
        return _computed(
            scope,
            "select",
            lambda: emit_select(
                predicate,
                cond_a.get_value(),
                cond_b.get_value(),
                true_val.get_value(),
                false_val.get_value(),
            ),
        )

    def set_if(
        self,
        cond_a: Operand,
        predicate: arith_d.CmpIPredicate,
        cond_b: Operand,
        true_val: Operand,
    ) -> IndexExpr:
        """Select with this expression as the false branch."""
        return IndexExpr.select(
            self._coerce(cond_a), predicate, cond_b, true_val, self
        )

    @staticmethod
    def min(vals: Sequence[Operand]) -> IndexExpr:
        return _reduce(vals, Reduction.MIN)

    @staticmethod
    def max(vals: Sequence[Operand]) -> IndexExpr:
        return _reduce(vals, Reduction.MAX)

    # Debugging.

    def debug_print(self, msg: str):
        logger.debug("%s: %r", msg, self)

    def __repr__(self):
        if not self.scope.is_open:
            return "IndexExpr(<closed scope>)"
        record = self.record()
        suffix = ", has value" if record.value is not None else ""
        return f"IndexExpr({record.kind}{suffix})"


def _keeps_affine(op: ArithOp, lhs: Kind, rhs: Kind) -> bool:
    match op:
        case ArithOp.ADD | ArithOp.SUB:
            return True
        case ArithOp.MUL:
            return isinstance(lhs, Literal) or isinstance(rhs, Literal)
    # Affine floordiv, ceildiv and mod are only defined for positive constants.
    return isinstance(rhs, Literal) and rhs.value > 0


def _anchor(operands: Sequence[Operand]) -> IndexExpr:
    for operand in operands:
        if isinstance(operand, IndexExpr):
            return operand
    raise ContractViolation("Expected at least one index expression operand")


def _computed(
    scope: IndexExprScope, what: str, build: Callable[[], Value]
) -> IndexExpr:
    if scope.is_shape_inference_pass():
        logger.debug("'%s' needs runtime values: unknown during shape inference", what)
        return scope.create_questionmark_index()
    with scope.emission():
        value = build()
    logger.debug("'%s' lowered to runtime value", what)
    return scope.new_index(COMPUTED, value)


def _reduce(vals: Sequence[Operand], reduction: Reduction) -> IndexExpr:
    if not vals:
        raise ContractViolation(f"Cannot compute the {reduction.value} of an empty list")
    anchor = _anchor(vals)
    exprs = [anchor._coerce(v) for v in vals]
    scope = anchor.scope
    if any(e.is_undefined() for e in exprs):
        return scope.create_undefined_index()
    if all(e.is_literal() for e in exprs):
        fold = min if reduction == Reduction.MIN else max
        return scope.create_literal_index(fold(e.get_literal() for e in exprs))
    if any(e.is_questionmark() for e in exprs):
        return scope.create_questionmark_index()
    if len(exprs) == 1:
        return exprs[0]
    if options.use_affine_min_max and all(e.is_affine() for e in exprs):
        return _computed(
            scope,
            f"affine.{reduction.value}",
            lambda: emit_affine_reduction(
                reduction,
                [e.get_affine_expr() for e in exprs],
                scope.num_dims,
                scope.num_symbols,
                scope.get_dim_and_symbol_list(),
            ),
        )
    return _computed(
        scope,
        reduction.value,
        lambda: emit_reduction(reduction, [e.get_value() for e in exprs]),
    )
