# Copyright 2025 The IREE Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""Scopes owning index expressions.

A scope holds every index expression record created through it, the ordered
tables of dim and symbol atoms its affine formulas range over, and whether
code may be generated (emission) or not (analysis, i.e. shape inference).

Dims are quantities that vary within the scope, typically runtime extents of
the inputs while computing an output shape, or loop induction variables inside
a loop body. Symbols are quantities that are constant within the scope without
being known at compile time, typically values computed before entering a loop.

Scopes nest strictly. A child scope is created for the body of a loop: its
dims are the induction variables and the quantities of the enclosing scope are
brought in as symbols with `create_symbol_index_from_parent_scope`:

    with IndexExprScope(ip, loc) as outer:
        dim = outer.create_dim_index_from_memref(input, input_shape, 0)
        start = outer.create_symbol_index_from_array_at_index(op, starts, 0)
        ...
        with outer.child() as inner:
            iv = inner.create_dim_index(induction_var)
            offset = inner.create_symbol_index_from_parent_scope(start)
            index = (iv * 2 + offset).get_value()
"""

import operator
from contextlib import contextmanager
from enum import Enum, auto
from typing import Iterator, Optional, Sequence

from .._support import context
from .._support.location import default_location
from ..compiler.base import ContractViolation, ValidationError, options
from ..support.ir_imports import (
    AffineConstantExpr,
    AffineDimExpr,
    AffineExpr,
    AffineSymbolExpr,
    Context,
    InsertionPoint,
    Location,
    Operation,
    ShapedType,
    Value,
)
from ..support.logging import get_logger
from .emitter import emit_dim, emit_extract, get_const_array, get_const_val
from .expr import IndexExpr
from .kinds import (
    COMPUTED,
    QUESTIONMARK,
    UNDEFINED,
    Affine,
    Computed,
    IndexExprRecord,
    Kind,
    Literal,
    Origin,
    Questionmark,
    Undefined,
)
from .shape import are_all_affine, are_all_literal, get_output_dims_for_type

logger = get_logger(__name__)

INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1


class ScopeMode(Enum):
    # Shape inference: nothing may be emitted.
    ANALYSIS = auto()
    # Lowering: runtime values are materialized at the insertion point.
    EMISSION = auto()


def _current_mlir_context() -> Optional[Context]:
    try:
        return Context.current
    except ValueError:
        return None


class IndexExprScope:
    """Owns index expression records and the dim/symbol atoms they refer to."""

    are_all_literal = staticmethod(are_all_literal)
    are_all_affine = staticmethod(are_all_affine)
    get_output_dims_for_type = staticmethod(get_output_dims_for_type)

    def __init__(
        self,
        ip: Optional[InsertionPoint] = None,
        loc: Optional[Location] = None,
        *,
        parent: Optional["IndexExprScope"] = None,
    ):
        if parent is not None:
            if ip is not None or loc is not None:
                raise ContractViolation(
                    "A child scope inherits the insertion point and location of its parent"
                )
            parent._check_open()
            ip, loc = parent.ip, parent.loc
            parent._num_children += 1
        elif loc is None:
            if _current_mlir_context() is None:
                raise ContractViolation(
                    "Creating a scope without a location requires an active MLIR context"
                )
            loc = default_location(options.location_capture)

        self.ip = ip
        self.loc = loc
        self.parent = parent
        self.mode = ScopeMode.EMISSION if ip is not None else ScopeMode.ANALYSIS
        self._dims: list[Optional[Value]] = []
        self._symbols: list[Optional[Value]] = []
        self._records: Optional[list[IndexExprRecord]] = []
        self._num_children = 0
        logger.debug("Opened %s scope (child: %s)", self.mode.name, parent is not None)

    @staticmethod
    def current() -> Optional["IndexExprScope"]:
        return context.current(IndexExprScope)

    def child(self) -> "IndexExprScope":
        return IndexExprScope(parent=self)

    def __enter__(self) -> "IndexExprScope":
        context.push(IndexExprScope, self)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        context.pop(IndexExprScope, self)
        if exc_type is None:
            self.close()
        else:
            # Leave the propagating exception alone; open children keep
            # their own records.
            self._release()

    def close(self):
        """Releases every record; all handles into this scope become invalid."""
        if self._records is None:
            return
        if self._num_children:
            raise ContractViolation(
                f"Cannot close a scope while {self._num_children} child scope(s) are open"
            )
        self._release()

    def _release(self):
        if self._records is None:
            return
        logger.debug(
            "Closing %s scope with %d records, %d dims, %d symbols",
            self.mode.name,
            len(self._records),
            len(self._dims),
            len(self._symbols),
        )
        self._records = None
        self._dims.clear()
        self._symbols.clear()
        if self.parent is not None:
            self.parent._num_children -= 1

    @property
    def is_open(self) -> bool:
        return self._records is not None

    @property
    def context(self) -> Context:
        return self.loc.context

    @property
    def num_dims(self) -> int:
        return len(self._dims)

    @property
    def num_symbols(self) -> int:
        return len(self._symbols)

    def is_shape_inference_pass(self) -> bool:
        return self.mode == ScopeMode.ANALYSIS

    def _check_open(self):
        if self._records is None:
            raise ContractViolation("Use of an index expression scope after it was closed")

    def _is_ancestor(self, other: "IndexExprScope") -> bool:
        scope = self.parent
        while scope is not None:
            if scope is other:
                return True
            scope = scope.parent
        return False

    @contextmanager
    def emission(self, loc: Optional[Location] = None) -> Iterator[None]:
        """Enters the insertion point and location; only legal in emission mode."""
        self._check_open()
        if self.mode != ScopeMode.EMISSION:
            raise ContractViolation("No code may be generated during shape inference")
        with self.ip, loc if loc is not None else self.loc:
            yield

    # Arena.

    def record(self, slot: int) -> IndexExprRecord:
        self._check_open()
        return self._records[slot]

    def new_index(self, kind: Kind, value: Optional[Value] = None) -> IndexExpr:
        self._check_open()
        self._records.append(IndexExprRecord(kind, value))
        return IndexExpr(self, len(self._records) - 1)

    # Atoms.

    def _add_atom(self, table: list, value: Optional[Value], what: str) -> int:
        self._check_open()
        if value is None:
            if self.mode == ScopeMode.EMISSION:
                raise ContractViolation(f"A {what} needs a runtime value in emission mode")
        elif options.deduplicate_atoms:
            for position, existing in enumerate(table):
                if existing is not None and existing == value:
                    return position
        table.append(value)
        logger.debug("Registered %s #%d", what, len(table) - 1)
        return len(table) - 1

    def add_dim(self, value: Optional[Value]) -> int:
        return self._add_atom(self._dims, value, "dim")

    def add_symbol(self, value: Optional[Value]) -> int:
        return self._add_atom(self._symbols, value, "symbol")

    def get_dim_and_symbol_list(self) -> list[Optional[Value]]:
        """Dims followed by symbols: the operands of any affine map over this scope."""
        self._check_open()
        return self._dims + self._symbols

    # Builders.

    def _fold_affine(self, expr: AffineExpr, origin: Origin = Origin.NONE) -> Kind:
        if AffineConstantExpr.isinstance(expr):
            return Literal(AffineConstantExpr(expr).value)
        return Affine(expr, origin)

    def create_index(self, other: IndexExpr) -> IndexExpr:
        """Deep copy of `other` into a fresh record of this scope."""
        if other.scope is self:
            return self.new_index(other.kind, other.record().value)
        if self._is_ancestor(other.scope):
            return self.create_symbol_index_from_parent_scope(other)
        raise ContractViolation("Cannot copy an index expression from an unrelated scope")

    def create_undefined_index(self) -> IndexExpr:
        return self.new_index(UNDEFINED)

    def create_questionmark_index(self) -> IndexExpr:
        if self.mode == ScopeMode.EMISSION:
            raise ContractViolation("Questionmark index expressions only exist in analysis mode")
        return self.new_index(QUESTIONMARK)

    def create_literal_index(self, value: int) -> IndexExpr:
        # Rejects floats and other non-integral operands.
        value = operator.index(value)
        if not INT64_MIN <= value <= INT64_MAX:
            raise ContractViolation(f"Literal {value} does not fit in a 64 bit index")
        return self.new_index(Literal(value))

    def create_affine_index(self, expr: AffineExpr) -> IndexExpr:
        return self.new_index(self._fold_affine(expr))

    def create_value_index(self, value: Value) -> IndexExpr:
        literal = get_const_val(value)
        if literal is not None:
            return self.new_index(Literal(literal), value)
        return self.new_index(COMPUTED, value)

    def _create_atom_index(self, value: Optional[Value], origin: Origin) -> IndexExpr:
        if value is not None:
            literal = get_const_val(value)
            if literal is not None:
                return self.new_index(Literal(literal), value)
        if origin == Origin.DIM:
            expr = AffineDimExpr.get(self.add_dim(value), context=self.context)
        else:
            expr = AffineSymbolExpr.get(self.add_symbol(value), context=self.context)
        return self.new_index(Affine(expr, origin), value)

    def create_dim_index(self, value: Value) -> IndexExpr:
        return self._create_atom_index(value, Origin.DIM)

    def create_symbol_index(self, value: Value) -> IndexExpr:
        return self._create_atom_index(value, Origin.SYMBOL)

    def create_dim_index_from_memref(
        self, source: Value, shape: Optional[Sequence[int]], index: int
    ) -> IndexExpr:
        """Extent `index` of a memref or tensor, as a literal when statically known.

        `shape` is the static shape descriptor of `source`, negative entries
        being dynamic; it is read from the type of `source` when omitted. In
        analysis mode a dynamic extent becomes a dim atom without a value.
        """
        if shape is None:
            shape = ShapedType(source.type).shape
        if not 0 <= index < len(shape):
            raise ContractViolation(f"Dimension {index} out of range for rank {len(shape)}")
        extent = shape[index]
        if extent >= 0:
            return self.create_literal_index(extent)
        if self.mode == ScopeMode.ANALYSIS:
            return self._create_atom_index(None, Origin.DIM)
        with self.emission():
            value = emit_dim(source, index)
        return self.create_dim_index(value)

    def create_symbol_index_from_array_at_index(
        self,
        op: Optional[Operation],
        array: Optional[Value],
        index: int,
        default_literal: Optional[int] = None,
    ) -> IndexExpr:
        """Element `index` of a 1-D integer array operand of `op`.

        Constant arrays yield literals. Dynamic arrays are loaded in emission
        mode and unknown in analysis mode. A missing array or an out of bound
        index yields `default_literal` when given, an undefined index otherwise.
        """

        def out_of_bound() -> IndexExpr:
            if default_literal is not None:
                return self.create_literal_index(default_literal)
            return self.create_undefined_index()

        if array is None:
            return out_of_bound()

        elements = get_const_array(array)
        if elements is not None:
            if 0 <= index < len(elements):
                return self.create_literal_index(elements[index])
            return out_of_bound()

        if not ShapedType.isinstance(array.type):
            raise ValidationError(f"Expected a memref or tensor array, got {array.type}")
        shape = ShapedType(array.type).shape
        if len(shape) != 1:
            raise ValidationError(f"Expected a 1-D array, got {array.type}")
        if index < 0 or 0 <= shape[0] <= index:
            return out_of_bound()

        if self.mode == ScopeMode.ANALYSIS:
            return self.create_questionmark_index()
        with self.emission(op.location if op is not None else None):
            value = emit_extract(array, index)
        return self.create_symbol_index(value)

    def create_symbol_index_from_parent_scope(self, parent_expr: IndexExpr) -> IndexExpr:
        """Snapshot of an enclosing scope's expression as a symbol of this scope.

        The record is copied: later changes in the parent are not observed.
        """
        if not self._is_ancestor(parent_expr.scope):
            raise ContractViolation("Expected an index expression of an enclosing scope")
        record = parent_expr.record()
        match record.kind:
            case Undefined() | Questionmark() | Literal():
                return self.new_index(record.kind, record.value)
            case Affine() | Computed():
                value = record.value
                if value is None and self.mode == ScopeMode.EMISSION:
                    value = parent_expr.get_value()
                return self._create_atom_index(value, Origin.SYMBOL)
        raise ContractViolation(f"Unexpected index expression kind {record.kind}")

    def __repr__(self):
        if not self.is_open:
            return "IndexExprScope(<closed>)"
        return (
            f"IndexExprScope({self.mode.name}, dims={len(self._dims)}, "
            f"symbols={len(self._symbols)}, records={len(self._records)})"
        )
