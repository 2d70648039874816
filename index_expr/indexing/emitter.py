# Copyright 2025 The IREE Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""IR emission for index computations that leave the literal/affine tiers.

Every function here creates operations at the current insertion point and
location; callers are responsible for entering them.
"""

from enum import Enum
from typing import Optional, Sequence

from ..compiler.base import ValidationError
from ..support.ir_imports import (
    AffineExpr,
    AffineMap,
    AffineMapAttr,
    DenseIntElementsAttr,
    IndexType,
    IntegerAttr,
    IntegerType,
    MemRefType,
    OpResult,
    Operation,
    RankedTensorType,
    Value,
    affine_d,
    arith_d,
    memref_d,
    tensor_d,
)


class ArithOp(Enum):
    ADD = "+"
    SUB = "-"
    MUL = "*"
    FLOOR_DIV = "floordiv"
    CEIL_DIV = "ceildiv"
    MOD = "%"


class Reduction(Enum):
    MIN = "min"
    MAX = "max"


def constant_index(value: int) -> Value:
    return arith_d.constant(IndexType.get(), value)


def _defining_op(value: Value) -> Optional[Operation]:
    if not OpResult.isinstance(value):
        return None
    return OpResult(value).owner.operation


def get_const_val(value: Value) -> Optional[int]:
    """Returns the integer produced by an `arith.constant`, if that is the producer."""
    op = _defining_op(value)
    if op is None or op.name != "arith.constant":
        return None
    attr = op.attributes["value"]
    if IntegerAttr.isinstance(attr):
        return IntegerAttr(attr).value
    return None


def get_const_array(value: Value) -> Optional[list[int]]:
    """Returns the elements of a constant integer aggregate, if that is the producer."""
    op = _defining_op(value)
    if op is None or op.name != "arith.constant":
        return None
    attr = op.attributes["value"]
    if not DenseIntElementsAttr.isinstance(attr):
        return None
    elements = DenseIntElementsAttr(attr)
    return [int(elements[i]) for i in range(len(elements))]


def apply_affine(
    expr: AffineExpr, num_dims: int, num_symbols: int, operands: Sequence[Value]
) -> Value:
    affine_map = AffineMap.get(num_dims, num_symbols, [expr])
    return affine_d.apply(affine_map, list(operands))


def emit_arith(op: ArithOp, lhs: Value, rhs: Value) -> Value:
    match op:
        case ArithOp.ADD:
            return arith_d.addi(lhs, rhs)
        case ArithOp.SUB:
            return arith_d.subi(lhs, rhs)
        case ArithOp.MUL:
            return arith_d.muli(lhs, rhs)
        case ArithOp.FLOOR_DIV:
            return arith_d.floordivsi(lhs, rhs)
        case ArithOp.CEIL_DIV:
            return arith_d.ceildivsi(lhs, rhs)
        case ArithOp.MOD:
            # remsi truncates; rebuild the remainder from floordivsi so that
            # its sign follows the divisor.
            quotient = arith_d.floordivsi(lhs, rhs)
            return arith_d.subi(lhs, arith_d.muli(quotient, rhs))
    raise ValidationError(f"Unsupported arithmetic op {op}")


def emit_select(
    predicate: arith_d.CmpIPredicate,
    cond_a: Value,
    cond_b: Value,
    true_val: Value,
    false_val: Value,
) -> Value:
    cmp = arith_d.cmpi(predicate, cond_a, cond_b)
    return arith_d.select(cmp, true_val, false_val)


def emit_affine_reduction(
    reduction: Reduction,
    exprs: Sequence[AffineExpr],
    num_dims: int,
    num_symbols: int,
    operands: Sequence[Value],
) -> Value:
    affine_map = AffineMap.get(num_dims, num_symbols, list(exprs))
    return Operation.create(
        f"affine.{reduction.value}",
        results=[IndexType.get()],
        operands=list(operands),
        attributes={"map": AffineMapAttr.get(affine_map)},
    ).result


def emit_reduction(reduction: Reduction, values: Sequence[Value]) -> Value:
    assert len(values) > 0
    combine = arith_d.minsi if reduction == Reduction.MIN else arith_d.maxsi
    result = values[0]
    for value in values[1:]:
        result = combine(result, value)
    return result


def emit_dim(source: Value, index: int) -> Value:
    if MemRefType.isinstance(source.type):
        return memref_d.dim(source, constant_index(index))
    if RankedTensorType.isinstance(source.type):
        return tensor_d.dim(source, constant_index(index))
    raise ValidationError(f"Cannot query the extent of non-shaped value {source}")


def emit_extract(array: Value, index: int) -> Value:
    """Loads `array[index]` from a 1-D memref or tensor and casts it to index."""
    indices = [constant_index(index)]
    if MemRefType.isinstance(array.type):
        element = memref_d.load(array, indices)
    elif RankedTensorType.isinstance(array.type):
        element = tensor_d.extract(array, indices)
    else:
        raise ValidationError(f"Cannot load an element of non-shaped value {array}")

    if IndexType.isinstance(element.type):
        return element
    if IntegerType.isinstance(element.type):
        return arith_d.index_cast(IndexType.get(), element)
    raise ValidationError(f"Expected an integer element type, got {element.type}")
