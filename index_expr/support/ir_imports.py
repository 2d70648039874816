# Copyright 2025 The IREE Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""Unifies all imports of iree.compiler.ir into one place."""

from iree.compiler.ir import (
    AffineConstantExpr,
    AffineDimExpr,
    AffineExpr,
    AffineMap,
    AffineMapAttr,
    AffineSymbolExpr,
    Attribute,
    Block,
    BlockArgument,
    Context,
    DenseElementsAttr,
    DenseIntElementsAttr,
    FunctionType,
    IndexType,
    InsertionPoint,
    IntegerAttr,
    IntegerType,
    Location,
    MLIRError,
    MemRefType,
    Module,
    OpResult,
    OpView,
    Operation,
    RankedTensorType,
    ShapedType,
    Type as IrType,
    Value,
)

from iree.compiler.dialects import (
    affine as affine_d,
    arith as arith_d,
    func as func_d,
    memref as memref_d,
    tensor as tensor_d,
)
