# Copyright 2025 The IREE Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""Lowering: scopes with an insertion point materialize runtime values."""

import logging
import unittest

from index_expr import (
    CmpIPredicate,
    ContractViolation,
    IndexExpr,
    IndexExprScope,
    ScopeMode,
    options,
)
from index_expr.support.ir_imports import (
    Context,
    IndexType,
    IntegerType,
    Location,
    MemRefType,
    RankedTensorType,
    ShapedType,
    arith_d,
)
from index_expr.testing import FunctionBuilder


class EmissionTestBase(unittest.TestCase):
    def setUp(self):
        self.context = Context()
        self.context.__enter__()
        self.addCleanup(self.context.__exit__, None, None, None)
        self.location = Location.unknown()
        self.location.__enter__()
        self.addCleanup(self.location.__exit__, None, None, None)
        dynamic = ShapedType.get_dynamic_size()
        i64 = IntegerType.get_signless(64)
        self.builder = FunctionBuilder(
            [
                MemRefType.get([dynamic, 4], IndexType.get()),
                IndexType.get(),
                IndexType.get(),
                MemRefType.get([3], i64),
                RankedTensorType.get([dynamic], i64),
            ]
        )
        (
            self.memref,
            self.x_arg,
            self.y_arg,
            self.memref_array,
            self.tensor_array,
        ) = self.builder.arguments
        self.scope = IndexExprScope(self.builder.ip, self.builder.loc)
        self.addCleanup(self.scope.close)
        self.dim = self.scope.create_dim_index_from_memref(self.memref, None, 0)
        self.x = self.scope.create_symbol_index(self.x_arg)

    def assertEmitted(self, *names: str):
        emitted = self.builder.op_names()
        for name in names:
            self.assertIn(name, emitted, str(self.builder))

    def assertVerifies(self):
        self.assertTrue(self.builder.verify(), str(self.builder))


class EmissionModeTest(EmissionTestBase):
    def testMode(self):
        self.assertEqual(self.scope.mode, ScopeMode.EMISSION)
        self.assertFalse(self.scope.is_shape_inference_pass())

    def testDynamicExtent(self):
        self.assertTrue(self.dim.is_dim())
        self.assertTrue(self.dim.has_value())
        self.assertEqual(
            self.builder.op_names(), ["arith.constant", "memref.dim", "func.return"]
        )
        extent = self.scope.create_dim_index_from_memref(self.memref, None, 1)
        self.assertEqual(extent.get_literal(), 4)
        self.assertVerifies()

    def testQuestionmarkIsRejected(self):
        with self.assertRaises(ContractViolation):
            self.scope.create_questionmark_index()

    def testLiteralValueIsCached(self):
        five = self.scope.create_literal_index(5)
        value = five.get_value()
        count = len(self.builder.op_names())
        self.assertEqual(five.get_value(), value)
        self.assertEqual(len(self.builder.op_names()), count)
        self.assertTrue(five.has_value())

    def testAtomsAreDeduplicated(self):
        self.scope.create_dim_index(self.y_arg)
        self.scope.create_dim_index(self.y_arg)
        self.assertEqual(self.scope.num_dims, 2)
        self.assertEqual(
            self.scope.get_dim_and_symbol_list()[1:], [self.y_arg, self.x_arg]
        )

    def testAtomsAreNotDeduplicatedWhenDisabled(self):
        options.deduplicate_atoms = False
        self.scope.create_symbol_index(self.x_arg)
        self.assertEqual(self.scope.num_symbols, 2)


class EmissionArithmeticTest(EmissionTestBase):
    def testAffineApply(self):
        index = self.dim * 2 + self.x
        self.assertEqual(str(index.get_affine_expr()), "d0 * 2 + s0")
        self.assertFalse(index.has_value())
        index.get_value()
        self.assertTrue(index.has_value())
        self.assertEmitted("affine.apply")
        self.assertVerifies()

    def testValueTierProduct(self):
        product = self.dim * self.x
        self.assertFalse(product.is_affine())
        self.assertTrue(product.has_value())
        self.assertEmitted("arith.muli")
        self.assertVerifies()

    def testValueTierDivisions(self):
        self.dim.floor_div(self.x)
        self.dim.ceil_div(self.x)
        self.assertEmitted("arith.floordivsi", "arith.ceildivsi")
        self.assertVerifies()

    def testValueTierModulo(self):
        remainder = self.dim % self.x
        self.assertTrue(remainder.has_value())
        self.assertEmitted("arith.floordivsi", "arith.muli", "arith.subi")
        self.assertVerifies()

    def testComputedStaysComputed(self):
        product = self.dim * self.x
        total = product + 1
        self.assertFalse(total.is_affine())
        self.assertEmitted("arith.addi")
        self.assertVerifies()

    def testSelect(self):
        result = IndexExpr.select(self.x, CmpIPredicate.slt, 0, self.dim, self.x)
        self.assertTrue(result.has_value())
        self.assertEmitted("arith.cmpi", "arith.select")
        self.assertVerifies()

    def testAffineMinMax(self):
        IndexExpr.max([self.dim, self.x, 3])
        IndexExpr.min([self.dim, self.x])
        self.assertEmitted("affine.max", "affine.min")
        self.assertVerifies()

    def testArithMinMax(self):
        options.use_affine_min_max = False
        IndexExpr.max([self.dim, self.x, 3])
        IndexExpr.min([self.dim, self.x])
        emitted = self.builder.op_names()
        self.assertEqual(emitted.count("arith.maxsi"), 2)
        self.assertEqual(emitted.count("arith.minsi"), 1)
        self.assertNotIn("affine.max", emitted)
        self.assertVerifies()

    def testClamp(self):
        clamped = self.x.clamp(0, self.dim)
        self.assertTrue(clamped.has_value())
        self.assertEmitted("affine.min", "arith.maxsi")
        self.assertVerifies()


class EmissionArrayTest(EmissionTestBase):
    def testLoadFromMemref(self):
        element = self.scope.create_symbol_index_from_array_at_index(
            None, self.memref_array, 1
        )
        self.assertTrue(element.is_symbol())
        self.assertTrue(element.has_value())
        self.assertEmitted("memref.load", "arith.index_cast")
        self.assertVerifies()

    def testExtractFromTensor(self):
        element = self.scope.create_symbol_index_from_array_at_index(
            None, self.tensor_array, 5
        )
        self.assertTrue(element.is_symbol())
        self.assertEmitted("tensor.extract", "arith.index_cast")
        self.assertVerifies()

    def testOutOfBound(self):
        scope = self.scope
        self.assertTrue(
            scope.create_symbol_index_from_array_at_index(
                None, self.memref_array, 3
            ).is_undefined()
        )
        self.assertEqual(
            scope.create_symbol_index_from_array_at_index(
                None, self.memref_array, 3, default_literal=1
            ).get_literal(),
            1,
        )
        self.assertNotIn("memref.load", self.builder.op_names())


class EmissionChildScopeTest(EmissionTestBase):
    def testLoopBody(self):
        start = self.x * 2
        with self.scope.child() as inner:
            self.assertEqual(inner.mode, ScopeMode.EMISSION)
            iv = inner.create_dim_index(self.y_arg)
            offset = inner.create_symbol_index_from_parent_scope(start)
            self.assertTrue(offset.is_symbol())
            self.assertTrue(offset.has_value())
            index = iv + offset
            self.assertEqual(str(index.get_affine_expr()), "d0 + s0")
            index.get_value()
        self.assertTrue(start.has_value())
        self.assertEqual(self.builder.op_names().count("affine.apply"), 2)
        self.assertVerifies()

    def testSliceStart(self):
        # Normalizes a possibly negative start index and clips it to the extent.
        with self.scope.child() as inner:
            dim = inner.create_symbol_index_from_parent_scope(self.dim)
            start = inner.create_symbol_index(self.y_arg)
            normalized = IndexExpr.select(
                start, CmpIPredicate.slt, 0, start + dim, start
            )
            final = normalized.clamp(0, dim)
            self.assertTrue(final.has_value())
        self.assertVerifies()

    def testConstantIsLiteral(self):
        with self.builder.ip, self.builder.loc:
            seven = arith_d.constant(IndexType.get(), 7)
        index = self.scope.create_symbol_index(seven)
        self.assertEqual(index.get_literal(), 7)
        self.assertEqual(index.get_value(), seven)


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)
    unittest.main()
