# Copyright 2025 The IREE Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""Symbolic index expressions shared by shape inference and lowering."""

from .compiler.base import (
    CodegenError,
    ContractViolation,
    IndexExprOptions,
    ValidationError,
    options,
)
from .indexing import *
from .support.ir_imports import arith_d

CmpIPredicate = arith_d.CmpIPredicate
