# Copyright 2025 The IREE Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

from __future__ import annotations

from typing import Iterable, TYPE_CHECKING

if TYPE_CHECKING:
    from .expr import IndexExpr

# Extent of a result dimension that is not known at compile time.
DYNAMIC_DIM = -1


def are_all_literal(exprs: Iterable[IndexExpr]) -> bool:
    return all(e.is_literal() for e in exprs)


def are_all_affine(exprs: Iterable[IndexExpr]) -> bool:
    return all(e.is_affine() for e in exprs)


def get_output_dims_for_type(exprs: Iterable[IndexExpr]) -> list[int]:
    """Static shape of a result type: literal extents, `DYNAMIC_DIM` elsewhere."""
    return [e.get_literal() if e.is_literal() else DYNAMIC_DIM for e in exprs]
