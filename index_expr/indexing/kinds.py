# Copyright 2025 The IREE Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""Representation kinds of an index expression.

An index expression is exactly one of:

* `Undefined`: no data yet, or the result of a soft failure.
* `Questionmark`: analysis only; known not to be a compile time constant.
* `Literal`: a compile time integer.
* `Affine`: an affine formula over the dims and symbols of the owning scope.
* `Computed`: a runtime value without symbolic structure.

Literals are the degenerate case of affine formulas; computed values never
go back to a symbolic form.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Union

from ..support.ir_imports import AffineExpr, Value


class Origin(Enum):
    """Whether an affine formula is, or was built from, a dim or a symbol atom."""

    NONE = auto()
    DIM = auto()
    SYMBOL = auto()


@dataclass(frozen=True, slots=True)
class Undefined:
    def __str__(self):
        return "undefined"


@dataclass(frozen=True, slots=True)
class Questionmark:
    def __str__(self):
        return "?"


@dataclass(frozen=True, slots=True)
class Literal:
    value: int

    def __str__(self):
        return f"literal({self.value})"


@dataclass(frozen=True, slots=True)
class Affine:
    expr: AffineExpr
    origin: Origin = Origin.NONE

    def __str__(self):
        if self.origin == Origin.NONE:
            return f"affine({self.expr})"
        return f"affine({self.expr}, {self.origin.name.lower()})"


@dataclass(frozen=True, slots=True)
class Computed:
    def __str__(self):
        return "value"


Kind = Union[Undefined, Questionmark, Literal, Affine, Computed]

UNDEFINED = Undefined()
QUESTIONMARK = Questionmark()
COMPUTED = Computed()


@dataclass(slots=True)
class IndexExprRecord:
    """Arena slot owned by a scope: a kind plus the materialized value, if any."""

    kind: Kind
    value: Optional[Value] = None
