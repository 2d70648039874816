# Copyright 2025 The IREE Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

from .kinds import (
    Affine,
    Computed,
    IndexExprRecord,
    Kind,
    Literal,
    Origin,
    Questionmark,
    Undefined,
)
from .expr import IndexExpr
from .scope import IndexExprScope, ScopeMode
from .shape import (
    DYNAMIC_DIM,
    are_all_affine,
    are_all_literal,
    get_output_dims_for_type,
)
