# Copyright 2025 The IREE Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

import dataclasses

import pytest

from index_expr import IndexExprScope, options
from index_expr._support import context


@pytest.fixture(scope="function", autouse=True)
def restore_options():
    saved = dataclasses.replace(options)
    yield
    for field in dataclasses.fields(options):
        setattr(options, field.name, getattr(saved, field.name))


@pytest.fixture(scope="function", autouse=True)
def check_scope_stack():
    yield
    leaked = context.depth(IndexExprScope)
    while context.depth(IndexExprScope):
        context.pop(IndexExprScope)
    assert leaked == 0, f"{leaked} index expression scope(s) left on the stack"
