# Copyright 2025 The IREE Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""Thread-local stacks of context objects, keyed by type."""

from typing import Callable, Optional, Type, TypeVar

import threading

_tls = threading.local()

T = TypeVar("T")


def _get_typed_stack(context_type: type) -> list:
    try:
        stack = _tls.stack
    except AttributeError:
        stack = _tls.stack = {}
    try:
        return stack[context_type]
    except KeyError:
        typed_stack = stack[context_type] = []
        return typed_stack


def push(context_type: Type[T], instance: T) -> T:
    typed_stack = _get_typed_stack(context_type)
    typed_stack.append(instance)
    return instance


def pop(context_type: Type[T], expected: Optional[T] = None):
    typed_stack = _get_typed_stack(context_type)
    if not typed_stack:
        raise IndexError(f"Unbalanced context pop of {context_type.__name__}")
    top = typed_stack.pop()
    if expected is not None and top is not expected:
        raise RuntimeError(
            f"Unbalanced context pop of {context_type.__name__}: "
            f"expected {expected!r}, got {top!r}"
        )


def current(
    context_type: Type[T], create_callback: Optional[Callable[[], T]] = None
) -> Optional[T]:
    typed_stack = _get_typed_stack(context_type)
    if typed_stack:
        return typed_stack[-1]
    if create_callback is not None:
        return push(context_type, create_callback())
    return None


def depth(context_type: type) -> int:
    return len(_get_typed_stack(context_type))
