# Copyright 2025 The IREE Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

from dataclasses import dataclass, field
import os

from ..support.debugging import flags
from .._support.location_config import LocationCaptureConfig

NDEBUG = not flags.asserts


class CodegenError(Exception): ...


class ValidationError(CodegenError): ...


class ContractViolation(ValidationError):
    """Misuse of the index expression API; not a user-facing diagnostic."""


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().upper() not in ["FALSE", "OFF", "NO", "0"]


@dataclass
class IndexExprOptions:
    """Configuration options for index expression construction and emission."""

    # Reuse the slot of an already registered runtime value in the dim and
    # symbol tables instead of appending a new one.
    deduplicate_atoms: bool = True
    # Emit a single affine.min/affine.max for reductions over affine operands
    # instead of chained arith.minsi/arith.maxsi.
    use_affine_min_max: bool = field(
        default_factory=lambda: _env_flag("INDEX_EXPR_USE_AFFINE_MIN_MAX", True)
    )
    # Location recorded on root scopes created without an explicit location.
    location_capture: LocationCaptureConfig = field(
        default_factory=LocationCaptureConfig
    )


options = IndexExprOptions()
