# Copyright 2025 The IREE Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""Locations of the Python code that creates a root scope."""

from typing import Optional
import inspect
import os
import sys

from ..support.ir_imports import Location
from .location_config import LocationCaptureConfig, LocationCaptureLevel

# Frames from files below this directory belong to index_expr itself.
PACKAGE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def is_package_frame(frame: inspect.FrameInfo) -> bool:
    return os.path.abspath(frame.filename).startswith(PACKAGE_DIR + os.sep)


def frame_location(frame: inspect.FrameInfo) -> Location:
    """File location of a frame, as a line/column range when Python has one."""
    positions = frame.positions if sys.version_info >= (3, 11) else None
    if (
        positions is None
        or positions.lineno is None
        or positions.col_offset is None
    ):
        return Location.file(frame.filename, frame.lineno, 0)
    return Location.file(
        frame.filename,
        positions.lineno,
        positions.col_offset,
        positions.end_lineno or positions.lineno,
        positions.end_col_offset or positions.col_offset,
    )


def call_stack(include_package_frames: bool) -> list[inspect.FrameInfo]:
    """Frames of the current call stack, innermost first."""
    # Skip the frame of this function.
    frames = inspect.stack(context=0)[1:]
    if include_package_frames:
        return frames
    return [f for f in frames if not is_package_frame(f)]


def capture_location(config: Optional[LocationCaptureConfig]) -> Optional[Location]:
    level = config.level if config is not None else LocationCaptureLevel.NONE
    match level:
        case LocationCaptureLevel.NONE:
            return None
        case LocationCaptureLevel.FILE_LINE_COL:
            frames = call_stack(include_package_frames=False)
            return frame_location(frames[0]) if frames else None
        case LocationCaptureLevel.STACK_TRACE:
            frames = call_stack(include_package_frames=False)
        case LocationCaptureLevel.STACK_TRACE_WITH_SYSTEM:
            frames = call_stack(include_package_frames=True)
    if not frames:
        return None
    if len(frames) == 1:
        return frame_location(frames[0])
    return Location.callsite(
        frame_location(frames[0]), [frame_location(f) for f in frames[1:]]
    )


def default_location(config: Optional[LocationCaptureConfig]) -> Location:
    """Location for a scope created without one, under the current MLIR context."""
    loc = capture_location(config)
    return loc if loc is not None else Location.unknown()
