"""
ctypes structures mirroring the C ABI of the native library.

    struct RustBuffer      { uint64_t capacity; uint64_t len; uint8_t *data; };
    struct ForeignBytes    { int32_t len; const uint8_t *data; };
    struct RustCallStatus  { int8_t code; RustBuffer error_buf; };
"""

"""
Copyright (c) 2025 Firefly Software Solutions Inc.
Licensed under the Apache License, Version 2.0.
"""

import ctypes
from enum import IntEnum


class RustBuffer(ctypes.Structure):
    """Native-allocated byte region; freed only by the native allocator."""

    _fields_ = [
        ("capacity", ctypes.c_uint64),
        ("len", ctypes.c_uint64),
        ("data", ctypes.POINTER(ctypes.c_uint8)),
    ]

    @property
    def address(self) -> int:
        return ctypes.cast(self.data, ctypes.c_void_p).value or 0

    def is_empty(self) -> bool:
        return self.len == 0 or not self.data

    def __repr__(self) -> str:
        return f"RustBuffer(capacity={self.capacity}, len={self.len}, data=0x{self.address:x})"


class ForeignBytes(ctypes.Structure):
    """Borrowed view of managed memory handed to the native side for copying."""

    _fields_ = [
        ("len", ctypes.c_int32),
        ("data", ctypes.POINTER(ctypes.c_uint8)),
    ]


class RustCallStatus(ctypes.Structure):
    """Out-parameter every native entry point writes its outcome into."""

    _fields_ = [
        ("code", ctypes.c_int8),
        ("error_buf", RustBuffer),
    ]

    def __repr__(self) -> str:
        return f"RustCallStatus(code={self.code}, error_buf={self.error_buf!r})"


class CallStatusCode(IntEnum):
    SUCCESS = 0
    ERROR = 1
    UNEXPECTED_ERROR = 2


RustCallStatusPtr = ctypes.POINTER(RustCallStatus)
RustBufferPtr = ctypes.POINTER(RustBuffer)
