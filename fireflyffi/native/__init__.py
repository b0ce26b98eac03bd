"""
Native boundary: ctypes structures, buffer ownership and the call envelope.

Architecture:
    Python caller
         │  lower (codec) ─> RustBuffer ──────────┐
         │                                        ▼
         ├─> CallEnvelope ──> native fn(args..., RustCallStatus*)
         │                                        │
         │  lift (codec) <─ NativeBuffer <────────┘
         ▼
    value / FfiError / NativePanic

Copyright (c) 2025 Firefly Software Solutions Inc.
Licensed under the Apache License, Version 2.0 (the "License");
"""

from .buffer import (
    BufferAllocator,
    NativeBuffer,
    NativeBufferAllocator,
    lift_buffer,
    lift_message,
    lower_buffer,
)
from .call import CallEnvelope, CallOutcome, Err, Ok, check_call_status
from .structures import CallStatusCode, ForeignBytes, RustBuffer, RustCallStatus

__all__ = [
    # Structures
    "RustBuffer",
    "ForeignBytes",
    "RustCallStatus",
    "CallStatusCode",
    # Buffers
    "BufferAllocator",
    "NativeBufferAllocator",
    "NativeBuffer",
    "lift_buffer",
    "lower_buffer",
    "lift_message",
    # Calls
    "CallEnvelope",
    "CallOutcome",
    "Ok",
    "Err",
    "check_call_status",
]
