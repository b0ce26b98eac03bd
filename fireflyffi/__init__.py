#!/usr/bin/env python3
"""
FireflyFFI - Foreign-function runtime for Firefly native bindings

Runtime support for Python bindings generated from an interface definition
shared with a native library, so that both sides agree on every byte that
crosses the boundary.

Key Features:
- Compact big-endian binary codec for scalars, strings, records, unions and errors
- Explicit ownership of native buffers, released exactly once
- Call envelope that separates declared errors from native faults
- Borrow-counted lifetime management for native objects
- Handle-based callback interfaces dispatched from native threads
- Startup contract verification against version and checksum manifests

Usage:
    import ctypes
    from fireflyffi import ContractManifest, FfiRuntime, String

    runtime = FfiRuntime(ctypes.CDLL("libwallet.so"), ContractManifest.from_file("contract.yaml"))
    with runtime:
        envelope = runtime.envelope
        ...

Copyright (c) 2025 Firefly Software Solutions Inc.

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at:

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""

__version__ = "1.0.0"
__author__ = "Firefly Software Solutions Inc"
__license__ = "Apache 2.0"

# Errors
from .errors import (
    BorrowSaturatedError,
    BufferReleasedError,
    BufferUnderflowError,
    ChecksumMismatchError,
    ContractError,
    ContractVersionMismatch,
    FaultWhileHandlingFault,
    FfiError,
    InternalError,
    InvalidDiscriminantError,
    InvalidValueError,
    MissingSymbolError,
    NativePanic,
    TrailingBytesError,
    UnknownHandleError,
    UnknownStatusCodeError,
    UseAfterDestroyError,
)

# Codec
from .codec import (
    Boolean,
    ByteReader,
    Bytes,
    ByteWriter,
    Duration,
    EnumConverter,
    ErrorConverter,
    FfiConverter,
    Float32,
    Float64,
    Int8,
    Int16,
    Int32,
    Int64,
    MapConverter,
    OptionalConverter,
    RecordConverter,
    SequenceConverter,
    String,
    Timestamp,
    UInt8,
    UInt16,
    UInt32,
    UInt64,
    UnionConverter,
    Variant,
)

# Native boundary
from .native import (
    BufferAllocator,
    CallEnvelope,
    CallStatusCode,
    Err,
    NativeBuffer,
    NativeBufferAllocator,
    Ok,
    RustBuffer,
    RustCallStatus,
    check_call_status,
    lift_buffer,
    lower_buffer,
)

# Objects and callbacks
from .objects import ForeignObject, ForeignObjectHandle, ObjectConverter, ObjectType
from .callbacks import (
    CallbackDispatcher,
    CallbackInterface,
    CallbackInterfaceConverter,
    CallbackMethod,
    HandleMap,
)

# Contract and runtime
from .contract import ContractManifest, ContractReport, verify_contract
from .runtime import FfiRuntime

# Configuration
from .config.runtime_config import (
    CallbackConfig,
    ConfigurationManager,
    ContractConfig,
    LoggingConfig,
    RuntimeConfig,
)

__all__ = [
    # Version info
    "__version__",
    "__author__",
    "__license__",
    # Runtime
    "FfiRuntime",
    "ContractManifest",
    "ContractReport",
    "verify_contract",
    # Errors
    "FfiError",
    "InternalError",
    "NativePanic",
    "FaultWhileHandlingFault",
    "BufferUnderflowError",
    "TrailingBytesError",
    "InvalidDiscriminantError",
    "InvalidValueError",
    "UnknownStatusCodeError",
    "UnknownHandleError",
    "UseAfterDestroyError",
    "BorrowSaturatedError",
    "BufferReleasedError",
    "ContractError",
    "ContractVersionMismatch",
    "ChecksumMismatchError",
    "MissingSymbolError",
    # Codec
    "FfiConverter",
    "ByteReader",
    "ByteWriter",
    "Int8",
    "Int16",
    "Int32",
    "Int64",
    "UInt8",
    "UInt16",
    "UInt32",
    "UInt64",
    "Float32",
    "Float64",
    "Boolean",
    "String",
    "Bytes",
    "Timestamp",
    "Duration",
    "OptionalConverter",
    "SequenceConverter",
    "MapConverter",
    "RecordConverter",
    "EnumConverter",
    "UnionConverter",
    "Variant",
    "ErrorConverter",
    # Native boundary
    "RustBuffer",
    "RustCallStatus",
    "CallStatusCode",
    "BufferAllocator",
    "NativeBufferAllocator",
    "NativeBuffer",
    "CallEnvelope",
    "Ok",
    "Err",
    "check_call_status",
    "lift_buffer",
    "lower_buffer",
    # Objects and callbacks
    "ForeignObject",
    "ForeignObjectHandle",
    "ObjectType",
    "ObjectConverter",
    "HandleMap",
    "CallbackMethod",
    "CallbackInterface",
    "CallbackDispatcher",
    "CallbackInterfaceConverter",
    # Configuration
    "RuntimeConfig",
    "ContractConfig",
    "CallbackConfig",
    "LoggingConfig",
    "ConfigurationManager",
]
