"""
Binary codec for values crossing the FFI boundary.

Wire format:
- fixed-width scalars are big-endian
- strings and byte sequences carry an i32 length prefix (UTF-8 for strings)
- optionals carry a u8 presence flag
- sequences and maps carry an i32 element count
- records are their fields concatenated in declared order
- tagged unions carry an i32 1-based discriminant followed by the payload

Copyright (c) 2025 Firefly Software Solutions Inc.
Licensed under the Apache License, Version 2.0 (the "License");
"""

from .compound import (
    EnumConverter,
    ErrorConverter,
    MapConverter,
    OptionalConverter,
    RecordConverter,
    SequenceConverter,
    UnionConverter,
    Variant,
)
from .converter import FfiConverter
from .primitives import (
    Boolean,
    Bytes,
    Duration,
    Float32,
    Float64,
    Int8,
    Int16,
    Int32,
    Int64,
    String,
    Timestamp,
    UInt8,
    UInt16,
    UInt32,
    UInt64,
)
from .stream import ByteReader, ByteWriter

__all__ = [
    "ByteReader",
    "ByteWriter",
    "FfiConverter",
    # Primitives
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
    # Compound types
    "OptionalConverter",
    "SequenceConverter",
    "MapConverter",
    "RecordConverter",
    "EnumConverter",
    "UnionConverter",
    "Variant",
    "ErrorConverter",
]
