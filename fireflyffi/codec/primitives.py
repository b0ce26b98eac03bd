"""
Scalar, string, byte-sequence and time converters.

Module-level singletons (Int32, String, ...) are the converters bindings
reference; the classes are exported for completeness.
"""

"""
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

import math
import struct
from datetime import datetime, timedelta, timezone
from typing import Any

from ..errors import InvalidValueError
from .converter import FfiConverter
from .stream import F32, F64, I8, I16, I32, I64, U8, U16, U32, U64, ByteReader, ByteWriter

MAX_LENGTH = 2**31 - 1
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def read_length(reader: ByteReader, type_name: str) -> int:
    """Read a signed 32-bit length or count prefix."""
    length = reader.read_one(I32)
    if length < 0:
        raise InvalidValueError(f"negative length {length} while reading {type_name}")
    return length


def check_length(length: int, type_name: str) -> None:
    if length > MAX_LENGTH:
        raise ValueError(f"{type_name} of length {length} exceeds the 32-bit length prefix")


class IntegerConverter(FfiConverter):
    def __init__(self, type_name: str, layout: struct.Struct, minimum: int, maximum: int):
        self.type_name = type_name
        self.layout = layout
        self.min_width = layout.size
        self.minimum = minimum
        self.maximum = maximum

    def check_lower(self, value: Any) -> None:
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeError(f"{self.type_name} expects an int, got {type(value).__name__}")
        if not self.minimum <= value <= self.maximum:
            raise ValueError(
                f"{value} is out of range for {self.type_name} "
                f"[{self.minimum}, {self.maximum}]"
            )

    def read(self, reader: ByteReader) -> int:
        return reader.read_one(self.layout)

    def write(self, value: int, writer: ByteWriter) -> None:
        writer.write_struct(self.layout, value)


class FloatConverter(FfiConverter):
    def __init__(self, type_name: str, layout: struct.Struct):
        self.type_name = type_name
        self.layout = layout
        self.min_width = layout.size

    def check_lower(self, value: Any) -> None:
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            raise TypeError(f"{self.type_name} expects a float, got {type(value).__name__}")
        if self.layout is F32 and math.isfinite(value):
            try:
                self.layout.pack(value)
            except OverflowError as e:
                raise ValueError(f"{value} is out of range for {self.type_name}") from e

    def read(self, reader: ByteReader) -> float:
        return reader.read_one(self.layout)

    def write(self, value: float, writer: ByteWriter) -> None:
        writer.write_struct(self.layout, value)


class BooleanConverter(FfiConverter):
    type_name = "Boolean"
    min_width = 1

    def check_lower(self, value: Any) -> None:
        if not isinstance(value, bool):
            raise TypeError(f"Boolean expects a bool, got {type(value).__name__}")

    def read(self, reader: ByteReader) -> bool:
        byte = reader.read_one(I8)
        if byte not in (0, 1):
            raise InvalidValueError(f"unexpected byte {byte} for Boolean")
        return byte == 1

    def write(self, value: bool, writer: ByteWriter) -> None:
        writer.write_struct(I8, 1 if value else 0)

    def lower(self, value: Any) -> int:
        self.check_lower(value)
        return 1 if value else 0

    def lift(self, value: Any) -> bool:
        if value not in (0, 1):
            raise InvalidValueError(f"unexpected value {value} for Boolean")
        return value == 1


class StringConverter(FfiConverter):
    type_name = "String"
    min_width = 4

    def check_lower(self, value: Any) -> None:
        if not isinstance(value, str):
            raise TypeError(f"String expects a str, got {type(value).__name__}")
        # UTF-8 never takes fewer bytes than code points, so this only
        # short-circuits the obvious cases; write() re-checks the byte length.
        check_length(len(value), self.type_name)

    def read(self, reader: ByteReader) -> str:
        length = read_length(reader, self.type_name)
        raw = reader.read(length)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidValueError(f"invalid UTF-8 in String: {e}") from e

    def write(self, value: str, writer: ByteWriter) -> None:
        encoded = value.encode("utf-8")
        check_length(len(encoded), self.type_name)
        writer.write_struct(I32, len(encoded))
        writer.write(encoded)


class BytesConverter(FfiConverter):
    type_name = "Bytes"
    min_width = 4

    def check_lower(self, value: Any) -> None:
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise TypeError(f"Bytes expects a bytes-like object, got {type(value).__name__}")
        check_length(len(value), self.type_name)

    def read(self, reader: ByteReader) -> bytes:
        length = read_length(reader, self.type_name)
        return reader.read(length)

    def write(self, value: bytes, writer: ByteWriter) -> None:
        writer.write_struct(I32, len(value))
        writer.write(value)


class TimestampConverter(FfiConverter):
    """
    Point in time as (i64 seconds, u32 nanoseconds) relative to the UNIX epoch.

    Seconds are floored, so the nanosecond field always counts forward:
    half a second before the epoch is (-1, 500_000_000).
    """

    type_name = "Timestamp"
    min_width = 12

    def check_lower(self, value: Any) -> None:
        if not isinstance(value, datetime):
            raise TypeError(f"Timestamp expects a datetime, got {type(value).__name__}")
        if value.tzinfo is None:
            raise ValueError("Timestamp requires a timezone-aware datetime")

    def read(self, reader: ByteReader) -> datetime:
        seconds = reader.read_one(I64)
        nanos = reader.read_one(U32)
        if nanos >= 1_000_000_000:
            raise InvalidValueError(f"nanosecond field {nanos} out of range for Timestamp")
        try:
            return EPOCH + timedelta(seconds=seconds, microseconds=nanos // 1000)
        except OverflowError as e:
            raise InvalidValueError(f"Timestamp {seconds}s is outside the datetime range") from e

    def write(self, value: datetime, writer: ByteWriter) -> None:
        # timedelta normalises to (days, seconds >= 0, microseconds >= 0)
        delta = value - EPOCH
        writer.write_struct(I64, delta.days * 86400 + delta.seconds)
        writer.write_struct(U32, delta.microseconds * 1000)


class DurationConverter(FfiConverter):
    """Non-negative span as (u64 seconds, u32 nanoseconds)."""

    type_name = "Duration"
    min_width = 12

    def check_lower(self, value: Any) -> None:
        if not isinstance(value, timedelta):
            raise TypeError(f"Duration expects a timedelta, got {type(value).__name__}")
        if value < timedelta(0):
            raise ValueError("Duration cannot be negative")

    def read(self, reader: ByteReader) -> timedelta:
        seconds = reader.read_one(U64)
        nanos = reader.read_one(U32)
        if nanos >= 1_000_000_000:
            raise InvalidValueError(f"nanosecond field {nanos} out of range for Duration")
        try:
            return timedelta(seconds=seconds, microseconds=nanos // 1000)
        except OverflowError as e:
            raise InvalidValueError(f"Duration {seconds}s is outside the timedelta range") from e

    def write(self, value: timedelta, writer: ByteWriter) -> None:
        writer.write_struct(U64, value.days * 86400 + value.seconds)
        writer.write_struct(U32, value.microseconds * 1000)


Int8 = IntegerConverter("Int8", I8, -(2**7), 2**7 - 1)
Int16 = IntegerConverter("Int16", I16, -(2**15), 2**15 - 1)
Int32 = IntegerConverter("Int32", I32, -(2**31), 2**31 - 1)
Int64 = IntegerConverter("Int64", I64, -(2**63), 2**63 - 1)
UInt8 = IntegerConverter("UInt8", U8, 0, 2**8 - 1)
UInt16 = IntegerConverter("UInt16", U16, 0, 2**16 - 1)
UInt32 = IntegerConverter("UInt32", U32, 0, 2**32 - 1)
UInt64 = IntegerConverter("UInt64", U64, 0, 2**64 - 1)
Float32 = FloatConverter("Float32", F32)
Float64 = FloatConverter("Float64", F64)
Boolean = BooleanConverter()
String = StringConverter()
Bytes = BytesConverter()
Timestamp = TimestampConverter()
Duration = DurationConverter()
