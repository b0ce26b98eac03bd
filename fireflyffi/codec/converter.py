"""Base class shared by every type converter."""

"""
Copyright (c) 2025 Firefly Software Solutions Inc.
Licensed under the Apache License, Version 2.0.
"""

from abc import ABC, abstractmethod
from typing import Any

from typing_extensions import Buffer

from ..errors import InvalidDiscriminantError, TrailingBytesError
from .stream import I32, ByteReader, ByteWriter


class FfiConverter(ABC):
    """
    Reads and writes one type in the wire format.

    Each exposed operation pairs fixed converters for its arguments, return
    value and error type, so dispatch happens once when bindings are built
    rather than per value.

    ``lower``/``lift`` convert to and from the C-level argument or return
    value. For scalars that is the Python value itself; buffer-carried types
    go through ``fireflyffi.native.buffer``.
    """

    type_name = "value"
    # smallest encoding in bytes; bounds declared element counts before decoding
    min_width = 0

    @abstractmethod
    def read(self, reader: ByteReader) -> Any:
        """Decode one value from the reader."""

    @abstractmethod
    def write(self, value: Any, writer: ByteWriter) -> None:
        """Append the encoding of a value that already passed check_lower."""

    def check_lower(self, value: Any) -> None:
        """Validate a value before any byte of it is produced."""

    def lower(self, value: Any) -> Any:
        self.check_lower(value)
        return value

    def lift(self, value: Any) -> Any:
        return value

    def encode(self, value: Any) -> bytes:
        self.check_lower(value)
        writer = ByteWriter()
        self.write(value, writer)
        return writer.getvalue()

    def decode(self, data: Buffer) -> Any:
        """Decode a complete buffer; leftover bytes are a contract violation."""
        reader = ByteReader(data)
        value = self.read(reader)
        if reader.remaining:
            raise TrailingBytesError(reader.remaining, self.type_name)
        return value

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.type_name}>"


def read_discriminant(reader: ByteReader, type_name: str, variant_count: int) -> int:
    """Read a 1-based discriminant and return the 0-based variant index."""
    discriminant = reader.read_one(I32)
    if not 1 <= discriminant <= variant_count:
        raise InvalidDiscriminantError(type_name, discriminant, variant_count)
    return discriminant - 1


def write_discriminant(writer: ByteWriter, index: int) -> None:
    writer.write_struct(I32, index + 1)
