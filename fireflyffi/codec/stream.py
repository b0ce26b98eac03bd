"""
Byte streams used by the binary codec.

ByteWriter appends to a growable bytearray. ByteReader walks a read-only
memoryview, so a reader created over native memory never copies it.
All multi-byte scalars are big-endian.
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

import struct
from typing import Any, Tuple

from typing_extensions import Buffer

from ..errors import BufferUnderflowError

# Precompiled big-endian layouts shared by the primitive converters.
I8 = struct.Struct(">b")
I16 = struct.Struct(">h")
I32 = struct.Struct(">i")
I64 = struct.Struct(">q")
U8 = struct.Struct(">B")
U16 = struct.Struct(">H")
U32 = struct.Struct(">I")
U64 = struct.Struct(">Q")
F32 = struct.Struct(">f")
F64 = struct.Struct(">d")


class ByteWriter:
    """Growable output buffer."""

    __slots__ = ("_data",)

    def __init__(self):
        self._data = bytearray()

    def __len__(self) -> int:
        return len(self._data)

    def write(self, data: Buffer) -> None:
        self._data += data

    def write_struct(self, layout: struct.Struct, *values: Any) -> None:
        self._data += layout.pack(*values)

    def getvalue(self) -> bytes:
        return bytes(self._data)


class ByteReader:
    """Sequential reader over a byte buffer."""

    __slots__ = ("_view", "_pos")

    def __init__(self, data: Buffer):
        view = memoryview(data)
        # ctypes arrays report "<B", which older interpreters cannot index
        if view.format != "B":
            view = view.cast("B")
        self._view = view
        self._pos = 0

    @property
    def position(self) -> int:
        return self._pos

    @property
    def remaining(self) -> int:
        return len(self._view) - self._pos

    def _require(self, size: int) -> None:
        if size > self.remaining:
            raise BufferUnderflowError(size, self.remaining)

    def read(self, size: int) -> bytes:
        self._require(size)
        start = self._pos
        self._pos += size
        return self._view[start:self._pos].tobytes()

    def read_struct(self, layout: struct.Struct) -> Tuple[Any, ...]:
        self._require(layout.size)
        values = layout.unpack_from(self._view, self._pos)
        self._pos += layout.size
        return values

    def read_one(self, layout: struct.Struct) -> Any:
        return self.read_struct(layout)[0]

    def release(self) -> None:
        self._view.release()
