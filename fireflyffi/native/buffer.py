"""
Buffer ownership bridge.

Buffers returned by native calls belong to the managed side from the moment
the call returns; they are read once, start to end, and released exactly
once through the allocator that produced them. Buffers produced here for
arguments are handed to the native side and never released locally.
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

import ctypes
import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from typing_extensions import Buffer, Protocol

from ..codec.converter import FfiConverter
from ..codec.stream import ByteReader
from ..errors import BufferReleasedError, TrailingBytesError
from .structures import ForeignBytes, RustBuffer, RustCallStatusPtr

logger = logging.getLogger(__name__)


class BufferAllocator(Protocol):
    """Allocation entry points of the side that owns native buffers."""

    def alloc(self, size: int) -> RustBuffer: ...

    def from_bytes(self, data: Buffer) -> RustBuffer: ...

    def free(self, buffer: RustBuffer) -> None: ...


class NativeBufferAllocator:
    """
    BufferAllocator bound to a loaded native library.

    Expects the library to export::

        RustBuffer ffi_<namespace>_rustbuffer_alloc(uint64_t size, RustCallStatus *status);
        RustBuffer ffi_<namespace>_rustbuffer_from_bytes(ForeignBytes bytes, RustCallStatus *status);
        void       ffi_<namespace>_rustbuffer_free(RustBuffer buf, RustCallStatus *status);
    """

    def __init__(self, library: Any, namespace: str):
        from .call import CallEnvelope

        self.namespace = namespace
        prefix = f"ffi_{namespace}_rustbuffer"

        self._alloc = getattr(library, f"{prefix}_alloc")
        self._alloc.argtypes = [ctypes.c_uint64, RustCallStatusPtr]
        self._alloc.restype = RustBuffer

        self._from_bytes = getattr(library, f"{prefix}_from_bytes")
        self._from_bytes.argtypes = [ForeignBytes, RustCallStatusPtr]
        self._from_bytes.restype = RustBuffer

        self._free = getattr(library, f"{prefix}_free")
        self._free.argtypes = [RustBuffer, RustCallStatusPtr]
        self._free.restype = None

        self._envelope = CallEnvelope(self)

    def alloc(self, size: int) -> RustBuffer:
        return self._envelope.call(self._alloc, size)

    def from_bytes(self, data: Buffer) -> RustBuffer:
        payload = bytes(data)
        array = (ctypes.c_uint8 * len(payload)).from_buffer_copy(payload)
        foreign = ForeignBytes(len(payload), ctypes.cast(array, ctypes.POINTER(ctypes.c_uint8)))
        return self._envelope.call(self._from_bytes, foreign)

    def free(self, buffer: RustBuffer) -> None:
        self._envelope.call(self._free, buffer)


class NativeBuffer:
    """A received RustBuffer, readable in place and released exactly once."""

    def __init__(self, raw: RustBuffer, allocator: BufferAllocator):
        self._raw = raw
        self._allocator = allocator
        self._released = False

    def __len__(self) -> int:
        return self._raw.len

    @property
    def released(self) -> bool:
        return self._released

    def view(self) -> memoryview:
        """Expose the native bytes without copying them."""
        if self._released:
            raise BufferReleasedError(f"read from released buffer {self._raw!r}")
        if self._raw.is_empty():
            return memoryview(b"")
        array = (ctypes.c_uint8 * self._raw.len).from_address(self._raw.address)
        return memoryview(array).cast("B")

    def reader(self) -> ByteReader:
        return ByteReader(self.view())

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        logger.debug(f"Releasing native buffer {self._raw!r}")
        self._allocator.free(self._raw)

    @contextmanager
    def consume(self, type_name: Optional[str] = None) -> Iterator[ByteReader]:
        """
        Yield a reader over the buffer, then require that every byte was read.

        The buffer is released on exit whether or not decoding succeeded.
        """
        reader = self.reader()
        try:
            yield reader
            if reader.remaining:
                raise TrailingBytesError(reader.remaining, type_name)
        finally:
            reader.release()
            self.release()


def lift_buffer(converter: FfiConverter, raw: RustBuffer, allocator: BufferAllocator) -> Any:
    """Decode a buffer returned by the native side and release it."""
    with NativeBuffer(raw, allocator).consume(converter.type_name) as reader:
        return converter.read(reader)


def lower_buffer(converter: FfiConverter, value: Any, allocator: BufferAllocator) -> RustBuffer:
    """Encode a value into a fresh native buffer owned by the native side from now on."""
    return allocator.from_bytes(converter.encode(value))


def lift_message(raw: RustBuffer, allocator: BufferAllocator) -> str:
    """Decode a buffer holding bare UTF-8 text (fault messages) and release it."""
    buffer = NativeBuffer(raw, allocator)
    try:
        return bytes(buffer.view()).decode("utf-8", errors="replace")
    finally:
        buffer.release()
