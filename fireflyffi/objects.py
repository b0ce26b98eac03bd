"""
Foreign object lifetime management.

A native object is reference counted on the native side. Each Python
wrapper holds one native reference plus a borrow counter and a destroyed
flag:

    Live(n) --borrow--> Live(n + 1)
    Live(n) --return--> Live(n - 1)
    Live(0) --return or destroy--> Released   (native free, exactly once)

Every method call borrows: the counter is raised, the native side clones
its reference and the clone is what the call consumes. Destroy is the one
extra "return" that lets the counter drop below its baseline, so an object
destroyed while k calls are in flight is freed by the last of them.
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

import logging
import sys
from contextlib import contextmanager
from typing import Any, Callable, ClassVar, Iterator, Type, TypeVar

from .codec.converter import FfiConverter
from .codec.stream import U64, ByteReader, ByteWriter
from .errors import BorrowSaturatedError, UseAfterDestroyError
from .internal.atomic import AtomicFlag, AtomicInteger
from .native.call import CallEnvelope

logger = logging.getLogger(__name__)

MAX_BORROWS = sys.maxsize

T = TypeVar("T", bound="ForeignObject")


class ObjectType:
    """Native clone/free entry points of one object type."""

    def __init__(self, name: str, clone_fn: Callable, free_fn: Callable, envelope: CallEnvelope):
        self.name = name
        self.clone_fn = clone_fn
        self.free_fn = free_fn
        self.envelope = envelope

    def clone(self, pointer: int) -> int:
        return self.envelope.call(self.clone_fn, pointer)

    def free(self, pointer: int) -> None:
        self.envelope.call(self.free_fn, pointer)

    def __repr__(self) -> str:
        return f"ObjectType({self.name!r})"


class ForeignObjectHandle:
    """Borrow counter and destroyed flag guarding one native reference."""

    def __init__(self, pointer: int, object_type: ObjectType, max_borrows: int = MAX_BORROWS):
        self.pointer = pointer
        self.object_type = object_type
        self.max_borrows = max_borrows
        self._borrows = AtomicInteger(0)
        self._destroyed = AtomicFlag()

    @property
    def active_borrows(self) -> int:
        return max(self._borrows.load(), 0)

    @property
    def destroyed(self) -> bool:
        return self._destroyed.is_set()

    @property
    def released(self) -> bool:
        return self._borrows.load() < 0

    def clone_pointer(self) -> int:
        """Borrow the object and return a native clone of its pointer."""
        while True:
            current = self._borrows.load()
            if current < 0:
                raise UseAfterDestroyError(
                    f"{self.object_type.name} object 0x{self.pointer:x} has already been released"
                )
            if current >= self.max_borrows:
                raise BorrowSaturatedError(
                    f"{self.object_type.name} object 0x{self.pointer:x} has {current} active borrows"
                )
            if self._borrows.compare_and_swap(current, current + 1):
                break

        try:
            return self.object_type.clone(self.pointer)
        except BaseException:
            self.release_borrow()
            raise

    def release_borrow(self) -> None:
        """Return a borrow; the caller that drops below the baseline frees."""
        if self._borrows.fetch_sub(1) == 0:
            logger.debug(f"Freeing {self.object_type.name} object 0x{self.pointer:x}")
            self.object_type.free(self.pointer)

    def destroy(self) -> bool:
        """Release this handle's reference. Only the first call has any effect."""
        if not self._destroyed.test_and_set():
            return False
        self.release_borrow()
        return True

    @contextmanager
    def borrow(self) -> Iterator[int]:
        pointer = self.clone_pointer()
        try:
            yield pointer
        finally:
            self.release_borrow()

    def __repr__(self) -> str:
        return (
            f"ForeignObjectHandle({self.object_type.name}, 0x{self.pointer:x}, "
            f"borrows={self._borrows.load()}, destroyed={self.destroyed})"
        )


class ForeignObject:
    """
    Base class for Python wrappers of native objects.

    Subclasses set ``_object_type`` and implement their methods as::

        def balance(self) -> int:
            with self.borrow() as pointer:
                return self._object_type.envelope.call(_lib.wallet_balance, pointer)

    Wrappers may be used as context managers to release the native object
    deterministically; otherwise it is released when the wrapper is collected.
    """

    _object_type: ClassVar[ObjectType]

    def __init__(self, pointer: int):
        self._handle = ForeignObjectHandle(pointer, type(self)._object_type)

    @classmethod
    def _from_pointer(cls: Type[T], pointer: int) -> T:
        instance = cls.__new__(cls)
        instance._handle = ForeignObjectHandle(pointer, cls._object_type)
        return instance

    def borrow(self):
        return self._handle.borrow()

    def destroy(self) -> None:
        self._handle.destroy()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.destroy()

    def __del__(self):
        handle = getattr(self, "_handle", None)
        if handle is not None:
            handle.destroy()


class ObjectConverter(FfiConverter):
    """
    Objects cross the boundary as a u64 pointer to a fresh native clone.

    Lowering clones inside a borrow so a concurrent destroy cannot free the
    object between taking the pointer and handing it over.
    """

    min_width = 8

    def __init__(self, object_class: Type[ForeignObject]):
        self.object_class = object_class
        self.type_name = object_class.__name__

    def check_lower(self, value: Any) -> None:
        if not isinstance(value, self.object_class):
            raise TypeError(f"{self.type_name} expects a {self.type_name} instance, got {type(value).__name__}")

    def lower(self, value: ForeignObject) -> int:
        self.check_lower(value)
        with value.borrow() as pointer:
            return pointer

    def lift(self, value: int) -> ForeignObject:
        return self.object_class._from_pointer(value)

    def read(self, reader: ByteReader) -> ForeignObject:
        return self.lift(reader.read_one(U64))

    def write(self, value: ForeignObject, writer: ByteWriter) -> None:
        with value.borrow() as pointer:
            writer.write_struct(U64, pointer)
