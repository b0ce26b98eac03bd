"""
Callback dispatch for native-to-Python calls.

Python implementations of a callback interface are registered in a
HandleMap and cross the boundary as opaque u64 handles. The native side
receives one vtable per interface, holding a dispatch function per method
plus a free function, and later invokes them as::

    void dispatch(uint64_t handle, const uint8_t *args, int32_t args_len,
                  RustBuffer *out_return, RustCallStatus *status);
    void free(uint64_t handle);

Dispatch runs on whichever thread the native side chooses. Exceptions never
unwind into native code: every outcome is reported through the call status.
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
import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from .codec.compound import ErrorConverter
from .codec.converter import FfiConverter
from .codec.stream import U64, ByteReader, ByteWriter
from .errors import FfiError, InternalError, TrailingBytesError, UnknownHandleError
from .native.buffer import BufferAllocator, lower_buffer
from .native.structures import CallStatusCode, RustBuffer, RustBufferPtr, RustCallStatusPtr

logger = logging.getLogger(__name__)

MAX_HANDLE = 2**64 - 1

# The native side keeps raw pointers into every installed vtable and may call
# them until the process exits, so installed dispatchers are never collected.
_installed_dispatchers: List["CallbackDispatcher"] = []

DispatchFn = ctypes.CFUNCTYPE(
    None,
    ctypes.c_uint64,
    ctypes.POINTER(ctypes.c_uint8),
    ctypes.c_int32,
    RustBufferPtr,
    RustCallStatusPtr,
)
FreeFn = ctypes.CFUNCTYPE(None, ctypes.c_uint64)


class HandleMap:
    """
    Thread-safe table from u64 handles to Python objects.

    Handles start at 1 and are never reused within a process. A single lock
    guards the table; callback traffic is far lighter than data calls.
    """

    def __init__(self, name: str = "callback"):
        self.name = name
        self._lock = threading.Lock()
        self._entries: Dict[int, Any] = {}
        self._counter = itertools.count(1)

    def insert(self, obj: Any) -> int:
        with self._lock:
            handle = next(self._counter)
            if handle > MAX_HANDLE:
                raise InternalError(f"{self.name} handle space exhausted")
            self._entries[handle] = obj
            return handle

    def get(self, handle: int) -> Any:
        with self._lock:
            try:
                return self._entries[handle]
            except KeyError:
                raise UnknownHandleError(handle, self.name) from None

    def remove(self, handle: int) -> Any:
        with self._lock:
            try:
                return self._entries.pop(handle)
            except KeyError:
                raise UnknownHandleError(handle, self.name) from None

    def handles(self) -> List[int]:
        with self._lock:
            return sorted(self._entries)

    def clear(self) -> int:
        """Drop every entry and return how many there were."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, handle: int) -> bool:
        with self._lock:
            return handle in self._entries


@dataclass(frozen=True)
class CallbackMethod:
    """One method of a callback interface, in vtable order."""

    name: str
    arguments: Sequence[FfiConverter] = ()
    returns: Optional[FfiConverter] = None
    errors: Optional[ErrorConverter] = None
    python_name: Optional[str] = None

    @property
    def attribute(self) -> str:
        return self.python_name or self.name


@dataclass(frozen=True)
class CallbackInterface:
    """Static description of a callback interface shared by both sides."""

    name: str
    methods: Sequence[CallbackMethod] = field(default_factory=tuple)

    def vtable_type(self) -> type:
        fields = [(method.name, DispatchFn) for method in self.methods]
        fields.append(("free", FreeFn))
        return type(f"{self.name}VTable", (ctypes.Structure,), {"_fields_": fields})


def _borrowed_view(data: Any, length: int) -> memoryview:
    address = ctypes.cast(data, ctypes.c_void_p).value
    if not address or length <= 0:
        return memoryview(b"")
    return memoryview((ctypes.c_uint8 * length).from_address(address)).cast("B")


class CallbackDispatcher:
    """
    Binds a CallbackInterface to a handle registry and builds its vtable.

    One dispatcher exists per interface per runtime; it is created and torn
    down by FfiRuntime rather than reached through module globals.
    """

    def __init__(
        self,
        interface: CallbackInterface,
        allocator: BufferAllocator,
        registry: Optional[HandleMap] = None,
        log_dispatch: bool = False,
    ):
        self.interface = interface
        self.allocator = allocator
        self.registry = registry if registry is not None else HandleMap(interface.name)
        self.log_dispatch = log_dispatch
        self._vtable = None
        self._installed = False
        self._closed = False
        self._install_lock = threading.Lock()
        self.converter = CallbackInterfaceConverter(self)

    @property
    def vtable(self):
        if self._vtable is None:
            vtable_type = self.interface.vtable_type()
            functions = {
                method.name: DispatchFn(self._make_thunk(method)) for method in self.interface.methods
            }
            self._vtable = vtable_type(free=FreeFn(self._free_thunk), **functions)
        return self._vtable

    @property
    def installed(self) -> bool:
        return self._installed

    def install(self, init_fn: Callable) -> None:
        """Hand the vtable to the native side. Only the first call does anything."""
        with self._install_lock:
            if self._installed:
                return
            init_fn(ctypes.byref(self.vtable))
            self._installed = True
            _installed_dispatchers.append(self)
        logger.info(f"Installed {self.interface.name} callback vtable")

    def _make_thunk(self, method: CallbackMethod) -> Callable:
        def thunk(handle, args_data, args_len, out_return, out_status):
            self.dispatch(method, handle, _borrowed_view(args_data, args_len), out_return, out_status.contents)

        return thunk

    def _free_thunk(self, handle: int) -> None:
        self.free(handle)

    def dispatch(self, method: CallbackMethod, handle: int, args: Any, out_return, status) -> None:
        """Invoke ``method`` on the implementation behind ``handle``; report through ``status``."""
        if self.log_dispatch:
            logger.debug(f"Dispatching {self.interface.name}.{method.name} on handle {handle}")
        try:
            impl = self.registry.get(handle)
            arguments = self._read_arguments(method, args)
            result = getattr(impl, method.attribute)(*arguments)
            if method.returns is not None:
                out_return[0] = lower_buffer(method.returns, result, self.allocator)
            status.code = CallStatusCode.SUCCESS
        except Exception as e:
            if isinstance(e, FfiError) and method.errors is not None and method.errors.handles(e):
                self._report(status, CallStatusCode.ERROR, lambda: lower_buffer(method.errors, e, self.allocator))
            else:
                if isinstance(e, InternalError):
                    logger.error(f"Contract violation in {self.interface.name}.{method.name}: {e}")
                else:
                    logger.error(
                        f"Callback {self.interface.name}.{method.name} raised an undeclared error",
                        exc_info=True,
                    )
                message = f"{type(e).__name__}: {e}"
                self._report(
                    status,
                    CallStatusCode.UNEXPECTED_ERROR,
                    lambda: self.allocator.from_bytes(message.encode("utf-8")),
                )

    def _read_arguments(self, method: CallbackMethod, args: Any) -> List[Any]:
        reader = ByteReader(args)
        try:
            values = [converter.read(reader) for converter in method.arguments]
            if reader.remaining:
                raise TrailingBytesError(reader.remaining, f"{self.interface.name}.{method.name} arguments")
            return values
        finally:
            reader.release()

    def _report(self, status, code: CallStatusCode, make_buffer: Callable[[], RustBuffer]) -> None:
        try:
            status.error_buf = make_buffer()
            status.code = code
        except Exception:
            logger.critical(
                f"Failed to encode {code.name} for {self.interface.name} callback", exc_info=True
            )
            status.error_buf = RustBuffer()
            status.code = CallStatusCode.UNEXPECTED_ERROR

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> int:
        """
        Drop every registered implementation and return how many there were.

        The vtable stays callable: later dispatches report UnknownHandleError
        through the call status and later frees are ignored.
        """
        self._closed = True
        return self.registry.clear()

    def free(self, handle: int) -> None:
        """Drop a handle once the native side promises never to use it again."""
        try:
            self.registry.remove(handle)
        except UnknownHandleError as e:
            if self._closed:
                logger.debug(f"Ignoring free after shutdown: {e}")
            else:
                logger.critical(f"Native side freed an unknown handle: {e}")
            return
        if self.log_dispatch:
            logger.debug(f"Freed {self.interface.name} handle {handle}")


class CallbackInterfaceConverter(FfiConverter):
    """Lowers an implementation by registering it and sending its handle as u64."""

    min_width = 8

    def __init__(self, dispatcher: CallbackDispatcher):
        self.dispatcher = dispatcher
        self.type_name = dispatcher.interface.name

    def check_lower(self, value: Any) -> None:
        missing = [
            m.attribute
            for m in self.dispatcher.interface.methods
            if not callable(getattr(value, m.attribute, None))
        ]
        if missing:
            raise TypeError(f"{type(value).__name__} does not implement {self.type_name}: missing {missing}")

    def lower(self, value: Any) -> int:
        self.check_lower(value)
        return self.dispatcher.registry.insert(value)

    def lift(self, value: int) -> Any:
        return self.dispatcher.registry.get(value)

    def read(self, reader: ByteReader) -> Any:
        return self.lift(reader.read_one(U64))

    def write(self, value: Any, writer: ByteWriter) -> None:
        writer.write_struct(U64, self.dispatcher.registry.insert(value))
