"""
Call envelope around native invocations.

Every native entry point takes a trailing ``RustCallStatus *`` and reports
one of three outcomes through it:

    0  success           the function's return value is the result
    1  declared error    error_buf holds the encoded typed error
    2  native fault      error_buf holds the UTF-8 fault message, or is empty
                         when the native side faulted while building it

Any other code means the two sides disagree on the contract.
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
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from ..codec.compound import ErrorConverter
from ..errors import FaultWhileHandlingFault, FfiError, InternalError, NativePanic, UnknownStatusCodeError
from .buffer import BufferAllocator, NativeBuffer, lift_buffer, lift_message
from .structures import CallStatusCode, RustCallStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Ok:
    value: Any


@dataclass(frozen=True)
class Err:
    error: FfiError


CallOutcome = Union[Ok, Err]


def check_call_status(
    status: RustCallStatus,
    error_converter: Optional[ErrorConverter],
    allocator: BufferAllocator,
) -> Optional[FfiError]:
    """
    Inspect a call status after the native function returned.

    Returns None on success and the lifted typed error on a declared error.
    Faults and unknown codes raise. Any error buffer is released here.
    """
    code = status.code

    if code == CallStatusCode.SUCCESS:
        return None

    if code == CallStatusCode.ERROR:
        if error_converter is None:
            NativeBuffer(status.error_buf, allocator).release()
            raise InternalError("non-fallible native call reported a declared error")
        return lift_buffer(error_converter, status.error_buf, allocator)

    if code == CallStatusCode.UNEXPECTED_ERROR:
        if status.error_buf.len > 0:
            raise NativePanic(lift_message(status.error_buf, allocator))
        if status.error_buf.data:
            NativeBuffer(status.error_buf, allocator).release()
        raise FaultWhileHandlingFault()

    raise UnknownStatusCodeError(code)


def _describe(fn: Callable) -> str:
    return getattr(fn, "__name__", None) or repr(fn)


class CallEnvelope:
    """
    Invokes native functions and turns their call status into Python outcomes.

    ``call`` follows Python conventions: it returns the result or raises the
    declared error. ``invoke`` returns ``Ok``/``Err`` instead. Both raise
    NativePanic for faults and InternalError for contract violations.
    """

    def __init__(self, allocator: BufferAllocator):
        self.allocator = allocator

    def invoke(self, fn: Callable, *args: Any, error_converter: Optional[ErrorConverter] = None) -> CallOutcome:
        status = RustCallStatus()
        result = fn(*args, ctypes.pointer(status))
        try:
            error = check_call_status(status, error_converter, self.allocator)
        except NativePanic as e:
            logger.error(f"Native fault in {_describe(fn)}: {e}")
            raise
        except InternalError as e:
            logger.error(f"Contract violation while calling {_describe(fn)}: {e}")
            raise
        if error is not None:
            return Err(error)
        return Ok(result)

    def call(self, fn: Callable, *args: Any, error_converter: Optional[ErrorConverter] = None) -> Any:
        outcome = self.invoke(fn, *args, error_converter=error_converter)
        if isinstance(outcome, Err):
            raise outcome.error
        return outcome.value
