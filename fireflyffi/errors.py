"""
Exception hierarchy for the FFI runtime.

Three families are kept strictly apart:

- FfiError: declared, recoverable failures reported by a native operation
  through its typed error union. Generated bindings subclass it once per
  error kind.
- InternalError: contract violations. Both sides are not running compatible,
  correctly generated code; callers must not retry or downgrade these.
- NativePanic: the native side faulted while handling a call.
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

from typing import Optional


class FfiError(Exception):
    """Base class for declared errors returned by native operations."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def __eq__(self, other) -> bool:
        return type(self) is type(other) and self.message == other.message

    def __hash__(self) -> int:
        return hash((type(self), self.message))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class InternalError(Exception):
    """A contract violation between the managed and native sides."""


class BufferUnderflowError(InternalError):
    """The byte stream ended before a value was fully read."""

    def __init__(self, needed: int, remaining: int):
        super().__init__(
            f"buffer underflow: needed {needed} byte(s) but only {remaining} remain"
        )
        self.needed = needed
        self.remaining = remaining


class TrailingBytesError(InternalError):
    """Bytes were left over after a value was decoded."""

    def __init__(self, leftover: int, type_name: Optional[str] = None):
        target = f" while lifting {type_name}" if type_name else ""
        super().__init__(f"{leftover} unread byte(s) left in buffer{target}")
        self.leftover = leftover
        self.type_name = type_name


class InvalidDiscriminantError(InternalError):
    """A tagged union discriminant was outside the declared range."""

    def __init__(self, type_name: str, discriminant: int, variant_count: int):
        super().__init__(
            f"invalid discriminant {discriminant} for {type_name} "
            f"(expected 1..{variant_count})"
        )
        self.type_name = type_name
        self.discriminant = discriminant
        self.variant_count = variant_count


class InvalidValueError(InternalError):
    """A decoded value is not representable (bad boolean byte, bad UTF-8, negative length)."""


class UnknownStatusCodeError(InternalError):
    """The call status carried a code outside 0, 1 and 2."""

    def __init__(self, code: int):
        super().__init__(f"unknown call status code: {code}")
        self.code = code


class UnknownHandleError(InternalError):
    """A callback handle was never registered or was already freed."""

    def __init__(self, handle: int, interface: Optional[str] = None):
        where = f" in {interface} registry" if interface else ""
        super().__init__(f"unknown callback handle {handle}{where}")
        self.handle = handle
        self.interface = interface


class UseAfterDestroyError(InternalError):
    """A foreign object was borrowed after it had been released."""


class BorrowSaturatedError(InternalError):
    """The borrow counter of a foreign object cannot be incremented further."""


class BufferReleasedError(InternalError):
    """A native buffer was read after its release."""


class ContractError(InternalError):
    """Base class for startup contract verification failures."""


class ContractVersionMismatch(ContractError):
    def __init__(self, namespace: str, expected: int, actual: int):
        super().__init__(
            f"contract version mismatch for '{namespace}': "
            f"bindings expect {expected}, native library reports {actual}"
        )
        self.namespace = namespace
        self.expected = expected
        self.actual = actual


class ChecksumMismatchError(ContractError):
    def __init__(self, symbol: str, expected: int, actual: int):
        super().__init__(
            f"checksum mismatch for {symbol}: expected {expected}, native library reports {actual}"
        )
        self.symbol = symbol
        self.expected = expected
        self.actual = actual


class MissingSymbolError(ContractError):
    def __init__(self, symbol: str):
        super().__init__(f"native library does not export {symbol}")
        self.symbol = symbol


class NativePanic(Exception):
    """The native side faulted while executing a call."""


class FaultWhileHandlingFault(NativePanic):
    """The native side faulted and then failed to encode the fault message."""

    def __init__(self):
        super().__init__("native fault while handling a fault (no message available)")
