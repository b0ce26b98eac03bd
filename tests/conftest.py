"""
Shared fixtures for fireflyffi tests.

Native behaviour is simulated in-process: FakeAllocator hands out ctypes
arrays as RustBuffers and records every free, and FakeLibrary exposes plain
Python callables under native symbol names.

Copyright (c) 2025 Firefly Software Solutions Inc.
Licensed under the Apache License, Version 2.0 (the "License");
"""

import ctypes
import threading

import pytest

from fireflyffi.codec import ErrorConverter
from fireflyffi.contract import ContractManifest
from fireflyffi.errors import FfiError
from fireflyffi.native.call import CallEnvelope
from fireflyffi.native.structures import CallStatusCode, RustBuffer


class FakeAllocator:
    """In-process stand-in for the native rustbuffer allocator."""

    def __init__(self):
        self._lock = threading.Lock()
        self._live = {}
        self.freed = []

    def _make(self, payload: bytes) -> RustBuffer:
        size = max(len(payload), 1)
        array = (ctypes.c_uint8 * size).from_buffer_copy(payload.ljust(size, b"\0"))
        buffer = RustBuffer(
            capacity=size,
            len=len(payload),
            data=ctypes.cast(array, ctypes.POINTER(ctypes.c_uint8)),
        )
        with self._lock:
            self._live[buffer.address] = array
        return buffer

    def alloc(self, size: int) -> RustBuffer:
        return self._make(bytes(size))

    def from_bytes(self, data) -> RustBuffer:
        return self._make(bytes(data))

    def free(self, buffer: RustBuffer) -> None:
        with self._lock:
            if buffer.address not in self._live:
                raise AssertionError(f"free of unknown or already freed {buffer!r}")
            del self._live[buffer.address]
            self.freed.append(buffer.address)

    @property
    def outstanding(self) -> int:
        with self._lock:
            return len(self._live)

    def contents(self, buffer: RustBuffer) -> bytes:
        return ctypes.string_at(buffer.address, buffer.len)


class FakeLibrary:
    """Exposes Python callables under native symbol names."""

    def __init__(self, **symbols):
        for name, fn in symbols.items():
            setattr(self, name, fn)

    @staticmethod
    def returning(value):
        def exported(*args):
            return value

        return exported


class WalletError(FfiError):
    pass


class InsufficientFunds(WalletError):
    pass


class AccountLocked(WalletError):
    pass


WALLET_ERRORS = ErrorConverter("WalletError", [InsufficientFunds, AccountLocked])


def native_success(value=None):
    """A fake native function that succeeds and returns ``value``."""

    def fn(*args):
        args[-1].contents.code = CallStatusCode.SUCCESS
        return value

    return fn


def native_failing(code, error_buf=None):
    """A fake native function that reports ``code`` with an optional error buffer."""

    def fn(*args):
        status = args[-1].contents
        status.code = code
        if error_buf is not None:
            status.error_buf = error_buf
        return None

    return fn


@pytest.fixture
def allocator():
    """Fresh fake allocator; checks nothing is left allocated."""
    return FakeAllocator()


@pytest.fixture
def envelope(allocator):
    return CallEnvelope(allocator)


@pytest.fixture
def manifest():
    return ContractManifest(
        namespace="wallet",
        contract_version=26,
        checksums={
            "uniffi_wallet_checksum_func_open_wallet": 4123,
            "uniffi_wallet_checksum_method_wallet_balance": 871,
        },
    )


@pytest.fixture
def matching_library():
    """Library whose contract version and checksums match the manifest fixture."""
    return FakeLibrary(
        ffi_wallet_uniffi_contract_version=FakeLibrary.returning(26),
        uniffi_wallet_checksum_func_open_wallet=FakeLibrary.returning(4123),
        uniffi_wallet_checksum_method_wallet_balance=FakeLibrary.returning(871),
    )
