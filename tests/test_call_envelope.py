#!/usr/bin/env python3
"""
Unit tests for the call envelope and call status handling.
"""

"""
Copyright (c) 2025 Firefly Software Solutions Inc.
Licensed under the Apache License, Version 2.0 (the "License");
"""

import logging

import pytest

from conftest import WALLET_ERRORS, AccountLocked, InsufficientFunds, native_failing, native_success
from fireflyffi.errors import (
    FaultWhileHandlingFault,
    InternalError,
    NativePanic,
    UnknownStatusCodeError,
)
from fireflyffi.native.call import Err, Ok, check_call_status
from fireflyffi.native.structures import CallStatusCode, RustBuffer, RustCallStatus


class TestCheckCallStatus:
    """Test interpretation of each status code."""

    def test_success(self, allocator):
        """Test code 0 means the return value is valid."""
        assert check_call_status(RustCallStatus(), WALLET_ERRORS, allocator) is None

    def test_declared_error(self, allocator):
        """Test code 1 lifts the typed error and frees its buffer."""
        status = RustCallStatus(
            code=CallStatusCode.ERROR,
            error_buf=allocator.from_bytes(WALLET_ERRORS.encode(InsufficientFunds("balance 3"))),
        )
        error = check_call_status(status, WALLET_ERRORS, allocator)

        assert error == InsufficientFunds("balance 3")
        assert allocator.outstanding == 0

    def test_declared_error_on_non_fallible_call(self, allocator):
        """Test code 1 without a declared error type is a contract violation."""
        status = RustCallStatus(code=CallStatusCode.ERROR, error_buf=allocator.from_bytes(b"\x00"))
        with pytest.raises(InternalError):
            check_call_status(status, None, allocator)
        assert allocator.outstanding == 0

    def test_fault_with_message(self, allocator):
        """Test code 2 with a message raises NativePanic carrying it."""
        status = RustCallStatus(
            code=CallStatusCode.UNEXPECTED_ERROR, error_buf=allocator.from_bytes(b"index out of bounds")
        )
        with pytest.raises(NativePanic) as exc_info:
            check_call_status(status, WALLET_ERRORS, allocator)

        assert str(exc_info.value) == "index out of bounds"
        assert not isinstance(exc_info.value, FaultWhileHandlingFault)
        assert allocator.outstanding == 0

    def test_fault_without_message(self, allocator):
        """Test code 2 with an empty buffer is a fault while handling a fault."""
        status = RustCallStatus(code=CallStatusCode.UNEXPECTED_ERROR, error_buf=RustBuffer())
        with pytest.raises(FaultWhileHandlingFault):
            check_call_status(status, WALLET_ERRORS, allocator)

    def test_fault_with_allocated_empty_buffer(self, allocator):
        """Test an allocated but empty fault buffer is still freed."""
        status = RustCallStatus(code=CallStatusCode.UNEXPECTED_ERROR, error_buf=allocator.from_bytes(b""))
        with pytest.raises(FaultWhileHandlingFault):
            check_call_status(status, WALLET_ERRORS, allocator)
        assert allocator.outstanding == 0

    @pytest.mark.parametrize("code", [3, 99, -1])
    def test_unknown_code(self, allocator, code):
        """Test codes outside 0..2 are contract violations."""
        with pytest.raises(UnknownStatusCodeError) as exc_info:
            check_call_status(RustCallStatus(code=code), WALLET_ERRORS, allocator)
        assert exc_info.value.code == code


class TestCallEnvelope:
    """Test invoking native functions through the envelope."""

    def test_call_returns_value(self, envelope):
        """Test a successful call returns the native return value."""
        fn = native_success(41)
        assert envelope.call(fn, 1, 2) == 41

    def test_status_pointer_is_last_argument(self, envelope):
        """Test the status out-parameter follows the encoded arguments."""
        seen = []

        def fn(a, b, status):
            seen.append((a, b, status.contents.code))
            return None

        envelope.call(fn, "x", "y")
        assert seen == [("x", "y", 0)]

    def test_call_raises_declared_error(self, envelope, allocator):
        """Test call raises the lifted declared error."""
        fn = native_failing(
            CallStatusCode.ERROR, allocator.from_bytes(WALLET_ERRORS.encode(AccountLocked("frozen")))
        )
        with pytest.raises(AccountLocked, match="frozen"):
            envelope.call(fn, error_converter=WALLET_ERRORS)
        assert allocator.outstanding == 0

    def test_invoke_returns_outcome(self, envelope, allocator):
        """Test invoke returns Ok/Err instead of raising declared errors."""
        assert envelope.invoke(native_success("v")) == Ok("v")

        fn = native_failing(
            CallStatusCode.ERROR, allocator.from_bytes(WALLET_ERRORS.encode(InsufficientFunds("low")))
        )
        outcome = envelope.invoke(fn, error_converter=WALLET_ERRORS)
        assert isinstance(outcome, Err)
        assert outcome.error == InsufficientFunds("low")

    def test_fault_is_logged_and_raised(self, envelope, allocator, caplog):
        """Test native faults propagate as NativePanic and are logged."""
        fn = native_failing(CallStatusCode.UNEXPECTED_ERROR, allocator.from_bytes(b"panicked"))
        with caplog.at_level(logging.ERROR, logger="fireflyffi"):
            with pytest.raises(NativePanic, match="panicked"):
                envelope.call(fn, error_converter=WALLET_ERRORS)
        assert "Native fault" in caplog.text

    def test_non_fallible_call_with_error_code(self, envelope, allocator):
        """Test a declared error from a non-fallible function is not swallowed."""
        fn = native_failing(CallStatusCode.ERROR, allocator.from_bytes(b"\x00\x00\x00\x01"))
        with pytest.raises(InternalError):
            envelope.call(fn)
        assert allocator.outstanding == 0

    def test_unknown_code_through_envelope(self, envelope):
        """Test an unknown status code surfaces from the envelope."""
        with pytest.raises(UnknownStatusCodeError):
            envelope.call(native_failing(7))
