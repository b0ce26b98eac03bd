#!/usr/bin/env python3
"""
Wallet Bindings Example

Shows what generated bindings look like on top of the runtime: records,
declared errors, a native object and a callback interface. The "native
library" here is simulated in-process so the example runs anywhere; real
bindings would load it with ctypes.CDLL.

Run with: python wallet_bindings_example.py

Copyright (c) 2025 Firefly Software Solutions Inc.
Licensed under the Apache License, Version 2.0 (the "License");
"""

import ctypes
import sys
from dataclasses import dataclass
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from fireflyffi import (
    CallbackInterface,
    CallbackMethod,
    CallStatusCode,
    ContractManifest,
    ErrorConverter,
    FfiError,
    FfiRuntime,
    ForeignObject,
    Int64,
    RecordConverter,
    RuntimeConfig,
    RustBuffer,
    RustCallStatus,
    String,
    lift_buffer,
    lower_buffer,
)
from fireflyffi.config import LoggingConfig
from fireflyffi.logging import get_fireflyffi_logger, setup_fireflyffi_logging

# ---------------------------------------------------------------------------
# Generated types
# ---------------------------------------------------------------------------


class WalletError(FfiError):
    pass


class InsufficientFunds(WalletError):
    pass


WALLET_ERRORS = ErrorConverter("WalletError", [InsufficientFunds])


@dataclass
class Payment:
    to: str
    amount: int


PaymentConverter = RecordConverter.from_dataclass(Payment, {"to": String, "amount": Int64})

PAYMENT_OBSERVER = CallbackInterface(
    "PaymentObserver", [CallbackMethod("on_payment", arguments=[PaymentConverter])]
)


# ---------------------------------------------------------------------------
# Simulated native library
# ---------------------------------------------------------------------------


class SimulatedAllocator:
    """Keeps ctypes arrays alive for as long as the "native" side owns them."""

    def __init__(self):
        self._live = {}

    def alloc(self, size):
        return self.from_bytes(bytes(size))

    def from_bytes(self, data):
        data = bytes(data) or b"\0"
        array = (ctypes.c_uint8 * len(data)).from_buffer_copy(data)
        buffer = RustBuffer(len(data), len(data), ctypes.cast(array, ctypes.POINTER(ctypes.c_uint8)))
        self._live[buffer.address] = array
        return buffer

    def free(self, buffer):
        self._live.pop(buffer.address, None)


class SimulatedWalletLibrary:
    def __init__(self, allocator):
        self.allocator = allocator
        self.balance = 100
        self.observer_vtable = None
        self.observer_handle = None
        # contract symbols get argtypes/restype assigned, so they are plain functions
        self.ffi_wallet_uniffi_contract_version = lambda: 26
        self.uniffi_wallet_checksum_method_wallet_pay = lambda: 5120

    def wallet_new(self, status):
        return 0x1000

    def wallet_clone(self, pointer, status):
        return pointer

    def wallet_free(self, pointer, status):
        pass

    def wallet_set_observer(self, pointer, handle, status):
        self.observer_handle = handle

    def init_payment_observer(self, vtable_ref):
        self.observer_vtable = ctypes.cast(
            vtable_ref, ctypes.POINTER(PAYMENT_OBSERVER.vtable_type())
        ).contents

    def wallet_pay(self, pointer, payment_buf, status):
        payment = lift_buffer(PaymentConverter, payment_buf, self.allocator)
        if payment.amount > self.balance:
            status.contents.code = CallStatusCode.ERROR
            status.contents.error_buf = lower_buffer(
                WALLET_ERRORS, InsufficientFunds(f"balance is {self.balance}"), self.allocator
            )
            return 0
        self.balance -= payment.amount
        if self.observer_handle is not None:
            self._notify(payment)
        return self.balance

    def _notify(self, payment):
        args = PaymentConverter.encode(payment)
        array = (ctypes.c_uint8 * len(args)).from_buffer_copy(args)
        out, status = RustBuffer(), RustCallStatus()
        self.observer_vtable.on_payment(
            self.observer_handle,
            ctypes.cast(array, ctypes.POINTER(ctypes.c_uint8)),
            len(args),
            ctypes.pointer(out),
            ctypes.pointer(status),
        )


# ---------------------------------------------------------------------------
# Generated object wrapper
# ---------------------------------------------------------------------------


class Wallet(ForeignObject):
    runtime: FfiRuntime = None

    def pay(self, payment: Payment) -> int:
        runtime = type(self).runtime
        with self.borrow() as pointer:
            return runtime.envelope.call(
                runtime.library.wallet_pay,
                pointer,
                lower_buffer(PaymentConverter, payment, runtime.allocator),
                error_converter=WALLET_ERRORS,
            )

    def set_observer(self, observer) -> None:
        runtime = type(self).runtime
        handle = runtime.dispatcher(PAYMENT_OBSERVER.name).converter.lower(observer)
        with self.borrow() as pointer:
            runtime.envelope.call(runtime.library.wallet_set_observer, pointer, handle)


class PrintingObserver:
    def __init__(self):
        self.logger = get_fireflyffi_logger("example.observer")

    def on_payment(self, payment):
        self.logger.info("Payment observed", extra={"to": payment.to, "amount": payment.amount})


def main():
    config = RuntimeConfig(logging=LoggingConfig(level="INFO", format="json"))
    setup_fireflyffi_logging(config)

    allocator = SimulatedAllocator()
    library = SimulatedWalletLibrary(allocator)
    manifest = ContractManifest(
        namespace="wallet",
        contract_version=26,
        checksums={"uniffi_wallet_checksum_method_wallet_pay": 5120},
    )

    with FfiRuntime(library, manifest, allocator=allocator, config=config) as runtime:
        Wallet.runtime = runtime
        Wallet._object_type = runtime.object_type("Wallet", library.wallet_clone, library.wallet_free)
        runtime.register_callback_interface(PAYMENT_OBSERVER, library.init_payment_observer)

        with Wallet(runtime.envelope.call(library.wallet_new)) as wallet:
            wallet.set_observer(PrintingObserver())
            print(f"✅ Paid bob, balance now {wallet.pay(Payment('bob', 40))}")
            try:
                wallet.pay(Payment("carol", 500))
            except InsufficientFunds as e:
                print(f"❌ Payment refused: {e}")


if __name__ == "__main__":
    main()
