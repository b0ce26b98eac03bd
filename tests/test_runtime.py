#!/usr/bin/env python3
"""
Unit tests for the FFI runtime.
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
import gc
import logging
import threading
import weakref
from concurrent.futures import ThreadPoolExecutor

import pytest

from conftest import FakeAllocator, FakeLibrary, native_success
from fireflyffi.callbacks import CallbackInterface, CallbackMethod, DispatchFn, FreeFn
from fireflyffi.codec import String
from fireflyffi.config.runtime_config import ConfigurationManager, RuntimeConfig
from fireflyffi.errors import ChecksumMismatchError, ContractVersionMismatch
from fireflyffi.native.buffer import NativeBufferAllocator, lift_message
from fireflyffi.native.structures import CallStatusCode, RustBuffer, RustCallStatus
from fireflyffi.objects import ObjectType
from fireflyffi.runtime import FfiRuntime

NOTIFIER = CallbackInterface("Notifier", [CallbackMethod("notify", arguments=[String])])


class Printer:
    def notify(self, message):
        pass


class CountingLibrary(FakeLibrary):
    """Matching library that counts contract version reads."""

    def __init__(self, version=26):
        self.version_reads = 0
        self._lock = threading.Lock()

        def contract_version(*args):
            with self._lock:
                self.version_reads += 1
            return version

        super().__init__(
            ffi_wallet_uniffi_contract_version=contract_version,
            uniffi_wallet_checksum_func_open_wallet=FakeLibrary.returning(4123),
            uniffi_wallet_checksum_method_wallet_balance=FakeLibrary.returning(871),
        )


class TestStartup:
    """Test runtime startup and contract verification."""

    def test_start_verifies_contract(self, manifest, allocator):
        """Test start runs verification and exposes the envelope."""
        library = CountingLibrary()
        runtime = FfiRuntime(library, manifest, allocator=allocator)
        runtime.start()

        assert runtime.started
        assert runtime.contract_report.ok
        assert library.version_reads == 1
        assert runtime.envelope.allocator is allocator

    def test_start_is_idempotent(self, manifest, allocator):
        """Test repeated and concurrent starts verify only once."""
        library = CountingLibrary()
        runtime = FfiRuntime(library, manifest, allocator=allocator)

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda _: runtime.start(), range(16)))

        assert library.version_reads == 1

    def test_mismatch_prevents_start(self, manifest, allocator):
        """Test a skewed library leaves the runtime stopped."""
        runtime = FfiRuntime(CountingLibrary(version=27), manifest, allocator=allocator)

        with pytest.raises(ContractVersionMismatch):
            runtime.start()
        assert not runtime.started
        with pytest.raises(RuntimeError, match="not running"):
            runtime.envelope

    def test_checksum_mismatch_prevents_start(self, manifest, allocator):
        """Test a single checksum difference is fatal at start."""
        library = CountingLibrary()
        library.uniffi_wallet_checksum_func_open_wallet = FakeLibrary.returning(1)

        with pytest.raises(ChecksumMismatchError):
            FfiRuntime(library, manifest, allocator=allocator).start()

    def test_verification_disabled(self, manifest, allocator, caplog):
        """Test verification can be skipped by configuration."""
        config = RuntimeConfig(contract={"verify_on_start": False})
        library = CountingLibrary(version=1)

        with caplog.at_level(logging.WARNING, logger="fireflyffi"):
            runtime = FfiRuntime(library, manifest, allocator=allocator, config=config).start()

        assert runtime.started
        assert runtime.contract_report is None
        assert library.version_reads == 0
        assert "verification disabled" in caplog.text

    def test_mismatch_is_always_fatal(self, manifest, allocator, monkeypatch):
        """Test no configuration lets the runtime start on a skewed build."""
        monkeypatch.setenv("FIREFLYFFI_FAIL_FAST", "false")
        config = ConfigurationManager.load_config(
            config_file=None, env_prefix="FIREFLYFFI_", use_env=True
        )
        runtime = FfiRuntime(CountingLibrary(version=25), manifest, allocator=allocator, config=config)

        with pytest.raises(ContractVersionMismatch):
            runtime.start()
        assert not runtime.started
        with pytest.raises(RuntimeError, match="not running"):
            runtime.envelope

    def test_manifest_required(self, allocator):
        """Test verification needs a manifest."""
        with pytest.raises(ValueError, match="manifest"):
            FfiRuntime(CountingLibrary(), allocator=allocator).start()

    def test_manifest_from_config(self, tmp_path, manifest, allocator):
        """Test the manifest is loaded from the configured file."""
        path = tmp_path / "contract.yaml"
        manifest.to_file(path)
        config = RuntimeConfig(contract={"manifest_file": str(path)})

        runtime = FfiRuntime(CountingLibrary(), allocator=allocator, config=config)
        assert runtime.manifest == manifest
        assert runtime.namespace == "wallet"

    def test_default_allocator_uses_library(self, manifest):
        """Test the allocator defaults to the library's rustbuffer exports."""
        backing = FakeAllocator()
        library = CountingLibrary()
        library.ffi_wallet_rustbuffer_alloc = lambda size, status: backing.alloc(size)
        library.ffi_wallet_rustbuffer_from_bytes = lambda foreign, status: backing.from_bytes(
            bytes(foreign.data[i] for i in range(foreign.len))
        )
        library.ffi_wallet_rustbuffer_free = lambda buffer, status: backing.free(buffer)

        runtime = FfiRuntime(library, manifest).start()
        assert isinstance(runtime.allocator, NativeBufferAllocator)
        assert runtime.allocator.namespace == "wallet"

    def test_context_manager(self, manifest, allocator):
        """Test the runtime starts and shuts down around a with block."""
        with FfiRuntime(CountingLibrary(), manifest, allocator=allocator) as runtime:
            assert runtime.started
        assert not runtime.started


class TestRuntimeServices:
    """Test services handed out by a started runtime."""

    @pytest.fixture
    def runtime(self, manifest, allocator):
        runtime = FfiRuntime(CountingLibrary(), manifest, allocator=allocator)
        runtime.start()
        yield runtime
        runtime.shutdown()

    def test_object_type(self, runtime):
        """Test object types route clone and free through the runtime envelope."""
        object_type = runtime.object_type("Wallet", native_success(7), native_success())

        assert isinstance(object_type, ObjectType)
        assert object_type.envelope is runtime.envelope
        assert object_type.clone(7) == 7

    def test_object_type_requires_start(self, manifest, allocator):
        """Test object types cannot be created before start."""
        runtime = FfiRuntime(CountingLibrary(), manifest, allocator=allocator)
        with pytest.raises(RuntimeError):
            runtime.object_type("Wallet", native_success(), native_success())

    def test_register_callback_interface(self, runtime):
        """Test registration creates one dispatcher and installs its vtable once."""
        installed = []
        first = runtime.register_callback_interface(NOTIFIER, installed.append)
        second = runtime.register_callback_interface(NOTIFIER, installed.append)

        assert first is second
        assert len(installed) == 1
        assert runtime.dispatcher("Notifier") is first

    def test_unknown_dispatcher(self, runtime):
        """Test looking up an unregistered interface."""
        with pytest.raises(KeyError, match="Ledger"):
            runtime.dispatcher("Ledger")

    def test_log_dispatch_setting(self, manifest, allocator):
        """Test the dispatch logging setting reaches the dispatcher."""
        config = RuntimeConfig(callbacks={"log_dispatch": True})
        with FfiRuntime(CountingLibrary(), manifest, allocator=allocator, config=config) as runtime:
            assert runtime.register_callback_interface(NOTIFIER).log_dispatch is True

    def test_shutdown_reports_leaked_handles(self, runtime, caplog):
        """Test shutdown clears registries and reports unreleased handles."""
        dispatcher = runtime.register_callback_interface(NOTIFIER)

        dispatcher.converter.lower(Printer())
        dispatcher.converter.lower(Printer())

        with caplog.at_level(logging.WARNING, logger="fireflyffi"):
            leaked = runtime.shutdown()

        assert leaked == {"Notifier": 2}
        assert len(dispatcher.registry) == 0
        assert "2 Notifier callback handle(s) were never freed" in caplog.text
        assert runtime.shutdown() == {}

    def test_independent_runtimes(self, manifest):
        """Test two runtimes share no callback state."""
        a = FfiRuntime(CountingLibrary(), manifest, allocator=FakeAllocator()).start()
        b = FfiRuntime(CountingLibrary(), manifest, allocator=FakeAllocator()).start()

        handle = a.register_callback_interface(NOTIFIER).converter.lower(Printer())
        assert handle not in b.register_callback_interface(NOTIFIER).registry
        a.shutdown()
        b.shutdown()

    def test_installed_vtable_survives_shutdown(self, manifest, allocator, caplog):
        """Test native code can still call an installed vtable after shutdown."""
        addresses = {}

        def init_fn(vtable_ref):
            vtable = ctypes.cast(vtable_ref, ctypes.POINTER(NOTIFIER.vtable_type())).contents
            addresses["notify"] = ctypes.cast(vtable.notify, ctypes.c_void_p).value
            addresses["free"] = ctypes.cast(vtable.free, ctypes.c_void_p).value

        runtime = FfiRuntime(CountingLibrary(), manifest, allocator=allocator).start()
        dispatcher = runtime.register_callback_interface(NOTIFIER, init_fn)
        handle = dispatcher.converter.lower(Printer())
        dispatcher_ref = weakref.ref(dispatcher)
        del dispatcher
        runtime.shutdown()
        del runtime
        gc.collect()

        assert dispatcher_ref() is not None
        assert dispatcher_ref().closed

        args = String.encode("late")
        array = (ctypes.c_uint8 * len(args)).from_buffer_copy(args)
        out = RustBuffer()
        status = RustCallStatus()
        DispatchFn(addresses["notify"])(
            handle,
            ctypes.cast(array, ctypes.POINTER(ctypes.c_uint8)),
            len(args),
            ctypes.pointer(out),
            ctypes.pointer(status),
        )
        assert status.code == CallStatusCode.UNEXPECTED_ERROR
        assert lift_message(status.error_buf, allocator).startswith("UnknownHandleError")

        with caplog.at_level(logging.DEBUG, logger="fireflyffi"):
            FreeFn(addresses["free"])(handle)
        assert "Ignoring free after shutdown" in caplog.text
        assert not [r for r in caplog.records if r.levelno == logging.CRITICAL]
        assert allocator.outstanding == 0
