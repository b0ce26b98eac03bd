"""
FFI runtime for Firefly foreign-function bindings.

The runtime owns the process-wide state of one set of bindings: the
verified contract, the call envelope and one callback registry per
registered callback interface. It is constructed and torn down
explicitly, and independent runtimes share nothing.

Copyright (c) 2025 Firefly Software Solutions Inc.
Licensed under the Apache License, Version 2.0.
"""

import logging
import threading
from typing import Any, Callable, Dict, Optional

from fireflyffi.callbacks import CallbackDispatcher, CallbackInterface
from fireflyffi.config.runtime_config import RuntimeConfig
from fireflyffi.contract import ContractManifest, ContractReport, verify_contract
from fireflyffi.native.buffer import BufferAllocator, NativeBufferAllocator
from fireflyffi.native.call import CallEnvelope
from fireflyffi.objects import ObjectType

logger = logging.getLogger(__name__)


class FfiRuntime:
    """
    Owner of contract verification, the call envelope and callback registries.

    Typical use::

        runtime = FfiRuntime(ctypes.CDLL("libwallet.so"), manifest)
        runtime.start()
        wallet_type = runtime.object_type("Wallet", lib.wallet_clone, lib.wallet_free)
        ...
        runtime.shutdown()
    """

    def __init__(
        self,
        library: Any,
        manifest: Optional[ContractManifest] = None,
        allocator: Optional[BufferAllocator] = None,
        config: Optional[RuntimeConfig] = None,
    ):
        """
        Initialize the runtime.

        Args:
            library: Loaded native library (a ctypes.CDLL or anything exposing the same symbols)
            manifest: Contract values the bindings were generated with. If omitted,
                it is loaded from ``config.contract.manifest_file``.
            allocator: Buffer allocator; defaults to the library's own rustbuffer exports
            config: Runtime configuration; defaults to RuntimeConfig()
        """
        self.library = library
        self.config = config or RuntimeConfig()

        if manifest is None and self.config.contract.manifest_file:
            manifest = ContractManifest.from_file(self.config.contract.manifest_file)
        self.manifest = manifest

        self._allocator = allocator
        self._envelope: Optional[CallEnvelope] = None
        self._dispatchers: Dict[str, CallbackDispatcher] = {}
        self._contract_report: Optional[ContractReport] = None
        self._started = False
        self._lock = threading.Lock()

    @property
    def namespace(self) -> Optional[str]:
        if self.config.namespace:
            return self.config.namespace
        return self.manifest.namespace if self.manifest is not None else None

    @property
    def started(self) -> bool:
        return self._started

    @property
    def contract_report(self) -> Optional[ContractReport]:
        return self._contract_report

    @property
    def allocator(self) -> BufferAllocator:
        if self._allocator is None:
            if not self.namespace:
                raise ValueError("A namespace is required to bind the native buffer allocator")
            self._allocator = NativeBufferAllocator(self.library, self.namespace)
        return self._allocator

    @property
    def envelope(self) -> CallEnvelope:
        if not self._started:
            raise RuntimeError("FFI runtime is not running. Call start() first.")
        return self._envelope

    def start(self) -> "FfiRuntime":
        """
        Verify the contract and prepare the call envelope.

        Safe to call from several threads; verification runs once.
        """
        with self._lock:
            if self._started:
                return self

            logger.info(f"Starting FFI runtime for namespace '{self.namespace}'")

            contract = self.config.contract
            if contract.verify_on_start:
                if self.manifest is None:
                    raise ValueError("Contract verification requires a manifest")
                # any mismatch aborts startup; collection mode is for tooling only
                self._contract_report = verify_contract(self.library, self.manifest, fail_fast=True)
            else:
                logger.warning("Contract verification disabled; skipping startup checks")

            self._envelope = CallEnvelope(self.allocator)
            self._started = True
            logger.info("FFI runtime started")
            return self

    def object_type(self, name: str, clone_fn: Callable, free_fn: Callable) -> ObjectType:
        """Describe a native object type whose clone/free calls go through this runtime."""
        return ObjectType(name, clone_fn, free_fn, self.envelope)

    def register_callback_interface(
        self, interface: CallbackInterface, init_fn: Optional[Callable] = None
    ) -> CallbackDispatcher:
        """
        Create the dispatcher for a callback interface and install its vtable.

        Registering the same interface twice returns the existing dispatcher.
        """
        if not self._started:
            raise RuntimeError("FFI runtime is not running. Call start() first.")

        with self._lock:
            dispatcher = self._dispatchers.get(interface.name)
            if dispatcher is None:
                dispatcher = CallbackDispatcher(
                    interface,
                    self.allocator,
                    log_dispatch=self.config.callbacks.log_dispatch,
                )
                self._dispatchers[interface.name] = dispatcher
                logger.debug(f"Registered callback interface {interface.name}")

        if init_fn is not None:
            dispatcher.install(init_fn)
        return dispatcher

    def dispatcher(self, name: str) -> CallbackDispatcher:
        try:
            return self._dispatchers[name]
        except KeyError:
            raise KeyError(f"Callback interface '{name}' is not registered") from None

    def shutdown(self) -> Dict[str, int]:
        """
        Clear every callback registry and stop the runtime.

        Returns the number of handles per interface that the native side
        never freed. Installed vtables stay callable after shutdown.
        """
        with self._lock:
            if not self._started:
                return {}

            leaked = {}
            for name, dispatcher in self._dispatchers.items():
                count = dispatcher.close()
                if count:
                    leaked[name] = count
                    if self.config.callbacks.warn_on_leaked_handles:
                        logger.warning(f"{count} {name} callback handle(s) were never freed")

            self._dispatchers.clear()
            self._envelope = None
            self._started = False

        logger.info("FFI runtime shutdown complete")
        return leaked

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()
