#!/usr/bin/env python3
"""
Configuration Example: How to Configure the FireflyFFI Runtime

This example demonstrates the ways a runtime configuration can be built,
saved, layered and validated.

Copyright (c) 2025 Firefly Software Solutions Inc.
Licensed under the Apache License, Version 2.0 (the "License");
"""

import os
import sys
import tempfile
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from fireflyffi.config import (
    CallbackConfig,
    ConfigurationManager,
    ContractConfig,
    LoggingConfig,
    RuntimeConfig,
)


def example_1_defaults():
    """Example 1: Default configuration."""
    print("\n" + "=" * 70)
    print("Example 1: Default Configuration")
    print("=" * 70)

    config = RuntimeConfig()
    print(f"  - Verify contract on start: {config.contract.verify_on_start}")
    print(f"  - Log dispatch:             {config.callbacks.log_dispatch}")
    print(f"  - Log level / format:       {config.logging.level} / {config.logging.format}")


def example_2_explicit():
    """Example 2: Explicit configuration for a diagnostic build."""
    print("\n" + "=" * 70)
    print("Example 2: Diagnostic Configuration")
    print("=" * 70)

    config = RuntimeConfig(
        namespace="wallet",
        library_path="/opt/wallet/libwallet.so",
        contract=ContractConfig(manifest_file="wallet-contract.yaml"),
        callbacks=CallbackConfig(log_dispatch=True),
        logging=LoggingConfig(level="debug", format="text"),
    )
    print(f"✅ Configuration for namespace '{config.namespace}' created")
    for warning in config.validate_configuration():
        print(f"⚠️  {warning}")


def example_3_files(workdir: Path):
    """Example 3: Saving and loading configuration files."""
    print("\n" + "=" * 70)
    print("Example 3: Configuration Files")
    print("=" * 70)

    for name in ("fireflyffi.yaml", "fireflyffi.toml", "fireflyffi.json"):
        path = workdir / name
        ConfigurationManager.create_default_config_file(path, format="auto")
        loaded = RuntimeConfig.from_file(path)
        print(f"✅ {name}: round trip {'ok' if loaded.model_dump() == RuntimeConfig().model_dump() else 'changed'}")

    print("\nYAML contents:")
    print((workdir / "fireflyffi.yaml").read_text())


def example_4_layering(workdir: Path):
    """Example 4: File settings overridden by environment variables."""
    print("\n" + "=" * 70)
    print("Example 4: File + Environment Layering")
    print("=" * 70)

    path = workdir / "layered.yaml"
    RuntimeConfig(namespace="wallet", logging=LoggingConfig(level="INFO")).to_file(path)

    os.environ["FIREFLYFFI_LOG_LEVEL"] = "DEBUG"
    os.environ["FIREFLYFFI_LOG_DISPATCH"] = "true"
    try:
        config = ConfigurationManager.load_config(path)
    finally:
        del os.environ["FIREFLYFFI_LOG_LEVEL"]
        del os.environ["FIREFLYFFI_LOG_DISPATCH"]

    print(f"  - Namespace (file):      {config.namespace}")
    print(f"  - Log level (env):       {config.logging.level}")
    print(f"  - Log dispatch (env):    {config.callbacks.log_dispatch}")


def main():
    print("🔥 FireflyFFI Configuration Examples")
    example_1_defaults()
    example_2_explicit()
    with tempfile.TemporaryDirectory() as tmp:
        example_3_files(Path(tmp))
        example_4_layering(Path(tmp))


if __name__ == "__main__":
    main()
