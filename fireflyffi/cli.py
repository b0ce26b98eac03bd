#!/usr/bin/env python3
"""
Command-line interface for FireflyFFI.

Provides utilities for creating configuration files, inspecting contract
manifests and checking a built native library against its bindings.

Copyright 2025 Firefly Software Solutions Inc
Licensed under the Apache License, Version 2.0
"""

import argparse
import ctypes
import sys
from typing import List, Optional

from fireflyffi import __version__
from fireflyffi.config.runtime_config import ConfigurationManager, LoggingConfig, RuntimeConfig
from fireflyffi.contract import ContractManifest, verify_contract
from fireflyffi.errors import ContractError
from fireflyffi.logging import setup_fireflyffi_logging


def print_firefly_banner() -> None:
    """Print the Firefly ASCII art banner."""
    banner = r"""
  _____.__                _____.__
_/ ____\__|______   _____/ ____\  | ___.__.
\   __\|  \_  __ \_/ __ \   __\|  |<   |  |
 |  |  |  ||  | \/\  ___/|  |  |  |_\___  |
 |__|  |__||__|    \___  >__|  |____/ ____|
                       \/           \/
:: fireflyffi ::

Foreign-function runtime for Firefly native bindings

Copyright © 2025 Firefly Software Solutions Inc
Licensed under Apache License 2.0
    """
    print(banner)


def load_cli_config(
    config_file: Optional[str] = None,
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
) -> RuntimeConfig:
    """
    Build the CLI configuration.

    Quiet text logging is the base, the configuration file (and environment)
    is layered over it, and explicit command-line flags win over both.
    """
    defaults = RuntimeConfig(logging=LoggingConfig(level="WARNING", format="text"))
    file_config = ConfigurationManager.load_config(config_file)

    flags = {}
    if log_level:
        flags["level"] = log_level
    if log_format:
        flags["format"] = log_format
    overrides = RuntimeConfig(logging=LoggingConfig(**flags))

    return ConfigurationManager.merge_configs(defaults, file_config, overrides)


def setup_logging(config: RuntimeConfig) -> None:
    """Configure logging for the CLI from the resolved configuration."""
    setup_fireflyffi_logging(config)


def create_sample_config(output_path: str) -> None:
    """Create a sample configuration file."""
    ConfigurationManager.create_default_config_file(output_path, format="auto")
    print(f"Sample configuration written to {output_path}")


def show_contract(manifest_path: str) -> None:
    """Print the contract values recorded in a manifest."""
    manifest = ContractManifest.from_file(manifest_path)

    print(f"Namespace:        {manifest.namespace}")
    print(f"Contract version: {manifest.contract_version}")
    print(f"Version symbol:   {manifest.version_symbol}")
    print(f"Checksums:        {len(manifest.checksums)}")
    for symbol, checksum in sorted(manifest.checksums.items()):
        print(f"  {symbol:<60} {checksum:5d}")


def verify_library(library_path: str, manifest_path: str, fail_fast: bool = False) -> bool:
    """Check a native library against a manifest and print the outcome."""
    manifest = ContractManifest.from_file(manifest_path)
    library = ctypes.CDLL(library_path)

    try:
        report = verify_contract(library, manifest, fail_fast=fail_fast)
    except ContractError as e:
        print(f"❌ {e}")
        return False

    for mismatch in report.mismatches:
        print(f"❌ {mismatch}")

    if report.ok:
        print(
            f"✅ {library_path} matches contract '{manifest.namespace}' "
            f"(version {report.contract_version}, {len(report.checked)} checksums)"
        )
    else:
        print(f"\n{len(report.mismatches)} mismatch(es) found")
    return report.ok


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="fireflyffi",
        description="FireflyFFI - foreign-function runtime tooling",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  fireflyffi init-config fireflyffi.yaml                     # Create sample config
  fireflyffi show-contract contract.yaml                     # Show manifest contents
  fireflyffi verify --library libwallet.so --contract contract.yaml
  fireflyffi --config fireflyffi.yaml verify                 # Use configured paths
        """,
    )

    parser.add_argument("--version", action="version", version=f"fireflyffi {__version__}")

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (overrides the configuration file; default WARNING)",
    )

    parser.add_argument(
        "--log-format",
        choices=["json", "text"],
        help="Set log output format (overrides the configuration file; default text)",
    )

    parser.add_argument("--config", help="Runtime configuration file (YAML, JSON or TOML)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    init_parser = subparsers.add_parser("init-config", help="Create sample configuration file")
    init_parser.add_argument("output", help="Output configuration file path")

    show_parser = subparsers.add_parser("show-contract", help="Show a contract manifest")
    show_parser.add_argument("manifest", help="Contract manifest file")

    verify_parser = subparsers.add_parser(
        "verify", help="Verify a native library against a contract manifest"
    )
    verify_parser.add_argument("--library", help="Path to the native library")
    verify_parser.add_argument("--contract", help="Contract manifest file")
    verify_parser.add_argument(
        "--all", action="store_true", help="Report every mismatch instead of stopping at the first"
    )

    args = parser.parse_args(argv)

    try:
        config = load_cli_config(args.config, args.log_level, args.log_format)
    except ValueError as e:
        print(f"❌ Invalid configuration: {e}")
        sys.exit(1)

    setup_logging(config)

    if args.command == "init-config":
        create_sample_config(args.output)

    elif args.command == "show-contract":
        try:
            show_contract(args.manifest)
        except (FileNotFoundError, ValueError) as e:
            print(f"❌ {e}")
            sys.exit(1)

    elif args.command == "verify":
        library_path = args.library or config.library_path
        manifest_path = args.contract or config.contract.manifest_file
        if not library_path or not manifest_path:
            print("❌ Both a library (--library) and a contract manifest (--contract) are required")
            sys.exit(1)

        try:
            ok = verify_library(library_path, manifest_path, fail_fast=not args.all)
        except (OSError, ValueError) as e:
            print(f"❌ {e}")
            sys.exit(1)
        if not ok:
            sys.exit(1)

    elif args.command is None:
        print_firefly_banner()
        parser.print_help()
        sys.exit(1)

    else:
        print(f"Unknown command: {args.command}")
        sys.exit(1)


if __name__ == "__main__":
    main()
