#!/usr/bin/env python3
"""
Unit tests for startup contract verification.
"""

"""
Copyright (c) 2025 Firefly Software Solutions Inc.
Licensed under the Apache License, Version 2.0 (the "License");
"""

import ctypes
import logging

import pytest
import yaml
from pydantic import ValidationError

from conftest import FakeLibrary
from fireflyffi.contract import ContractManifest, read_checksum, read_contract_version, verify_contract
from fireflyffi.errors import (
    ChecksumMismatchError,
    ContractError,
    ContractVersionMismatch,
    MissingSymbolError,
)


class TestContractManifest:
    """Test manifest validation and persistence."""

    def test_default_version_symbol(self, manifest):
        """Test the version symbol is derived from the namespace."""
        assert manifest.version_symbol == "ffi_wallet_uniffi_contract_version"

    def test_version_symbol_override(self):
        """Test an explicit version symbol takes precedence."""
        manifest = ContractManifest(
            namespace="wallet", contract_version=1, contract_version_symbol="wallet_abi_version"
        )
        assert manifest.version_symbol == "wallet_abi_version"

    def test_invalid_values(self):
        """Test namespace and checksum validation."""
        with pytest.raises(ValidationError):
            ContractManifest(namespace="", contract_version=1)
        with pytest.raises(ValidationError):
            ContractManifest(namespace="bad-name", contract_version=1)
        with pytest.raises(ValidationError):
            ContractManifest(namespace="wallet", contract_version=-1)
        with pytest.raises(ValidationError, match="16 bits"):
            ContractManifest(namespace="wallet", contract_version=1, checksums={"sym": 70000})

    @pytest.mark.parametrize("suffix", [".yaml", ".json", ".toml"])
    def test_file_round_trip(self, tmp_path, manifest, suffix):
        """Test manifests save and load in every supported format."""
        path = tmp_path / f"contract{suffix}"
        manifest.to_file(path)
        assert ContractManifest.from_file(path) == manifest

    def test_load_yaml(self, tmp_path):
        """Test loading a hand-written YAML manifest."""
        path = tmp_path / "contract.yml"
        path.write_text(
            yaml.dump(
                {
                    "namespace": "ledger",
                    "contract_version": 29,
                    "checksums": {"uniffi_ledger_checksum_func_open": 1},
                }
            )
        )
        manifest = ContractManifest.from_file(path)
        assert manifest.namespace == "ledger"
        assert manifest.checksums == {"uniffi_ledger_checksum_func_open": 1}

    def test_missing_and_malformed_files(self, tmp_path):
        """Test missing files and parse errors are reported."""
        with pytest.raises(FileNotFoundError):
            ContractManifest.from_file(tmp_path / "absent.json")

        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(ValueError, match="Failed to parse"):
            ContractManifest.from_file(path)


class TestReadSymbols:
    """Test reading contract values from the library."""

    def test_binds_return_types(self):
        """Test version and checksum functions are bound with their C return types."""
        library = FakeLibrary(
            ffi_wallet_uniffi_contract_version=FakeLibrary.returning(26),
            checksum_a=FakeLibrary.returning(9),
        )
        manifest = ContractManifest(namespace="wallet", contract_version=26)

        assert read_contract_version(library, manifest) == 26
        assert library.ffi_wallet_uniffi_contract_version.restype is ctypes.c_uint32
        assert read_checksum(library, "checksum_a") == 9
        assert library.checksum_a.restype is ctypes.c_uint16
        assert library.checksum_a.argtypes == []

    def test_missing_symbol(self):
        """Test a missing export raises MissingSymbolError."""
        with pytest.raises(MissingSymbolError, match="checksum_b"):
            read_checksum(FakeLibrary(), "checksum_b")


class TestVerifyContract:
    """Test verification outcomes."""

    def test_matching_library(self, matching_library, manifest, caplog):
        """Test a matching library passes and every checksum is checked."""
        with caplog.at_level(logging.INFO, logger="fireflyffi"):
            report = verify_contract(matching_library, manifest)

        assert report.ok
        assert report.contract_version == 26
        assert sorted(report.checked) == sorted(manifest.checksums)
        assert "Contract verified" in caplog.text

    def test_version_mismatch(self, matching_library, manifest):
        """Test a different contract version is fatal."""
        matching_library.ffi_wallet_uniffi_contract_version = FakeLibrary.returning(25)

        with pytest.raises(ContractVersionMismatch) as exc_info:
            verify_contract(matching_library, manifest)
        assert exc_info.value.expected == 26
        assert exc_info.value.actual == 25

    def test_checksum_mismatch(self, matching_library, manifest):
        """Test a single differing checksum is fatal."""
        matching_library.uniffi_wallet_checksum_method_wallet_balance = FakeLibrary.returning(872)

        with pytest.raises(ChecksumMismatchError) as exc_info:
            verify_contract(matching_library, manifest)
        assert exc_info.value.symbol == "uniffi_wallet_checksum_method_wallet_balance"

    def test_missing_checksum_symbol(self, matching_library, manifest):
        """Test an item missing from the library is fatal."""
        del matching_library.uniffi_wallet_checksum_func_open_wallet

        with pytest.raises(MissingSymbolError):
            verify_contract(matching_library, manifest)

    def test_collect_all_mismatches(self, manifest):
        """Test the non-fail-fast mode reports every problem."""
        library = FakeLibrary(
            ffi_wallet_uniffi_contract_version=FakeLibrary.returning(26),
            uniffi_wallet_checksum_method_wallet_balance=FakeLibrary.returning(1),
        )
        report = verify_contract(library, manifest, fail_fast=False)

        assert not report.ok
        assert len(report.mismatches) == 2
        assert all(isinstance(m, ContractError) for m in report.mismatches)
        assert {type(m) for m in report.mismatches} == {MissingSymbolError, ChecksumMismatchError}

    def test_version_mismatch_skips_checksums(self, manifest):
        """Test checksums are not compared across contract versions."""
        library = FakeLibrary(ffi_wallet_uniffi_contract_version=FakeLibrary.returning(1))
        report = verify_contract(library, manifest, fail_fast=False)

        assert [type(m) for m in report.mismatches] == [ContractVersionMismatch]
        assert report.checked == []
