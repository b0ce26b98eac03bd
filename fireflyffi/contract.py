"""
Startup contract verification.

The bindings and the native library are generated from the same interface
definition. Before any data-plane call, the runtime compares the contract
version and the checksum of every exposed function, method and callback
against the values baked into the bindings; any difference means the two
sides were built from different definitions.

Native exports consulted::

    uint32_t ffi_<namespace>_uniffi_contract_version(void);
    uint16_t <checksum symbol>(void);          one per exposed item
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
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import toml
import yaml
from pydantic import BaseModel, Field, field_validator

from .errors import ChecksumMismatchError, ContractError, ContractVersionMismatch, MissingSymbolError

logger = logging.getLogger(__name__)


class ContractManifest(BaseModel):
    """Contract values the bindings were generated with."""

    namespace: str = Field(description="Interface namespace used in native symbol names")
    contract_version: int = Field(ge=0, le=2**32 - 1, description="Expected contract version")
    contract_version_symbol: Optional[str] = Field(
        default=None, description="Override for the contract version symbol name"
    )
    checksums: Dict[str, int] = Field(
        default_factory=dict, description="Checksum symbol name -> expected 16-bit checksum"
    )

    @field_validator("namespace")
    @classmethod
    def validate_namespace(cls, v):
        if not v or not v.replace("_", "").isalnum():
            raise ValueError("namespace must be a non-empty identifier")
        return v

    @field_validator("checksums")
    @classmethod
    def validate_checksums(cls, v):
        for symbol, checksum in v.items():
            if not 0 <= checksum <= 0xFFFF:
                raise ValueError(f"checksum for {symbol} must fit in 16 bits")
        return v

    @property
    def version_symbol(self) -> str:
        return self.contract_version_symbol or f"ffi_{self.namespace}_uniffi_contract_version"

    @classmethod
    def from_file(cls, manifest_path: Union[str, Path]) -> "ContractManifest":
        """Load a manifest from a YAML, JSON or TOML file."""
        path = Path(manifest_path)
        if not path.exists():
            raise FileNotFoundError(f"Contract manifest not found: {manifest_path}")

        content = path.read_text(encoding="utf-8")
        suffix = path.suffix.lower()
        try:
            if suffix in [".yml", ".yaml"]:
                data = yaml.safe_load(content)
            elif suffix == ".toml":
                data = toml.loads(content)
            else:
                data = json.loads(content)
        except (json.JSONDecodeError, yaml.YAMLError, toml.TomlDecodeError) as e:
            raise ValueError(f"Failed to parse contract manifest: {e}")

        return cls(**(data or {}))

    def to_file(self, manifest_path: Union[str, Path]) -> None:
        path = Path(manifest_path)
        data = self.model_dump(exclude_none=True)
        suffix = path.suffix.lower()
        if suffix in [".yml", ".yaml"]:
            content = yaml.dump(data, default_flow_style=False, sort_keys=False)
        elif suffix == ".toml":
            content = toml.dumps(data)
        else:
            content = json.dumps(data, indent=2)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


@dataclass
class ContractReport:
    """Outcome of one verification pass."""

    namespace: str
    contract_version: Optional[int] = None
    checked: List[str] = field(default_factory=list)
    mismatches: List[ContractError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.mismatches


def _bind(library: Any, symbol: str, restype: Any) -> Any:
    try:
        fn = getattr(library, symbol)
    except AttributeError:
        raise MissingSymbolError(symbol) from None
    fn.argtypes = []
    fn.restype = restype
    return fn


def read_contract_version(library: Any, manifest: ContractManifest) -> int:
    return int(_bind(library, manifest.version_symbol, ctypes.c_uint32)())


def read_checksum(library: Any, symbol: str) -> int:
    return int(_bind(library, symbol, ctypes.c_uint16)())


def verify_contract(library: Any, manifest: ContractManifest, fail_fast: bool = True) -> ContractReport:
    """
    Compare the native library against the manifest.

    With ``fail_fast`` (the default, and the only mode the runtime uses for
    data-plane startup) the first mismatch is raised. Otherwise every
    mismatch is collected in the report, which tooling can display.
    """
    report = ContractReport(namespace=manifest.namespace)

    def record(error: ContractError) -> None:
        if fail_fast:
            logger.error(f"Contract verification failed: {error}")
            raise error
        logger.warning(f"Contract verification: {error}")
        report.mismatches.append(error)

    try:
        actual_version = read_contract_version(library, manifest)
    except MissingSymbolError as e:
        record(e)
        return report

    report.contract_version = actual_version
    if actual_version != manifest.contract_version:
        record(ContractVersionMismatch(manifest.namespace, manifest.contract_version, actual_version))
        # Checksums are meaningless across contract versions
        return report

    for symbol, expected in manifest.checksums.items():
        try:
            actual = read_checksum(library, symbol)
        except MissingSymbolError as e:
            record(e)
            continue
        report.checked.append(symbol)
        if actual != expected:
            record(ChecksumMismatchError(symbol, expected, actual))

    if report.ok:
        logger.info(
            f"Contract verified for '{manifest.namespace}' "
            f"(version {actual_version}, {len(report.checked)} checksums)"
        )
    return report
