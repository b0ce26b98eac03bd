"""
Configuration module for fireflyffi.

Copyright (c) 2025 Firefly Software Solutions Inc.
Licensed under the Apache License, Version 2.0 (the "License");
"""

from .runtime_config import (
    CallbackConfig,
    ConfigurationManager,
    ContractConfig,
    LoggingConfig,
    RuntimeConfig,
)

__all__ = [
    "RuntimeConfig",
    "ContractConfig",
    "CallbackConfig",
    "LoggingConfig",
    "ConfigurationManager",
]
