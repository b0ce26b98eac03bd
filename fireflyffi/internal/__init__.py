"""
Internal primitives shared by the runtime components.

Copyright (c) 2025 Firefly Software Solutions Inc.
Licensed under the Apache License, Version 2.0 (the "License");
"""

from .atomic import AtomicFlag, AtomicInteger

__all__ = ["AtomicFlag", "AtomicInteger"]
