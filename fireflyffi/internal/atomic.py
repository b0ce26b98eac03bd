"""
Compare-and-swap primitives.

CPython exposes no user-level atomic instructions, so each cell pairs its
value with a private lock that is held for the single compare-exchange step
and nothing else. Callers build their state machines as CAS loops on top,
so no lock is ever held across a native call.
"""

"""
Copyright (c) 2025 Firefly Software Solutions Inc.
Licensed under the Apache License, Version 2.0.
"""

import threading


class AtomicInteger:
    __slots__ = ("_value", "_lock")

    def __init__(self, value: int = 0):
        self._value = value
        self._lock = threading.Lock()

    def load(self) -> int:
        return self._value

    def compare_and_swap(self, expected: int, new: int) -> bool:
        with self._lock:
            if self._value != expected:
                return False
            self._value = new
            return True

    def fetch_sub(self, amount: int = 1) -> int:
        """Subtract and return the previous value."""
        while True:
            current = self._value
            if self.compare_and_swap(current, current - amount):
                return current

    def __repr__(self) -> str:
        return f"AtomicInteger({self._value})"


class AtomicFlag:
    __slots__ = ("_set", "_lock")

    def __init__(self):
        self._set = False
        self._lock = threading.Lock()

    def is_set(self) -> bool:
        return self._set

    def test_and_set(self) -> bool:
        """Set the flag; True only for the one caller that flipped it."""
        with self._lock:
            if self._set:
                return False
            self._set = True
            return True
