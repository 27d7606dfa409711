"""A single mutable cell replaced atomically."""

import threading
from typing import Generic, TypeVar

T = TypeVar("T")

# pylint: disable=too-few-public-methods


class AtomicReference(Generic[T]):
    """Reference cell with compare-and-set on object identity.

    Writes go through a lock, so every value published by one thread is fully
    visible to any thread that later reads it.
    """

    def __init__(self, value: T) -> None:
        self._lock = threading.Lock()
        self._value = value

    def get(self) -> T:
        """Return the current value."""
        with self._lock:
            return self._value

    def compare_and_set(self, expected: T, new: T) -> bool:
        """Install ``new`` only if the current value is ``expected``.

        Returns:
            bool: True if ``new`` was installed.
        """
        with self._lock:
            if self._value is not expected:
                return False
            self._value = new
            return True
