"""Run id generators for suitetree."""

import threading

from ulid import monotonic

from suitetree.interfaces.id_generator import IdGenerator

# pylint: disable=too-few-public-methods


class ULIDGenerator(IdGenerator):
    """Thread-safe monotonic ULID generator.

    ULIDs sort lexicographically by creation time, so run ids order the same
    way the runs were started. Uses the `ulid-py` library.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def new_id(self) -> str:
        """Generate a new ULID (serialized across threads)."""
        with self._lock:
            return str(monotonic.new())


class SimpleIdGenerator(IdGenerator):
    """Sequential, zero-padded ids for deterministic test output."""

    def __init__(self, length: int = 26) -> None:
        self._lock = threading.Lock()
        self._counter = 0
        self._length = length

    def new_id(self) -> str:
        """Generate the next identifier."""
        with self._lock:
            self._counter += 1
            return f"{self._counter:0{self._length}d}"
