"""Interface for run id generators."""

import abc

# pylint: disable=too-few-public-methods


class IdGenerator(abc.ABC):
    """Contract for a generator of run identifiers.

    Every `Suite.run` stamps its events with one id from this generator, so
    hosts can tell interleaved runs apart.
    """

    @abc.abstractmethod
    def new_id(self) -> str:
        """Generate a new unique identifier."""
