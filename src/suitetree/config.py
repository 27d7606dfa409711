"""Configuration utilities for suitetree.

This module centralizes the engine's diagnostic names and the environment
variables it honours.
"""

import os
from dataclasses import dataclass

CAS_RETRIES_ENV_VAR = "SUITETREE_CAS_RETRIES"  # pragma: no mutate
DEFAULT_CAS_RETRY_LIMIT = 0


class InvalidConfigError(Exception):
    """Raised when an environment setting cannot be parsed."""


def get_cas_retry_limit() -> int:
    """Get the snapshot publish retry limit from the environment.

    Returns:
        The value of `SUITETREE_CAS_RETRIES`, or `DEFAULT_CAS_RETRY_LIMIT`
        when unset or empty.

    Raises:
        InvalidConfigError: If the value is not a non-negative integer.
    """
    if not (raw := os.environ.get(CAS_RETRIES_ENV_VAR, "").strip()):
        return DEFAULT_CAS_RETRY_LIMIT
    try:
        limit = int(raw)
    except ValueError as e:
        raise InvalidConfigError(
            f"{CAS_RETRIES_ENV_VAR} must be an integer, got {raw!r}"
        ) from e
    if limit < 0:
        raise InvalidConfigError(f"{CAS_RETRIES_ENV_VAR} must be >= 0, got {limit}")
    return limit


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Plain configuration values handed to an engine at construction.

    Attributes:
        concurrent_mod_resource_name: Names the engine's shared cell in
            concurrent-modification diagnostics.
        simple_class_name: Names the owning suite style in diagnostics.
        cas_retry_limit: How many times a failed snapshot publish is
            recomputed against the fresh snapshot before giving up.
    """

    concurrent_mod_resource_name: str = "concurrentSuiteMod"
    simple_class_name: str = "Suite"
    cas_retry_limit: int = DEFAULT_CAS_RETRY_LIMIT

    def __post_init__(self) -> None:
        if self.cas_retry_limit < 0:
            raise InvalidConfigError("cas_retry_limit must be >= 0")

    @classmethod
    def from_env(cls, simple_class_name: str = "Suite") -> "EngineConfig":
        """Build a config for ``simple_class_name`` honouring the environment."""
        return cls(
            concurrent_mod_resource_name=f"concurrent{simple_class_name}Mod",
            simple_class_name=simple_class_name,
            cas_retry_limit=get_cas_retry_limit(),
        )
