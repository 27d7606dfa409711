"""Registry and engine error definitions.

All errors are raised synchronously from the registration or run call that
triggered them. Test body failures are never reported through these types; see
`suitetree.domain.outcomes` for those.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from suitetree.domain.nodes import SourceRef

# ============================================================================
#                           General engine errors
# ============================================================================


class EngineError(Exception):
    """Base class for suitetree engine errors.

    Attributes:
        location (SourceRef | None): Where the offending registration was made,
            when the front-end supplied it.
    """

    def __init__(self, message: str, location: SourceRef | None = None) -> None:
        if location is not None:
            message = f"{message} ({location})"
        super().__init__(message)
        self.location = location


# ============================================================================
#                           Registration errors
# ============================================================================


class DuplicateNameError(EngineError):
    """Raised when a composed test name is already registered.

    Attributes:
        test_name (str): The composed name that collided.
    """

    def __init__(self, test_name: str, location: SourceRef | None = None) -> None:
        super().__init__(f"Duplicate test name: '{test_name}'.", location)
        self.test_name = test_name


class IllegalNameError(EngineError):
    """Raised for structurally invalid test or branch text.

    Attributes:
        text (str): The rejected text.
        reason (str): Short explanation of why it was rejected.
    """

    def __init__(
        self, text: str, reason: str, location: SourceRef | None = None
    ) -> None:
        super().__init__(f"Illegal name {text!r}: {reason}.", location)
        self.text = text
        self.reason = reason


class RegistrationClosedError(EngineError):
    """Raised when registration is attempted after a run has started.

    The already-registered tree is left untouched.
    """


class ConcurrentRegistrationError(EngineError):
    """Raised when the snapshot publish detects a racing mutation.

    This always indicates a usage error in the host: a suite must only be
    mutated by the thread constructing it.

    Attributes:
        resource_name (str): Diagnostic name of the engine's shared cell.
        simple_class_name (str): Name of the suite style owning the engine.
    """

    def __init__(
        self,
        resource_name: str,
        simple_class_name: str,
        location: SourceRef | None = None,
    ) -> None:
        super().__init__(
            f"Two threads attempted to modify {simple_class_name}'s internal data "
            f"({resource_name}), which should only be modified by the thread that "
            "constructs the object.",
            location,
        )
        self.resource_name = resource_name
        self.simple_class_name = simple_class_name


# ============================================================================
#                           Run configuration errors
# ============================================================================


class TestNotFoundError(EngineError, LookupError):
    """Raised when a selected test name is not registered.

    Attributes:
        test_name (str): The requested name.
    """

    __test__ = False  # not a pytest test class

    def __init__(self, test_name: str) -> None:
        super().__init__(f"No test named '{test_name}' is registered.")
        self.test_name = test_name
