"""Message catalog for registration diagnostics.

Front-ends pass a message key with every registration call; the engine renders
it when that registration turns out to be nested inside a running test.
"""

MESSAGES: dict[str, str] = {
    "test_inside_test": "A test clause may not appear inside another test clause.",
    "ignore_inside_test": "An ignore clause may not appear inside a test clause.",
    "describe_inside_test": "A describe clause may not appear inside a test clause.",
    "info_inside_test": "Registration-time info may not appear inside a test clause.",
}

REGISTRATION_CLOSED = "{kind} registration cannot appear after run has started."


def render(message_key: str) -> str:
    """Render ``message_key``; unknown keys are returned unchanged."""
    return MESSAGES.get(message_key, message_key)


def registration_closed(kind: str) -> str:
    """Message for a registration attempted after the run started."""
    return REGISTRATION_CLOSED.format(kind=kind.capitalize())
