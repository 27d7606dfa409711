"""Global pytest fixtures for suitetree."""

pytest_plugins = [
    "tests.fixtures.suites",
]
