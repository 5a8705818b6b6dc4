"""Top-level pytest configuration for fixture module registration.

This file centralizes `pytest_plugins` to comply with pytest's requirement
that plugin declarations live in a top-level conftest located at the rootdir.
"""

pytest_plugins = [
    "tests.fixtures.engine",
]
