"""
Pytest configuration for service unit tests.

These tests exercise provider clients and helpers with fakes and mock
transports; they don't need the database.
"""

import pytest


# Override the autouse database fixture from the parent conftest
@pytest.fixture(autouse=True)
async def setup_database():
    """No-op database setup for unit tests."""
    yield
