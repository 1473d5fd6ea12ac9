"""Shared pytest configuration for chatwire tests.

Fixtures from chatwire.testing.fixtures (fake_transport, fast_config,
recorder, connection) are loaded for every test module.
"""

from __future__ import annotations

import pytest

from chatwire.observability.logging import clear_context

# Load chatwire.testing fixtures (fake_transport, fast_config, recorder, connection)
pytest_plugins = ["chatwire.testing.fixtures"]


@pytest.fixture(autouse=True)
def _isolate_log_context() -> None:
    """Drop context variables bound by a previous test."""
    clear_context()
