"""chatwire testing utilities for easier test authoring.

This package provides pytest fixtures, an in-memory transport, and custom
assertions to reduce boilerplate when testing code built on chatwire.

Modules:
    fixtures: Pytest fixtures (fake_transport, fast_config, recorder, connection)
              and the open_connection context manager.
    mocks: FakeTransport/FakeStream scripted server and RecordingHandlers.
    assertions: Custom assertions (assert_frame, assert_state,
              assert_close_info, assert_upgrade_request).

Example:
    >>> from chatwire.testing import FakeTransport, RecordingHandlers
    >>> from chatwire.testing.fixtures import open_connection
"""

from chatwire.testing.assertions import (
    assert_close_info,
    assert_frame,
    assert_state,
    assert_upgrade_request,
)
from chatwire.testing.mocks import FakeStream, FakeTransport, RecordingHandlers

__all__ = [
    "FakeStream",
    "FakeTransport",
    "RecordingHandlers",
    "assert_close_info",
    "assert_frame",
    "assert_state",
    "assert_upgrade_request",
]
