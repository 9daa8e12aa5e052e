"""Test fixtures for WasteNot."""

from tests.fixtures.mocks import (
    MockClaudeService,
    create_mock_with_error,
    create_mock_rejecting_photos,
)

__all__ = [
    "MockClaudeService",
    "create_mock_with_error",
    "create_mock_rejecting_photos",
]
