"""Mock implementations for testing."""

from tests.mocks.providers import MockAIProvider, MockImageProvider

__all__ = ["MockAIProvider", "MockImageProvider"]
