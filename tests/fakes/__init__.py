"""Test fake implementations for dependency injection testing."""

from tests.fakes.fake_playwright import FakePlaywright, FakePlaywrightFactory
from tests.fakes.fake_requests import FakeResponse, FakeSession, FakeSessionFactory

__all__ = [
    "FakePlaywright",
    "FakePlaywrightFactory",
    "FakeResponse",
    "FakeSession",
    "FakeSessionFactory",
]
