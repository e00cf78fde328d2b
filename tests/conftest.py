"""
Shared pytest fixtures and configuration for rankbridge tests.

This module provides:
- Fake platform client / identity store fixtures (see tests/_support/fakes.py)
- Correlator, relay and lifecycle fixtures wired to the fakes
- Logging configured to return instead of print, so captured stdout stays clean
- Settings cache and global bus reset between tests

Usage:
    Fixtures are auto-discovered by pytest::

        async def test_something(platform, store, bus):
            ...
"""

import sys
from pathlib import Path
from typing import Generator

import pytest
import structlog

# Ensure rankbridge package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent.parent))

from rankbridge.bridge.correlator import RankRequestCorrelator
from rankbridge.bridge.lifecycle import FriendshipLifecycleManager
from rankbridge.bridge.relay import ExchangeRelay
from rankbridge.core.events import set_message_bus
from rankbridge.core.events.memory import InMemoryMessageBus
from rankbridge.core.settings import reset_settings
from tests._support.fakes import FakeIdentityStore, FakePlatformClient


# =============================================================================
# Test Markers / Session Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Route structlog output to ReturnLogger for the whole session."""
    structlog.configure(
        processors=[structlog.processors.KeyValueRenderer()],
        logger_factory=structlog.ReturnLoggerFactory(),
        cache_logger_on_first_use=False,
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if markers.intersection({"unit", "integration"}):
            continue
        if "test_service" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def clean_global_state(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Fresh settings and no global bus for each test; CLI must not reconfigure logging."""
    monkeypatch.setattr("rankbridge.core.logging.configure_logging", lambda **kwargs: None)
    reset_settings()
    set_message_bus(None)
    yield
    reset_settings()
    set_message_bus(None)


# =============================================================================
# Component Fixtures
# =============================================================================


@pytest.fixture
def platform() -> FakePlatformClient:
    return FakePlatformClient(own_global_id=76561198999999999)


@pytest.fixture
def store() -> FakeIdentityStore:
    return FakeIdentityStore()


@pytest.fixture
def bus() -> InMemoryMessageBus:
    return InMemoryMessageBus()


@pytest.fixture
def correlator(platform: FakePlatformClient) -> RankRequestCorrelator:
    corr = RankRequestCorrelator(platform, timeout=5.0)
    platform.on_profiles(corr.handle_profiles)
    return corr


@pytest.fixture
def relay(bus, store, correlator) -> ExchangeRelay:
    return ExchangeRelay(bus, store, correlator)


@pytest.fixture
def lifecycle(platform, store, correlator, relay) -> FriendshipLifecycleManager:
    manager = FriendshipLifecycleManager(platform, store, correlator, relay)
    platform.on_relationship(manager.handle_event)
    return manager
