"""Shared fixtures for Food Map tests."""

import pytest

from foodmap.config import Config
from foodmap.services import AuthPoller, ListingReader, SessionGate
from tests.fakes import FakeIdentityService, FakeRowStore


@pytest.fixture
def cfg():
    """Configuration with short polling budgets."""
    return Config(
        supabase_url="https://example.supabase.co",
        supabase_anon_key="anon-key",
        session_poll_interval_ms=10,
        session_confirm_timeout_ms=200,
        session_check_timeout_ms=50,
        sign_out_timeout_ms=100,
    )


@pytest.fixture
def identity_service():
    return FakeIdentityService()


@pytest.fixture
def store(identity_service):
    return FakeRowStore(identity_service)


@pytest.fixture
def alice(identity_service):
    return identity_service.register("alice@example.com")


@pytest.fixture
def bob(identity_service):
    return identity_service.register("bob@example.com")


@pytest.fixture
def gate(identity_service, cfg):
    return SessionGate(identity_service, cfg)


@pytest.fixture
def reader(store):
    return ListingReader(store)


@pytest.fixture
def navigations():
    """Routes passed to the navigate callback, in order."""
    return []


@pytest.fixture
def auth(identity_service, cfg, navigations):
    return AuthPoller(identity_service, cfg, navigate=navigations.append)
