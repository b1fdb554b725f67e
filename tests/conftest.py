"""
Pytest configuration and shared fixtures
"""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shopcart.api.config import reset_settings
from shopcart.api.dependencies import reset_clients
from shopcart.api.middleware.timing import get_latency_tracker
from shopcart.clients import ClerkClient, ClerkUser, SanityClient, StripeClient

ADMIN_EMAIL = "admin@shop.test"

POINTS_ENV = (
    "REWARD_POINTS_THRESHOLD",
    "REWARD_POINTS_AMOUNT",
    "LOYALTY_POINTS_ORDER_THRESHOLD",
    "LOYALTY_POINTS_AMOUNT",
)


@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    """Deterministic settings and fresh singletons for every test."""
    monkeypatch.setenv("ADMIN_EMAILS", ADMIN_EMAIL)
    monkeypatch.setenv("API_ENABLE_CACHE", "false")
    monkeypatch.setenv("BASE_URL", "http://shop.test")
    monkeypatch.setenv("SITE_URL", "https://shop.test")
    for name in POINTS_ENV:
        monkeypatch.delenv(name, raising=False)

    reset_settings()
    reset_clients()
    get_latency_tracker().reset()
    yield
    reset_settings()
    reset_clients()


@pytest.fixture
def sanity():
    """SanityClient double; ``create`` echoes the document back with an id."""
    client = MagicMock(spec=SanityClient)
    client.fetch = AsyncMock(return_value=None)
    client.create = AsyncMock(side_effect=lambda document: {"_id": "doc-1", **document})
    client.patch = AsyncMock(side_effect=lambda document_id, **ops: {"_id": document_id, **(ops.get("set") or {})})
    client.delete = AsyncMock(return_value=None)
    client.transaction = AsyncMock(return_value=[])
    client.mutate = AsyncMock(return_value=[])
    client.ping = AsyncMock(return_value=True)
    return client


@pytest.fixture
def clerk():
    client = MagicMock(spec=ClerkClient)
    client.get_user = AsyncMock(return_value=None)
    client.list_users = AsyncMock(return_value=[])
    client.get_user_count = AsyncMock(return_value=0)
    return client


@pytest.fixture
def stripe():
    client = MagicMock(spec=StripeClient)
    client.create_checkout_session = AsyncMock(
        return_value={"id": "cs_test_1", "url": "https://checkout.stripe.test/cs_test_1"}
    )
    client.retrieve_checkout_session = AsyncMock(return_value={})
    client.find_or_create_customer = AsyncMock(return_value={"id": "cus_1"})
    return client


@pytest.fixture
def customer():
    return ClerkUser(
        id="user_customer",
        email="jane@shop.test",
        first_name="Jane",
        last_name="Doe",
        phone="+15550100",
    )


@pytest.fixture
def admin_user():
    return ClerkUser(id="user_admin", email=ADMIN_EMAIL, first_name="Ada", last_name="Admin")


def queries(mapping, default=None):
    """
    ``fetch`` side effect answering by query fragment.

    The first key found in the query text wins; unmatched queries return
    ``default``.
    """

    def fetch(query, params=None):
        for fragment, result in mapping.items():
            if fragment in query:
                return result(params) if callable(result) else result
        return default

    return fetch


@pytest.fixture
def answer():
    """Build ``fetch`` side effects; see ``queries``."""
    return queries
