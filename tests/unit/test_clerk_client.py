"""
Tests for the Clerk client and session token verification.
"""

import json
import time

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwk, jwt

from shopcart.api.errors import AuthenticationError, UpstreamServiceError
from shopcart.clients import ClerkClient, ClerkUser

CLERK_USER = {
    "id": "user_123",
    "first_name": "Jane",
    "last_name": "Doe",
    "image_url": "https://img.clerk.test/jane.png",
    "primary_email_address_id": "idn_2",
    "email_addresses": [
        {"id": "idn_1", "email_address": "old@shop.test"},
        {"id": "idn_2", "email_address": "jane@shop.test"},
    ],
    "phone_numbers": [{"id": "phn_1", "phone_number": "+15550100"}],
    "created_at": 1700000000000,
    "public_metadata": {"tier": "gold"},
}


@pytest.fixture(scope="module")
def signing_key():
    """RSA key pair as (private PEM, public JWK with kid)."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()
    public_pem = private_key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()

    public_jwk = jwk.construct(public_pem, "RS256").to_dict()
    public_jwk["kid"] = "ins_key_1"
    return private_pem, public_jwk


def make_token(private_pem: str, kid: str = "ins_key_1", **claims) -> str:
    payload = {"sub": "user_123", "exp": int(time.time()) + 60, **claims}
    return jwt.encode(payload, private_pem, algorithm="RS256", headers={"kid": kid})


def jwks_client(public_jwk, **kwargs):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(200, json={"keys": [public_jwk]})

    return ClerkClient("sk_test", transport=httpx.MockTransport(handler), **kwargs), calls


def test_user_from_api_uses_primary_contact():
    user = ClerkUser.from_api(CLERK_USER)

    assert user.email == "jane@shop.test"
    assert user.phone == "+15550100"
    assert user.full_name == "Jane Doe"
    assert user.public_metadata == {"tier": "gold"}


def test_user_from_api_without_contacts():
    user = ClerkUser.from_api({"id": "user_9", "first_name": "Solo"})

    assert user.email is None
    assert user.phone is None
    assert user.full_name == "Solo"


@pytest.mark.asyncio
async def test_get_user_and_missing_user():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/users/user_123"):
            return httpx.Response(200, json=CLERK_USER)
        return httpx.Response(404, json={"errors": [{"code": "resource_not_found"}]})

    client = ClerkClient("sk_test", transport=httpx.MockTransport(handler))

    assert (await client.get_user("user_123")).email == "jane@shop.test"
    assert await client.get_user("user_missing") is None


@pytest.mark.asyncio
async def test_list_users_sends_paging_and_search():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(dict(request.url.params))
        return httpx.Response(200, json=[CLERK_USER])

    client = ClerkClient("sk_test", transport=httpx.MockTransport(handler))
    users = await client.list_users(limit=10, offset=20, query="jane")

    assert [u.id for u in users] == ["user_123"]
    assert seen == {"limit": "10", "offset": "20", "order_by": "-created_at", "query": "jane"}


@pytest.mark.asyncio
async def test_update_user_metadata_sends_only_given_parts():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=CLERK_USER)

    client = ClerkClient("sk_test", transport=httpx.MockTransport(handler))
    user = await client.update_user_metadata("user_123", public_metadata={"role": "employee"})

    assert user.id == "user_123"
    assert seen["method"] == "PATCH"
    assert seen["path"].endswith("/users/user_123/metadata")
    assert seen["body"] == {"public_metadata": {"role": "employee"}}


@pytest.mark.asyncio
async def test_server_error_becomes_upstream_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="unavailable")

    client = ClerkClient("sk_test", transport=httpx.MockTransport(handler))
    with pytest.raises(UpstreamServiceError):
        await client.get_user_count()


@pytest.mark.asyncio
async def test_verify_valid_token(signing_key):
    private_pem, public_jwk = signing_key
    client, calls = jwks_client(public_jwk)

    claims = await client.verify_session_token(make_token(private_pem, azp="http://shop.test"))

    assert claims["sub"] == "user_123"
    assert calls == ["/v1/jwks"]


@pytest.mark.asyncio
async def test_jwks_is_cached(signing_key):
    private_pem, public_jwk = signing_key
    client, calls = jwks_client(public_jwk)

    await client.verify_session_token(make_token(private_pem))
    await client.verify_session_token(make_token(private_pem))

    assert len(calls) == 1


@pytest.mark.asyncio
async def test_unknown_kid_refetches_then_fails(signing_key):
    private_pem, public_jwk = signing_key
    client, calls = jwks_client(public_jwk)

    with pytest.raises(AuthenticationError) as exc_info:
        await client.verify_session_token(make_token(private_pem, kid="rotated_key"))

    assert exc_info.value.message == "Invalid token: unknown signing key"
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_expired_token(signing_key):
    private_pem, public_jwk = signing_key
    client, _ = jwks_client(public_jwk)

    with pytest.raises(AuthenticationError) as exc_info:
        await client.verify_session_token(make_token(private_pem, exp=int(time.time()) - 120))

    assert exc_info.value.message == "Token has expired"
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_unauthorized_party_rejected(signing_key):
    private_pem, public_jwk = signing_key
    client, _ = jwks_client(public_jwk, authorized_parties=["https://shop.test"])

    with pytest.raises(AuthenticationError) as exc_info:
        await client.verify_session_token(make_token(private_pem, azp="https://evil.test"))

    assert exc_info.value.message == "Invalid token: unauthorized party"


@pytest.mark.asyncio
async def test_malformed_token():
    client = ClerkClient("sk_test", transport=httpx.MockTransport(lambda r: httpx.Response(500)))

    with pytest.raises(AuthenticationError):
        await client.verify_session_token("not-a-jwt")
