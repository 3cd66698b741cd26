"""Tests for Supabase token verification."""

import base64
import time
from unittest.mock import AsyncMock

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import ec

from grindflow.core.jwks import JWKKey
from grindflow.core.jwt import JWTVerifier, jwk_to_pem

SUPABASE_URL = "https://project.supabase.co"
SECRET = "super-secret-jwt-key-for-tests-only"


def _b64url(number: int, length: int) -> str:
    return base64.urlsafe_b64encode(number.to_bytes(length, "big")).rstrip(b"=").decode()


def _claims(**overrides):
    now = int(time.time())
    claims = {
        "sub": "user-123",
        "email": "student@example.com",
        "role": "authenticated",
        "aud": "authenticated",
        "iss": f"{SUPABASE_URL}/auth/v1",
        "iat": now,
        "exp": now + 3600,
    }
    claims.update(overrides)
    return claims


@pytest.fixture
def jwks():
    return AsyncMock()


@pytest.fixture
def verifier(jwks):
    return JWTVerifier(SUPABASE_URL, SECRET, jwks=jwks)


@pytest.mark.asyncio
async def test_hs256_token(verifier):
    token = jwt.encode(_claims(), SECRET, algorithm="HS256")

    claims = await verifier.verify_token(token)

    assert claims.sub == "user-123"
    assert claims.email == "student@example.com"


@pytest.mark.asyncio
async def test_expired_token(verifier):
    token = jwt.encode(_claims(exp=int(time.time()) - 10), SECRET, algorithm="HS256")

    with pytest.raises(jwt.InvalidTokenError, match="expired"):
        await verifier.verify_token(token)


@pytest.mark.asyncio
async def test_wrong_issuer(verifier):
    token = jwt.encode(_claims(iss="https://other.supabase.co/auth/v1"), SECRET, algorithm="HS256")

    with pytest.raises(jwt.InvalidTokenError):
        await verifier.verify_token(token)


@pytest.mark.asyncio
async def test_wrong_secret(verifier):
    token = jwt.encode(_claims(), "a-different-secret-of-enough-length", algorithm="HS256")

    with pytest.raises(jwt.InvalidTokenError):
        await verifier.verify_token(token)


@pytest.mark.asyncio
async def test_hs256_without_configured_secret(jwks):
    verifier = JWTVerifier(SUPABASE_URL, "", jwks=jwks)
    token = jwt.encode(_claims(), SECRET, algorithm="HS256")

    with pytest.raises(jwt.InvalidTokenError):
        await verifier.verify_token(token)


@pytest.mark.asyncio
async def test_es256_token_verified_with_jwks_key(verifier, jwks):
    private_key = ec.generate_private_key(ec.SECP256R1())
    numbers = private_key.public_key().public_numbers()
    jwks.get_key.return_value = JWKKey(
        kid="key-1", kty="EC", alg="ES256", crv="P-256",
        x=_b64url(numbers.x, 32), y=_b64url(numbers.y, 32),
    )
    token = jwt.encode(_claims(), private_key, algorithm="ES256", headers={"kid": "key-1"})

    claims = await verifier.verify_token(token)

    assert claims.sub == "user-123"
    jwks.get_key.assert_awaited_once_with("key-1")


@pytest.mark.asyncio
async def test_unknown_kid(verifier, jwks):
    private_key = ec.generate_private_key(ec.SECP256R1())
    jwks.get_key.return_value = None
    token = jwt.encode(_claims(), private_key, algorithm="ES256", headers={"kid": "missing"})

    with pytest.raises(jwt.InvalidTokenError, match="No matching key"):
        await verifier.verify_token(token)


def test_jwk_to_pem_rejects_unknown_key_type():
    with pytest.raises(ValueError, match="Unsupported key type"):
        jwk_to_pem(JWKKey(kid="k", kty="oct"))
