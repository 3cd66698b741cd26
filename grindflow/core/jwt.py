"""Supabase access token verification.

HS256 tokens are checked against the project's JWT secret; RS256 and
ES256 tokens against the matching key from the project's JWKS.
"""

import base64
from typing import Any, Dict

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from grindflow.core.config import settings
from grindflow.core.jwks import JWKKey, JWKSService, jwks_service
from grindflow.schemas.auth import JWTClaims
from grindflow.utils.logging import get_logger

LOGGER = get_logger(__name__)

AUDIENCE = "authenticated"
ASYMMETRIC_ALGORITHMS = ("RS256", "ES256")

_EC_CURVES = {
    "P-256": ec.SECP256R1,
    "P-384": ec.SECP384R1,
    "P-521": ec.SECP521R1,
}

_DECODE_OPTIONS = {
    "verify_exp": True,
    "verify_iat": True,
    "verify_iss": True,
    "require": ["sub", "exp", "iat", "iss"],
}


def base64url_to_int(value: str) -> int:
    """Decode an unpadded base64url JWK component into an integer."""
    padded = value + "=" * (-len(value) % 4)
    return int.from_bytes(base64.urlsafe_b64decode(padded), byteorder="big")


def jwk_to_pem(jwk_key: JWKKey) -> str:
    """Convert an RSA or EC JWK into a PEM public key for PyJWT.

    Raises:
        ValueError: If the key type or curve is unsupported or components are missing
    """
    if jwk_key.kty == "RSA":
        if not (jwk_key.n and jwk_key.e):
            raise ValueError("RSA key missing modulus or exponent")
        numbers = rsa.RSAPublicNumbers(base64url_to_int(jwk_key.e), base64url_to_int(jwk_key.n))
        public_key = numbers.public_key()

    elif jwk_key.kty == "EC":
        curve = _EC_CURVES.get(jwk_key.crv or "")
        if curve is None:
            raise ValueError(f"Unsupported curve: {jwk_key.crv}")
        if not (jwk_key.x and jwk_key.y):
            raise ValueError("EC key missing coordinates")
        numbers = ec.EllipticCurvePublicNumbers(
            x=base64url_to_int(jwk_key.x),
            y=base64url_to_int(jwk_key.y),
            curve=curve(),
        )
        public_key = numbers.public_key()

    else:
        raise ValueError(f"Unsupported key type: {jwk_key.kty}")

    pem = public_key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return pem.decode("utf-8")


class JWTVerifier:
    """Verifies Supabase access tokens and returns their claims."""

    def __init__(self, supabase_url: str, jwt_secret: str = "", jwks: JWKSService = jwks_service):
        """Initialize JWT verifier.

        Args:
            supabase_url: Supabase project URL for issuer validation
            jwt_secret: Supabase JWT secret for HS256 verification
            jwks: Key set client for asymmetric tokens
        """
        self.expected_issuer = f"{supabase_url.rstrip('/')}/auth/v1"
        self.jwt_secret = jwt_secret
        self.jwks = jwks

    async def _resolve_key(self, token: str) -> tuple:
        header = jwt.get_unverified_header(token)
        alg = header.get("alg")

        if alg == "HS256":
            if not self.jwt_secret:
                raise jwt.InvalidTokenError("HS256 token received but SUPABASE_JWT_SECRET is not configured")
            return self.jwt_secret, ["HS256"]

        if alg in ASYMMETRIC_ALGORITHMS:
            kid = header.get("kid")
            if not kid:
                raise jwt.InvalidTokenError("JWT header missing 'kid' (key ID)")
            jwk_key = await self.jwks.get_key(kid)
            if jwk_key is None:
                raise jwt.InvalidTokenError(f"No matching key found for kid: {kid}")
            return jwk_to_pem(jwk_key), [alg]

        raise jwt.InvalidTokenError(f"Unsupported algorithm: {alg}")

    async def verify_token(self, token: str) -> JWTClaims:
        """Verify and decode a Supabase access token.

        Args:
            token: JWT access token from the Authorization header

        Returns:
            Decoded and validated claims

        Raises:
            jwt.InvalidTokenError: If the token is invalid, expired or cannot be checked
        """
        try:
            key, algorithms = await self._resolve_key(token)
            payload: Dict[str, Any] = jwt.decode(
                token,
                key,
                algorithms=algorithms,
                audience=AUDIENCE,
                issuer=self.expected_issuer,
                options=_DECODE_OPTIONS,
            )
            return JWTClaims(**payload)

        except jwt.ExpiredSignatureError as e:
            raise jwt.InvalidTokenError("Token has expired") from e
        except jwt.InvalidIssuerError as e:
            raise jwt.InvalidTokenError("Invalid token issuer") from e
        except jwt.InvalidTokenError:
            raise
        except (ValueError, RuntimeError) as e:
            LOGGER.error(f"Token verification failed: {e}")
            raise jwt.InvalidTokenError("Token verification failed") from e


jwt_verifier = JWTVerifier(
    supabase_url=settings.supabase_url,
    jwt_secret=settings.supabase_jwt_secret,
)
