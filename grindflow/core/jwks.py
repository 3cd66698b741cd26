"""JWKS (JSON Web Key Set) client for Supabase token verification.

Supabase publishes its asymmetric signing keys at
``/auth/v1/.well-known/jwks.json``. Keys are cached for the configured TTL
and refetched once when an unknown key ID shows up, which covers rotation.
"""

import asyncio
from typing import Dict, List, Optional

import aiohttp
from pydantic import BaseModel

from grindflow.core.cache import TTLCache
from grindflow.core.config import settings
from grindflow.utils.logging import get_logger

LOGGER = get_logger(__name__)

_KEYS = "keys"


class JWKKey(BaseModel):
    """A single JSON Web Key. RSA keys carry n/e, EC keys carry crv/x/y."""

    kid: str
    kty: str
    alg: Optional[str] = None
    use: Optional[str] = None
    n: Optional[str] = None
    e: Optional[str] = None
    crv: Optional[str] = None
    x: Optional[str] = None
    y: Optional[str] = None


class JWKSResponse(BaseModel):
    keys: List[JWKKey]


class JWKSService:
    """Fetches and caches the project's signing keys."""

    def __init__(self, supabase_url: str, cache_ttl: int = 3600, timeout: int = 30):
        """Initialize JWKS service.

        Args:
            supabase_url: Supabase project URL
            cache_ttl: Cache time-to-live in seconds
            timeout: HTTP request timeout in seconds
        """
        self.jwks_url = f"{supabase_url.rstrip('/')}/auth/v1/.well-known/jwks.json"
        self.timeout = timeout
        self._cache = TTLCache(cache_ttl)
        self._lock = asyncio.Lock()

    async def get_keys(self, force_refresh: bool = False) -> Dict[str, JWKKey]:
        """Return the key set, fetching it when the cache is empty or stale.

        Raises:
            RuntimeError: If keys cannot be fetched
        """
        async with self._lock:
            keys = None if force_refresh else self._cache.get(_KEYS)
            if keys is None:
                keys = await self._fetch_keys()
                self._cache.set(_KEYS, keys)
            return dict(keys)

    async def get_key(self, kid: str) -> Optional[JWKKey]:
        """Look up a key by ID, refreshing once on a miss."""
        key = (await self.get_keys()).get(kid)
        if key is None:
            LOGGER.info(f"Key {kid} not in cached JWKS, refreshing")
            key = (await self.get_keys(force_refresh=True)).get(kid)
        return key

    async def _fetch_keys(self) -> Dict[str, JWKKey]:
        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
                async with session.get(self.jwks_url) as response:
                    if response.status != 200:
                        raise RuntimeError(f"JWKS endpoint returned {response.status}: {await response.text()}")
                    data = await response.json()

        except aiohttp.ClientError as e:
            LOGGER.error(f"Network error fetching JWKS: {e}")
            raise RuntimeError(f"Failed to fetch JWKS keys: {e}") from e

        keys = {key.kid: key for key in JWKSResponse(**data).keys}
        LOGGER.info(f"Fetched {len(keys)} JWKS keys")
        return keys


jwks_service = JWKSService(
    supabase_url=settings.supabase_url,
    cache_ttl=settings.supabase_jwks_cache_ttl,
    timeout=settings.http_timeout,
)
