"""
OAuth2 client-credentials token cache for the Lantmäteriet APIs.

One TokenCache instance holds at most one bearer token. It is handed to the
services that need it, so tests can build isolated caches.
"""

import asyncio
import logging
import os
import time
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from errors import AuthenticationError, ConfigurationError, UpstreamApiError


logger = logging.getLogger(__name__)

API_BASE_URL = os.getenv("LANTMATERIET_API_URL", "https://api.lantmateriet.se")
TOKEN_URL = f"{API_BASE_URL}/token"

# Refresh 5 minutes before the token actually expires
TOKEN_REFRESH_MARGIN_SECONDS = 5 * 60


@dataclass(frozen=True)
class CachedToken:
    access_token: str
    expires_at: float


class TokenCache:
    """Single-entry access token cache, refreshed ahead of expiry"""

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        token_url: str = TOKEN_URL,
        clock: Callable[[], float] = time.time,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = token_url
        self._clock = clock
        self._cached: Optional[CachedToken] = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_env(cls) -> "TokenCache":
        """Build a cache from LANTMATERIET_CONSUMER_KEY / LANTMATERIET_CONSUMER_SECRET."""
        return cls(
            client_id=os.getenv("LANTMATERIET_CONSUMER_KEY"),
            client_secret=os.getenv("LANTMATERIET_CONSUMER_SECRET"),
        )

    def has_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def _is_valid(self) -> bool:
        if self._cached is None:
            return False
        return self._clock() < self._cached.expires_at - TOKEN_REFRESH_MARGIN_SECONDS

    async def get_token(self, client: httpx.AsyncClient) -> str:
        """
        Return a valid access token, exchanging credentials only when needed.

        Concurrent callers share a single refresh: the lock is taken before
        the exchange and the cache is checked again once it is held.

        Raises:
            ConfigurationError: credentials are not configured (no request is made)
            UpstreamApiError: the token endpoint answered with a non-success status
            AuthenticationError: the token endpoint answered with an unusable body
        """
        if self._is_valid():
            return self._cached.access_token

        if not self.has_credentials():
            raise ConfigurationError(
                "LANTMATERIET_CONSUMER_KEY and LANTMATERIET_CONSUMER_SECRET environment variables are required",
                "LANTMATERIET_CONSUMER_KEY, LANTMATERIET_CONSUMER_SECRET",
            )

        async with self._lock:
            if self._is_valid():
                return self._cached.access_token
            self._cached = await self._fetch_new_token(client)
            return self._cached.access_token

    async def _fetch_new_token(self, client: httpx.AsyncClient) -> CachedToken:
        logger.info("Requesting new Lantmäteriet access token")
        response = await client.post(
            self.token_url,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            data={
                "grant_type": "client_credentials",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
        )

        if not response.is_success:
            logger.warning("Token request failed with HTTP %s", response.status_code)
            raise UpstreamApiError(
                "Authentication with the data service failed. This may be a temporary issue, try again.",
                response.status_code,
                "Lantmäteriet OAuth2",
            )

        try:
            data = response.json()
            access_token = data["access_token"]
            expires_in = float(data["expires_in"])
        except (ValueError, KeyError, TypeError) as exc:
            raise AuthenticationError(f"Malformed token response from Lantmäteriet OAuth2: {exc}") from exc

        if not isinstance(access_token, str) or not access_token:
            raise AuthenticationError("Token response from Lantmäteriet OAuth2 has an empty access_token")

        logger.debug("Access token valid for %s seconds", expires_in)
        return CachedToken(access_token=access_token, expires_at=self._clock() + expires_in)

    def invalidate(self) -> None:
        """Drop the cached token; the next get_token() fetches a new one."""
        self._cached = None
