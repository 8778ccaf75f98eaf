"""
InvertirOnline bearer-token provider.

The token cache is an explicit object owned by one AuthProvider:
created empty, filled on the first password grant, refreshed with the
refresh token once the access token expires, and reset when a refresh fails
(the provider then falls back to a fresh password grant).

Environment:
    IOL_USERNAME, IOL_PASSWORD  credentials for the password grant
    IOL_BASE_URL                API root (default https://api.invertironline.com)
"""
import asyncio
import logging
import os
import time
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

import httpx

from ..errors import FinratesError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.invertironline.com"
DEFAULT_TIMEOUT = 30.0


class BrokerError(FinratesError):
    """Any failure talking to the broker API."""


class AuthError(BrokerError):
    pass


def base_url_from_env(environ: Optional[Mapping[str, str]] = None) -> str:
    env = os.environ if environ is None else environ
    return (env.get("IOL_BASE_URL") or DEFAULT_BASE_URL).rstrip("/")


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Credentials":
        env = os.environ if environ is None else environ
        username = env.get("IOL_USERNAME")
        password = env.get("IOL_PASSWORD")
        if not username or not password:
            raise AuthError("IOL_USERNAME and IOL_PASSWORD must be set")
        return cls(username, password)


@dataclass
class TokenCache:
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[float] = None  # epoch seconds

    def is_valid(self, now: float) -> bool:
        return bool(self.access_token) and self.expires_at is not None and now < self.expires_at

    def store(self, payload: Mapping, now: float) -> str:
        """Fill the cache from a /token response body; returns the access token."""
        try:
            access = str(payload["access_token"])
            expires_in = float(payload["expires_in"])
        except (KeyError, TypeError, ValueError) as e:
            raise AuthError(f"Malformed token response: {e}") from e
        self.access_token = access
        self.refresh_token = payload.get("refresh_token")
        self.expires_at = now + expires_in
        return access

    def reset(self) -> None:
        self.access_token = None
        self.refresh_token = None
        self.expires_at = None


class AuthProvider:
    """
    Supplies a valid bearer token.

    Args:
        credentials: username/password; read from the environment on first use if omitted
        cache: token state to use (a fresh empty TokenCache by default)
        client: shared httpx.AsyncClient; a short-lived one is opened per request if omitted
        base_url: API root (IOL_BASE_URL or the public endpoint by default)
        clock: epoch-seconds source, injectable for tests
    """

    def __init__(
        self,
        credentials: Optional[Credentials] = None,
        *,
        cache: Optional[TokenCache] = None,
        client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        clock: Callable[[], float] = time.time,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._credentials = credentials
        self.cache = cache if cache is not None else TokenCache()
        self._client = client
        self.base_url = (base_url or base_url_from_env()).rstrip("/")
        self._clock = clock
        self._timeout = timeout
        self._lock = asyncio.Lock()

    @property
    def token_url(self) -> str:
        return f"{self.base_url}/token"

    async def get_token(self) -> str:
        async with self._lock:
            if self.cache.is_valid(self._clock()):
                logger.info("Using cached token")
                return self.cache.access_token  # type: ignore[return-value]

            if self.cache.refresh_token:
                try:
                    logger.info("Token expired, attempting refresh...")
                    return await self._refresh(self.cache.refresh_token)
                except AuthError:
                    logger.info("Token refresh failed, requesting new token...")
                    self.cache.reset()

            logger.info("Requesting new authentication token...")
            return await self._authenticate()

    async def _refresh(self, refresh_token: str) -> str:
        payload = await self._post_token(
            {"refresh_token": refresh_token, "grant_type": "refresh_token"}, "refresh token"
        )
        token = self.cache.store(payload, self._clock())
        logger.info("Token refreshed successfully")
        return token

    async def _authenticate(self) -> str:
        creds = self._credentials or Credentials.from_env()
        payload = await self._post_token(
            {"username": creds.username, "password": creds.password, "grant_type": "password"},
            "authenticate",
        )
        token = self.cache.store(payload, self._clock())
        logger.info("Authentication successful")
        return token

    async def _post_token(self, form: dict[str, str], what: str) -> dict:
        try:
            if self._client is not None:
                response = await self._client.post(self.token_url, data=form)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(self.token_url, data=form)
        except httpx.HTTPError as e:
            logger.error(f"Token request ({what}) failed: {e}")
            raise AuthError(f"Failed to {what}: {e}") from e

        if response.is_error:
            logger.error(f"Token request ({what}) failed: {response.status_code} {response.reason_phrase}")
            raise AuthError(f"Failed to {what}: {response.reason_phrase}")

        try:
            return response.json()
        except ValueError as e:
            raise AuthError(f"Invalid token response ({what}): {e}") from e


__all__ = [
    "AuthError",
    "AuthProvider",
    "BrokerError",
    "Credentials",
    "TokenCache",
    "DEFAULT_BASE_URL",
    "base_url_from_env",
]
