"""GitHub App authentication and client wiring for app connections."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Tuple

import httpx
import redis
from jose import jwt
from jose.exceptions import JOSEError

from appsync.exceptions import GithubConfigurationError, GithubRetryableError
from appsync.models import AppConnection
from appsync.services.github.github_client import GitHubClient

logger = logging.getLogger(__name__)

TOKEN_CACHE_PREFIX = "github_installation_token"


def load_private_key(raw: str) -> str:
    """Load private key from string or file path."""
    if "BEGIN" in raw and "PRIVATE KEY" in raw:
        return raw.replace("\\n", "\n")
    path = Path(raw.strip().strip('"'))
    if path.exists():
        return path.read_text()
    raise GithubConfigurationError(
        "private_key must be a PEM string or path to a private key file",
    )


def generate_jwt(app_id: str, private_key: str) -> str:
    """Generate a JWT for GitHub App authentication."""
    now = int(time.time())
    payload = {
        "iat": now - 60,
        "exp": now + 600,
        "iss": str(app_id),
    }
    pem = load_private_key(private_key)
    try:
        return jwt.encode(payload, pem, algorithm="RS256")
    except JOSEError as exc:
        raise GithubConfigurationError(
            f"Could not sign app JWT for app {app_id}: {exc}"
        ) from exc


def request_installation_token(
    jwt_token: str, installation_id: int, api_url: str = "https://api.github.com"
) -> Tuple[str, datetime]:
    """Request an installation access token from GitHub."""
    url = f"{api_url.rstrip('/')}/app/installations/{installation_id}/access_tokens"
    headers = {
        "Authorization": f"Bearer {jwt_token}",
        "Accept": "application/vnd.github+json",
    }
    try:
        response = httpx.post(url, headers=headers, timeout=15)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise GithubRetryableError(
            f"Could not obtain token for installation {installation_id}: {exc}"
        ) from exc
    try:
        data = response.json()
    except ValueError as exc:
        raise GithubRetryableError(
            f"Invalid token response for installation {installation_id}: {exc}"
        ) from exc
    if not isinstance(data, dict):
        data = {}
    token = data.get("token")
    expires_at_raw = data.get("expires_at")
    if not token or not expires_at_raw:
        raise GithubConfigurationError(
            "GitHub installation token response missing token or expires_at"
        )
    expires_at = datetime.fromisoformat(expires_at_raw.replace("Z", "+00:00"))
    return token, expires_at


def clear_installation_token(installation_id: int | str, redis_client: Any) -> None:
    """Remove cached installation token when app is uninstalled or suspended."""
    if redis_client is not None:
        redis_client.delete(f"{TOKEN_CACHE_PREFIX}:{installation_id}")


class GitHubClientFactory:
    """
    Builds authenticated clients for an app connection.

    Installation tokens are cached in Redis until shortly before they expire.
    """

    def __init__(
        self,
        api_url: str = "https://api.github.com",
        redis_client: Any = None,
        timeout: float = 30.0,
    ) -> None:
        self.api_url = api_url
        self.redis_client = redis_client
        self.timeout = timeout

    def _credentials(self, connection: AppConnection) -> Tuple[str, str]:
        if not (connection.app_id and connection.private_key):
            raise GithubConfigurationError(
                f"App connection {connection.slug} has no app credentials"
            )
        return connection.app_id, connection.private_key

    def get_installation_token(self, connection: AppConnection) -> str:
        if not connection.installation_id:
            raise GithubConfigurationError(
                f"App connection {connection.slug} has no installation id"
            )
        redis_key = f"{TOKEN_CACHE_PREFIX}:{connection.installation_id}"

        try:
            if self.redis_client is not None:
                cached_token = self.redis_client.get(redis_key)
                if cached_token:
                    if isinstance(cached_token, bytes):
                        return cached_token.decode("utf-8")
                    return cached_token

            app_id, private_key = self._credentials(connection)
            token, expires_at = request_installation_token(
                generate_jwt(app_id, private_key), connection.installation_id, self.api_url
            )

            if self.redis_client is not None:
                ttl = int((expires_at - datetime.now(timezone.utc)).total_seconds() - 60)
                if ttl > 0:
                    self.redis_client.set(redis_key, token, ex=ttl)
        except redis.RedisError as exc:
            raise GithubRetryableError(
                f"Token cache unavailable for installation {connection.installation_id}: {exc}"
            ) from exc

        return token

    def installation_client(self, connection: AppConnection) -> GitHubClient:
        """Client acting as the installation (repository listing, repo probes)."""
        token = self.get_installation_token(connection)
        return GitHubClient(token=token, api_url=self.api_url, timeout=self.timeout)

    def app_client(self, connection: AppConnection) -> GitHubClient:
        """Client acting as the app itself (``GET /app``)."""
        app_id, private_key = self._credentials(connection)
        return GitHubClient(
            token=generate_jwt(app_id, private_key),
            api_url=self.api_url,
            timeout=self.timeout,
        )

    def drop_cached_token(self, installation_id: Optional[int]) -> None:
        if not installation_id:
            return
        try:
            clear_installation_token(installation_id, self.redis_client)
        except redis.RedisError as exc:
            logger.error("Failed to drop cached token for installation %s: %s", installation_id, exc)
            return
        logger.info("Dropped cached token for installation %s", installation_id)
