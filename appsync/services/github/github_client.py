"""Lightweight GitHub REST client with bounded pagination and rate-limit handling."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

import httpx

from appsync.exceptions import (
    GithubConfigurationError,
    GithubPaginationLimitError,
    GithubRateLimitError,
    GithubRetryableError,
)

API_PREVIEW_HEADERS = {
    "Accept": "application/vnd.github+json",
}

DEFAULT_MAX_PAGES = 50


def _next_link(link_header: Optional[str]) -> Optional[str]:
    if not link_header:
        return None
    for part in link_header.split(","):
        segment = part.strip()
        if segment.endswith('rel="next"'):
            return segment[segment.find("<") + 1 : segment.find(">")]
    return None


class GitHubClient:
    def __init__(
        self,
        token: str | None,
        api_url: str = "https://api.github.com",
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not token:
            raise GithubConfigurationError("GitHub token is required to call the API")
        self._token = token
        self._api_url = api_url.rstrip("/")
        self._rest = httpx.Client(
            base_url=self._api_url,
            timeout=timeout,
            transport=transport or httpx.HTTPTransport(retries=3),
        )

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._token}",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        headers.update(API_PREVIEW_HEADERS)
        return headers

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        if response.status_code in (403, 429) and "rate limit" in response.text.lower():
            self._handle_rate_limit(response)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise GithubRetryableError(str(exc)) from exc
        return response

    def _handle_rate_limit(self, response: httpx.Response) -> None:
        reset_header = response.headers.get("X-RateLimit-Reset")
        retry_after_header = response.headers.get("Retry-After")
        wait_seconds = 60.0

        if retry_after_header:
            try:
                wait_seconds = float(retry_after_header)
            except ValueError:
                pass
        elif reset_header:
            try:
                reset_epoch = float(reset_header)
                now_epoch = datetime.now(timezone.utc).timestamp()
                wait_seconds = max(reset_epoch - now_epoch, 1.0)
            except ValueError:
                pass

        raise GithubRateLimitError("GitHub rate limit reached", retry_after=wait_seconds)

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._rest.request(method, path, headers=self._headers(), **kwargs)
        except httpx.RequestError as exc:
            raise GithubRetryableError(f"{method} {path} failed: {exc}") from exc
        return self._handle_response(response)

    def _json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise GithubRetryableError(
                f"Invalid JSON from {response.request.method} {response.request.url}: {exc}"
            ) from exc

    def _rest_request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        return self._json(self._request(method, path, **kwargs))

    def paginate(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        item_key: Optional[str] = None,
        max_pages: int = DEFAULT_MAX_PAGES,
    ) -> Iterator[Dict[str, Any]]:
        """
        Yield every item of a paginated listing, following ``Link: rel="next"``.

        ``item_key`` names the list inside an object envelope (for example
        ``repositories`` for ``/installation/repositories``). Raises
        ``GithubPaginationLimitError`` once more than ``max_pages`` pages would
        be fetched.
        """
        url: Optional[str] = path
        query = params
        pages = 0
        while url:
            if pages >= max_pages:
                raise GithubPaginationLimitError(path, max_pages)
            response = self._request("GET", url, params=query)
            pages += 1
            data = self._json(response)
            items = data.get(item_key, []) if item_key and isinstance(data, dict) else data
            if not isinstance(items, list):
                raise GithubRetryableError(f"Unexpected payload shape for {path}")
            yield from items
            # The next link already carries the query string
            url = _next_link(response.headers.get("Link"))
            query = None

    def fetch_all_paginated(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        item_key: Optional[str] = None,
        max_pages: int = DEFAULT_MAX_PAGES,
    ) -> List[Dict[str, Any]]:
        return list(self.paginate(path, params, item_key=item_key, max_pages=max_pages))

    # Common GitHub endpoints
    def list_installation_repositories(
        self, per_page: int = 100, max_pages: int = DEFAULT_MAX_PAGES
    ) -> List[Dict[str, Any]]:
        return self.fetch_all_paginated(
            "/installation/repositories",
            params={"per_page": per_page},
            item_key="repositories",
            max_pages=max_pages,
        )

    def get_repository(self, full_name: str) -> Dict[str, Any]:
        return self._rest_request("GET", f"/repos/{full_name}")

    def get_authenticated_app(self) -> Dict[str, Any]:
        """``GET /app``; only valid with an app JWT, not an installation token."""
        return self._rest_request("GET", "/app")

    def close(self) -> None:
        self._rest.close()

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
