import unittest

import httpx

from appsync.exceptions import (
    GithubConfigurationError,
    GithubPaginationLimitError,
    GithubRateLimitError,
    GithubRetryableError,
)
from appsync.services.github.github_client import GitHubClient, _next_link

API = "https://api.github.com"


def _page_link(page: int, last: int) -> str:
    links = [f'<{API}/installation/repositories?per_page=2&page={page + 1}>; rel="next"']
    links.append(f'<{API}/installation/repositories?per_page=2&page={last}>; rel="last"')
    return ", ".join(links)


class PagedInstallation:
    """Serves ``/installation/repositories`` in ``pages`` pages of two repos."""

    def __init__(self, pages: int) -> None:
        self.pages = pages
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        page = int(request.url.params.get("page", "1"))
        repositories = [
            {"full_name": f"o/r{page}-{i}", "id": page * 10 + i, "private": False}
            for i in range(2)
        ]
        headers = {}
        if page < self.pages:
            headers["Link"] = _page_link(page, self.pages)
        return httpx.Response(
            200,
            json={"total_count": self.pages * 2, "repositories": repositories},
            headers=headers,
        )


class TestGitHubClient(unittest.TestCase):
    def _client(self, handler) -> GitHubClient:
        return GitHubClient("token", api_url=API, transport=httpx.MockTransport(handler))

    def test_requires_token(self):
        with self.assertRaises(GithubConfigurationError):
            GitHubClient(None)

    def test_follows_next_links(self):
        server = PagedInstallation(pages=3)

        with self._client(server) as client:
            repositories = client.list_installation_repositories(per_page=2, max_pages=5)

        self.assertEqual(len(repositories), 6)
        self.assertEqual(repositories[0]["full_name"], "o/r1-0")
        self.assertEqual(repositories[-1]["full_name"], "o/r3-1")
        self.assertEqual(len(server.requests), 3)
        self.assertEqual(server.requests[0].url.params["per_page"], "2")
        self.assertEqual(server.requests[0].headers["Authorization"], "Bearer token")

    def test_exactly_max_pages_is_allowed(self):
        with self._client(PagedInstallation(pages=2)) as client:
            repositories = client.list_installation_repositories(per_page=2, max_pages=2)

        self.assertEqual(len(repositories), 4)

    def test_page_limit_raises(self):
        server = PagedInstallation(pages=4)

        with self._client(server) as client:
            with self.assertRaises(GithubPaginationLimitError) as ctx:
                client.list_installation_repositories(per_page=2, max_pages=2)

        self.assertEqual(ctx.exception.max_pages, 2)
        self.assertEqual(len(server.requests), 2)

    def test_rate_limit(self):
        def handler(request):
            return httpx.Response(
                403,
                json={"message": "API rate limit exceeded for installation."},
                headers={"Retry-After": "30"},
            )

        with self._client(handler) as client:
            with self.assertRaises(GithubRateLimitError) as ctx:
                client.get_repository("o/r1")

        self.assertEqual(ctx.exception.retry_after, 30.0)

    def test_http_error_is_retryable(self):
        def handler(request):
            return httpx.Response(404, json={"message": "Not Found"})

        with self._client(handler) as client:
            with self.assertRaises(GithubRetryableError):
                client.get_repository("o/missing")

    def test_non_json_body_is_retryable(self):
        def handler(request):
            return httpx.Response(200, text="<html>unicorn</html>")

        with self._client(handler) as client:
            with self.assertRaises(GithubRetryableError):
                client.list_installation_repositories()
            with self.assertRaises(GithubRetryableError):
                client.get_repository("o/r1")

    def test_transport_error_is_retryable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with self._client(handler) as client:
            with self.assertRaises(GithubRetryableError):
                client.get_authenticated_app()

    def test_next_link_parsing(self):
        self.assertEqual(
            _next_link(_page_link(1, 3)),
            f"{API}/installation/repositories?per_page=2&page=2",
        )
        self.assertIsNone(_next_link(f'<{API}/x?page=3>; rel="last"'))
        self.assertIsNone(_next_link(None))


if __name__ == "__main__":
    unittest.main()
