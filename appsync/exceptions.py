"""Exception types shared across the sync, health and webhook paths."""


class AppSyncError(Exception):
    """Base exception for appsync failures."""


class ConfigurationError(AppSyncError):
    """Raised when a connection or the service is missing required configuration."""


class PersistenceError(AppSyncError):
    """Raised when a store write fails."""


class GithubError(AppSyncError):
    """Base exception for GitHub API failures."""


class GithubConfigurationError(GithubError, ConfigurationError):
    """Raised when GitHub credentials are missing or unusable."""


class GithubRateLimitError(GithubError):
    """Raised when the upstream service enforces a rate limit."""

    def __init__(self, message: str, retry_after: int | float | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class GithubRetryableError(GithubError):
    """Raised for transient issues where retrying later may succeed."""


class GithubPaginationLimitError(GithubError):
    """Raised when a paginated listing exceeds the configured page budget."""

    def __init__(self, path: str, max_pages: int):
        super().__init__(f"Pagination of {path} exceeded {max_pages} pages")
        self.path = path
        self.max_pages = max_pages


class WebhookError(AppSyncError):
    """Base for rejected webhook deliveries. Carries the HTTP status to answer with."""

    status_code = 400

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class SecurityValidationError(WebhookError):
    """Missing signature, unconfigured secret or signature mismatch."""

    status_code = 401


class MalformedPayloadError(WebhookError):
    """Body is not valid JSON after the signature check passed."""

    status_code = 400
