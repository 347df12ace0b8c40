"""GitHub App repository sync and webhook reconciliation service."""

__version__ = "0.1.0"
