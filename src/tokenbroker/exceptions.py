"""Custom exception hierarchy for tokenbroker."""

from __future__ import annotations


class TokenBrokerError(Exception):
    """Base exception for all tokenbroker errors."""


class ConfigError(TokenBrokerError):
    """Missing or contradictory configuration."""


class SigningError(TokenBrokerError):
    """The signing backend did not produce a usable signature."""


class GitHubAPIError(TokenBrokerError):
    """Non-2xx response from the GitHub REST API."""

    def __init__(self, message: str, status: int) -> None:
        super().__init__(message)
        self.status = status


class ResolutionError(GitHubAPIError):
    """Installation lookup failed."""


class ExchangeError(GitHubAPIError):
    """Installation access token creation failed."""
