"""Authenticated GitHub REST transport for app-level endpoints."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from tokenbroker.exceptions import GitHubAPIError
from tokenbroker.github_app.assertion import build_assertion
from tokenbroker.models import Identity

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
_API_VERSION = "2022-11-28"


def _error_message(resp: httpx.Response) -> str:
    """Prefer GitHub's JSON ``message`` field, fall back to the raw body."""
    try:
        data = resp.json()
    except ValueError:
        return resp.text
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return resp.text


class GitHubAppClient:
    """Sends requests authenticated as the GitHub App itself.

    Every request carries a freshly signed assertion; assertions are never
    reused between calls.
    """

    def __init__(self, identity: Identity, http: httpx.AsyncClient) -> None:
        self.identity = identity
        self._http = http

    @property
    def app_id(self) -> int:
        return self.identity.app_id

    async def request(
        self,
        method: str,
        path: str,
        *,
        error_cls: type[GitHubAPIError] = GitHubAPIError,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send *method* *path* and return the decoded JSON body.

        Raises *error_cls* carrying the HTTP status on any non-2xx response.
        """
        assertion = await build_assertion(self.identity)
        headers = {
            "Authorization": f"Bearer {assertion.compact}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": _API_VERSION,
        }
        try:
            resp = await self._http.request(method, path, headers=headers, json=json)
        except httpx.TransportError as e:
            raise error_cls(f"{method} {path} failed: {e!r}", status=0) from e
        logger.debug("%s %s -> HTTP %d", method, path, resp.status_code)
        if not resp.is_success:
            raise error_cls(
                f"{method} {path} failed (HTTP {resp.status_code}): {_error_message(resp)}",
                status=resp.status_code,
            )
        try:
            data = resp.json()
        except ValueError as e:
            raise error_cls(f"{method} {path} returned invalid JSON: {e}", status=resp.status_code) from e
        if not isinstance(data, dict):
            raise error_cls(f"{method} {path} returned unexpected JSON", status=resp.status_code)
        return data


def create_http_client(api_url: str = DEFAULT_API_URL, timeout: float = 15.0) -> httpx.AsyncClient:
    """Build the shared httpx client for one invocation."""
    return httpx.AsyncClient(
        base_url=api_url.rstrip("/"),
        headers={"User-Agent": "tokenbroker"},
        timeout=timeout,
    )
