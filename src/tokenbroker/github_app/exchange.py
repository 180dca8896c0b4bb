"""Exchange an app assertion for a scoped installation access token."""

from __future__ import annotations

import logging
from typing import Any

from tokenbroker.exceptions import ConfigError, ExchangeError
from tokenbroker.github_app.client import GitHubAppClient
from tokenbroker.models import DEFAULT_APP_SLUG, InstallationToken, RepositorySelection

logger = logging.getLogger(__name__)


def build_token_request_body(
    repositories: list[str] | tuple[str, ...] | None = None,
    permissions: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Request body for the access token endpoint.

    Empty or missing fields are left out so GitHub grants every repository and
    permission of the installation.
    """
    body: dict[str, Any] = {}
    if repositories:
        body["repositories"] = list(repositories)
    if permissions:
        body["permissions"] = dict(permissions)
    return body


async def exchange(
    client: GitHubAppClient,
    installation_id: int | None,
    repositories: list[str] | tuple[str, ...] | None = None,
    permissions: dict[str, str] | None = None,
    app_slug: str = DEFAULT_APP_SLUG,
) -> InstallationToken:
    """Create an installation access token for *installation_id*."""
    if not installation_id:
        raise ConfigError("installation id is required to create an installation token")

    body = build_token_request_body(repositories, permissions)
    data = await client.request(
        "POST",
        f"/app/installations/{int(installation_id)}/access_tokens",
        error_cls=ExchangeError,
        json=body,
    )

    token = data.get("token")
    if not token:
        raise ExchangeError("Access token response did not include a token", status=0)

    selection = data.get("repository_selection") or RepositorySelection.ALL.value
    try:
        repository_selection = RepositorySelection(selection)
    except ValueError:
        raise ExchangeError(f"Unknown repository_selection {selection!r}", status=0) from None
    logger.debug(
        "Created installation token for installation %d (expires %s)",
        int(installation_id),
        data.get("expires_at"),
    )
    return InstallationToken(
        token=token,
        installation_id=int(installation_id),
        expires_at=str(data.get("expires_at") or ""),
        permissions=dict(data.get("permissions") or {}),
        repository_selection=repository_selection,
        app_slug=app_slug,
    )
