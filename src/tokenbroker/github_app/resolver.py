"""Installation lookup by account or by repository."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

from tokenbroker.exceptions import ResolutionError
from tokenbroker.github_app.client import GitHubAppClient
from tokenbroker.models import DEFAULT_APP_SLUG, Installation

logger = logging.getLogger(__name__)


def _to_installation(data: dict[str, Any]) -> Installation:
    installation_id = data.get("id")
    if not installation_id:
        raise ResolutionError("Installation lookup returned no installation id", status=0)
    return Installation(
        installation_id=int(installation_id),
        app_slug=str(data.get("app_slug") or DEFAULT_APP_SLUG),
    )


async def resolve_by_owner(client: GitHubAppClient, owner: str) -> Installation:
    """Find the app installation on a user or organization account.

    ``/users/{username}/installation`` serves organizations as well.
    """
    logger.debug("Looking up installation for account %s", owner)
    data = await client.request(
        "GET",
        f"/users/{quote(owner, safe='')}/installation",
        error_cls=ResolutionError,
    )
    return _to_installation(data)


async def resolve_by_repository(
    client: GitHubAppClient, owner: str, repositories: list[str] | tuple[str, ...]
) -> Installation:
    """Find the app installation for a set of repositories.

    All repositories are assumed to share one installation, so only the first
    one is probed.
    """
    if not repositories:
        raise ResolutionError("At least one repository is required", status=0)
    repo = repositories[0]
    logger.debug("Looking up installation for repository %s/%s", owner, repo)
    data = await client.request(
        "GET",
        f"/repos/{quote(owner, safe='')}/{quote(repo, safe='')}/installation",
        error_cls=ResolutionError,
    )
    return _to_installation(data)
