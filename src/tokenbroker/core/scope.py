"""Classify owner/repository/installation inputs into a token scope."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from tokenbroker.exceptions import ConfigError
from tokenbroker.models import (
    ByInstallationId,
    ByOwner,
    ByOwnerAndRepositories,
    ByRepositories,
    Scope,
)

logger = logging.getLogger(__name__)


def _repo_list(owner: str, repositories: Sequence[str]) -> str:
    return "".join(f"\n- {owner}/{repo}" for repo in repositories)


def split_repository(full_name: str) -> tuple[str, str]:
    """Split ``owner/repo`` into its two halves."""
    owner, sep, repo = full_name.partition("/")
    if not sep or not owner or not repo or "/" in repo:
        raise ConfigError(f"Expected repository in the form '<owner>/<repo>', got {full_name!r}")
    return owner, repo


def classify_scope(
    owner: str,
    repositories: Sequence[str],
    installation_id: int | None,
    host_repository: str,
    host_owner: str,
) -> Scope:
    """Pick exactly one scope. Earlier rules win over later ones.

    1. explicit installation id, limited to the given repositories or, when
       neither owner nor repositories are set, to the host repository
    2. no owner, no repositories: the host repository
    3. owner only: every repository of that account
    4. repositories only: those repositories under the host owner
    5. owner and repositories
    """
    repos = tuple(repositories)

    if installation_id:
        logger.info("Using provided installation ID: %s", installation_id)
        if not owner and not repos:
            repos = (split_repository(host_repository)[1],)
        return ByInstallationId(installation_id=int(installation_id), repositories=repos)

    if not owner and not repos:
        host, repo = split_repository(host_repository)
        logger.info(
            "Inputs 'owner' and 'repositories' are not set. "
            "Creating token for this repository (%s/%s).",
            host,
            repo,
        )
        return ByRepositories(owner=host, repositories=(repo,))

    if owner and not repos:
        logger.info(
            "Input 'repositories' is not set. Creating token for all repositories owned by %s.",
            owner,
        )
        return ByOwner(owner=owner)

    if not owner:
        if not host_owner:
            raise ConfigError("No 'owner' input provided and the host owner is unknown")
        logger.info(
            "No 'owner' input provided. Using default owner '%s' to create token "
            "for the following repositories:%s",
            host_owner,
            _repo_list(host_owner, repos),
        )
        return ByOwnerAndRepositories(owner=host_owner, repositories=repos)

    logger.info(
        "Inputs 'owner' and 'repositories' are set. "
        "Creating token for the following repositories:%s",
        _repo_list(owner, repos),
    )
    return ByOwnerAndRepositories(owner=owner, repositories=repos)
