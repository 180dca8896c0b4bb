"""Shared data models for tokenbroker."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from tokenbroker.signing.base import Signer

# Placeholder slug used when the installation id is supplied directly and no lookup happens.
DEFAULT_APP_SLUG = "github-app"


class RepositorySelection(enum.Enum):
    ALL = "all"
    SELECTED = "selected"


@dataclass(frozen=True)
class Identity:
    """A GitHub App and the backend that signs on its behalf."""

    app_id: int
    signer: Signer


@dataclass(frozen=True)
class Assertion:
    """A signed app JWT together with the pieces it was assembled from."""

    header: dict[str, Any]
    payload: dict[str, Any]
    encoded_header: str
    encoded_payload: str
    signature: str

    @property
    def signing_input(self) -> str:
        return f"{self.encoded_header}.{self.encoded_payload}"

    @property
    def compact(self) -> str:
        return f"{self.signing_input}.{self.signature}"


@dataclass(frozen=True)
class Installation:
    installation_id: int
    app_slug: str


@dataclass
class InstallationToken:
    """Installation access token returned by the exchange endpoint."""

    token: str = field(repr=False)
    installation_id: int
    expires_at: str
    permissions: dict[str, str] = field(default_factory=dict)
    repository_selection: RepositorySelection = RepositorySelection.ALL
    token_type: str = "installation"
    app_slug: str = DEFAULT_APP_SLUG


# --- Scope: exactly one variant is active per invocation ---


@dataclass(frozen=True)
class ByInstallationId:
    installation_id: int
    repositories: tuple[str, ...] = ()


@dataclass(frozen=True)
class ByOwner:
    owner: str


@dataclass(frozen=True)
class ByRepositories:
    """Default scope: the repository the invocation runs in."""

    owner: str
    repositories: tuple[str, ...]


@dataclass(frozen=True)
class ByOwnerAndRepositories:
    owner: str
    repositories: tuple[str, ...]


Scope = Union[ByInstallationId, ByOwner, ByRepositories, ByOwnerAndRepositories]


@dataclass
class TokenResult:
    """What a successful run hands to the output sink."""

    token: InstallationToken = field(repr=False)
    installation_id: int
    app_slug: str
