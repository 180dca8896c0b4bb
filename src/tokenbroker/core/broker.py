"""Token acquisition orchestration: scope, resolve, exchange, publish."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Sequence

import httpx
from tenacity.wait import wait_base

from tokenbroker.config import BrokerConfig
from tokenbroker.core.retry import DEFAULT_RETRIES, retry_on_server_error
from tokenbroker.core.scope import classify_scope
from tokenbroker.github_app.client import GitHubAppClient, create_http_client
from tokenbroker.github_app.exchange import exchange
from tokenbroker.github_app.resolver import resolve_by_owner, resolve_by_repository
from tokenbroker.models import (
    DEFAULT_APP_SLUG,
    ByInstallationId,
    ByOwner,
    Identity,
    Installation,
    Scope,
    TokenResult,
)
from tokenbroker.outputs import OutputSink
from tokenbroker.signing import Signer, create_signer

logger = logging.getLogger(__name__)


class TokenBroker:
    """Resolves the installation for a scope and mints a token for it."""

    def __init__(
        self,
        client: GitHubAppClient,
        retries: int = DEFAULT_RETRIES,
        wait: wait_base | None = None,
    ) -> None:
        self.client = client
        self.retries = retries
        self.wait = wait

    async def acquire(
        self, scope: Scope, permissions: dict[str, str] | None = None
    ) -> TokenResult:
        if isinstance(scope, ByInstallationId):
            token = await exchange(
                self.client,
                scope.installation_id,
                repositories=scope.repositories,
                permissions=permissions,
                app_slug=DEFAULT_APP_SLUG,
            )
            return TokenResult(
                token=token, installation_id=scope.installation_id, app_slug=DEFAULT_APP_SLUG
            )

        if isinstance(scope, ByOwner):
            target = scope.owner
            repositories: tuple[str, ...] = ()

            def _resolve() -> Awaitable[Installation]:
                return resolve_by_owner(self.client, scope.owner)

        else:
            target = ",".join(scope.repositories)
            repositories = scope.repositories

            def _resolve() -> Awaitable[Installation]:
                return resolve_by_repository(self.client, scope.owner, scope.repositories)

        async def _round_trip() -> TokenResult:
            logger.info('Resolving installation for "%s"', target)
            installation = await _resolve()
            token = await exchange(
                self.client,
                installation.installation_id,
                repositories=repositories,
                permissions=permissions,
                app_slug=installation.app_slug,
            )
            return TokenResult(token, installation.installation_id, installation.app_slug)

        def _report(exc: BaseException, attempt: int) -> None:
            logger.info('Failed to create token for "%s" (attempt %d): %s', target, attempt, exc)

        return await retry_on_server_error(
            _round_trip,
            on_failed_attempt=_report,
            retries=self.retries,
            wait=self.wait,
        )


def publish(result: TokenResult, sink: OutputSink, skip_token_revoke: bool = False) -> None:
    """Hand the token to the sink, masking it before anything else is written."""
    sink.set_secret(result.token.token)
    sink.set_output("token", result.token.token)
    sink.set_output("installation-id", result.installation_id)
    sink.set_output("app-slug", result.app_slug)
    if not skip_token_revoke:
        sink.save_state("token", result.token.token)
        sink.save_state("expiresAt", result.token.expires_at)


async def create_token(
    config: BrokerConfig,
    sink: OutputSink,
    *,
    http: httpx.AsyncClient | None = None,
    signer: Signer | None = None,
    wait: wait_base | None = None,
) -> TokenResult:
    """Run one full acquisition for *config* and publish the result to *sink*."""
    identity = Identity(app_id=config.app_id, signer=signer or create_signer(config))
    scope = classify_scope(
        owner=config.owner,
        repositories=_as_list(config.repositories),
        installation_id=config.installation_id,
        host_repository=config.host_repository,
        host_owner=config.host_owner,
    )

    owns_http = http is None
    http_client = http or create_http_client(config.api_url)
    try:
        broker = TokenBroker(GitHubAppClient(identity, http_client), wait=wait)
        result = await broker.acquire(scope, permissions=config.permissions or None)
    finally:
        if owns_http:
            await http_client.aclose()

    publish(result, sink, skip_token_revoke=config.skip_token_revoke)
    return result


def _as_list(repositories: Sequence[str]) -> list[str]:
    return [r for r in repositories if r]
