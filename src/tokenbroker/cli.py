"""Click CLI for tokenbroker."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
from typing import TextIO

import click

from tokenbroker import __version__
from tokenbroker.config import BrokerConfig, load_config, permissions_from_env
from tokenbroker.core.broker import create_token
from tokenbroker.exceptions import TokenBrokerError
from tokenbroker.github_app.assertion import build_assertion
from tokenbroker.models import Identity
from tokenbroker.outputs import ActionsOutputSink, MemorySink, OutputSink
from tokenbroker.signing import create_signer


def _parse_permission_options(values: tuple[str, ...]) -> dict[str, str]:
    permissions: dict[str, str] = {}
    for item in values:
        name, sep, level = item.partition("=")
        if not sep or not name.strip() or not level.strip():
            raise click.BadParameter(f"Expected NAME=LEVEL, got {item!r}", param_hint="--permission")
        permissions[name.strip().replace("-", "_")] = level.strip()
    return permissions


def _setup_logging(verbose: bool, stream: TextIO) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(name)s %(levelname)s: %(message)s",
        stream=stream,
    )


def _load(
    config_path: str | None,
    app_id: str | None,
    private_key: str | None,
    aws_kms_arn: str | None,
    aws_profile: str | None,
    extra: dict[str, object] | None = None,
) -> BrokerConfig:
    overrides: dict[str, object] = {}
    if app_id:
        overrides["app_id"] = app_id
    if private_key:
        overrides["private_key"] = private_key
    if aws_kms_arn:
        overrides["kms_key_arn"] = aws_kms_arn
    if aws_profile:
        overrides["aws_profile"] = aws_profile
    overrides.update(extra or {})
    return load_config(config_path, overrides)


@click.group()
@click.version_option(version=__version__, prog_name="tokenbroker")
def main() -> None:
    """tokenbroker: short-lived GitHub App installation tokens."""


@main.command()
@click.option("--app-id", envvar="INPUT_APP-ID", default=None, help="GitHub App ID")
@click.option(
    "--private-key",
    envvar="INPUT_PRIVATE-KEY",
    default=None,
    help="PEM contents or @path/to/key.pem",
)
@click.option("--aws-kms-arn", envvar="INPUT_AWS-KMS-ARN", default=None, help="KMS signing key ARN")
@click.option("--aws-profile", envvar="INPUT_AWS-PROFILE", default=None, help="AWS profile name")
@click.option("--owner", envvar="INPUT_OWNER", default=None, help="Account owning the repositories")
@click.option(
    "--repositories",
    envvar="INPUT_REPOSITORIES",
    default=None,
    help="Comma or newline separated repository names",
)
@click.option("--installation-id", envvar="INPUT_INSTALLATION-ID", default=None)
@click.option(
    "--permission",
    "permission_options",
    multiple=True,
    help="Permission subset as NAME=LEVEL (repeatable)",
)
@click.option(
    "--skip-token-revoke",
    envvar="INPUT_SKIP-TOKEN-REVOKE",
    type=click.BOOL,
    default=False,
    help="Don't save the token for post-run revocation",
)
@click.option("--api-url", envvar="GITHUB_API_URL", default=None, help="GitHub REST API base URL")
@click.option(
    "--output",
    "output_format",
    type=click.Choice(["actions", "json"]),
    default=None,
    help="Where to emit results (default: actions inside a runner, json elsewhere)",
)
@click.option("--verbose", is_flag=True, help="Enable verbose logging")
@click.option("--config", "config_path", default=None, help="Path to .tokenbroker.yml")
def create(
    app_id: str | None,
    private_key: str | None,
    aws_kms_arn: str | None,
    aws_profile: str | None,
    owner: str | None,
    repositories: str | None,
    installation_id: str | None,
    permission_options: tuple[str, ...],
    skip_token_revoke: bool,
    api_url: str | None,
    output_format: str | None,
    verbose: bool,
    config_path: str | None,
) -> None:
    """Create an installation access token."""
    if output_format is None:
        output_format = "actions" if os.environ.get("GITHUB_ACTIONS") == "true" else "json"
    # JSON goes to stdout, so keep log lines off it.
    _setup_logging(verbose, sys.stdout if output_format == "actions" else sys.stderr)
    sink: OutputSink = ActionsOutputSink() if output_format == "actions" else MemorySink()

    extra: dict[str, object] = {}
    if skip_token_revoke:
        extra["skip_token_revoke"] = True
    if owner:
        extra["owner"] = owner
    if repositories:
        extra["repositories"] = repositories
    if installation_id:
        extra["installation_id"] = installation_id
    if api_url:
        extra["api_url"] = api_url
    permissions = {**permissions_from_env(os.environ), **_parse_permission_options(permission_options)}
    if permissions:
        extra["permissions"] = permissions

    try:
        config = _load(config_path, app_id, private_key, aws_kms_arn, aws_profile, extra)
        asyncio.run(create_token(config, sink))
    except TokenBrokerError as e:
        sink.set_failed(str(e))
        raise click.ClickException(str(e)) from e

    if isinstance(sink, MemorySink):
        click.echo(json.dumps({**sink.outputs, "state": sink.state}, indent=2))


@main.command("app-jwt")
@click.option("--app-id", envvar="INPUT_APP-ID", default=None, help="GitHub App ID")
@click.option("--private-key", envvar="INPUT_PRIVATE-KEY", default=None)
@click.option("--aws-kms-arn", envvar="INPUT_AWS-KMS-ARN", default=None)
@click.option("--aws-profile", envvar="INPUT_AWS-PROFILE", default=None)
@click.option("--verbose", is_flag=True, help="Enable verbose logging")
@click.option("--config", "config_path", default=None, help="Path to .tokenbroker.yml")
def app_jwt(
    app_id: str | None,
    private_key: str | None,
    aws_kms_arn: str | None,
    aws_profile: str | None,
    verbose: bool,
    config_path: str | None,
) -> None:
    """Print a signed app JWT (valid for 10 minutes)."""
    _setup_logging(verbose, sys.stderr)
    try:
        config = _load(config_path, app_id, private_key, aws_kms_arn, aws_profile)
        identity = Identity(app_id=config.app_id, signer=create_signer(config))
        assertion = asyncio.run(build_assertion(identity))
    except TokenBrokerError as e:
        raise click.ClickException(str(e)) from e

    click.echo(assertion.compact)
