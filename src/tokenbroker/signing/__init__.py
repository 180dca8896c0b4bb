"""Signing backends and factory."""

from __future__ import annotations

from typing import TYPE_CHECKING

from tokenbroker.exceptions import ConfigError
from tokenbroker.signing.base import Signer, b64url_encode
from tokenbroker.signing.kms import KMSSigner
from tokenbroker.signing.local import LocalKeySigner

if TYPE_CHECKING:
    from tokenbroker.config import BrokerConfig

__all__ = ["KMSSigner", "LocalKeySigner", "Signer", "b64url_encode", "create_signer"]


def create_signer(config: BrokerConfig) -> Signer:
    """Pick the signing backend for the configured key material."""
    if config.private_key and config.kms_key_arn:
        raise ConfigError("Only one of 'private-key' or 'aws-kms-arn' should be provided")
    if config.kms_key_arn:
        return KMSSigner(config.kms_key_arn, profile=config.aws_profile)
    if config.private_key:
        return LocalKeySigner(config.private_key)
    raise ConfigError("Either 'private-key' or 'aws-kms-arn' must be provided")
