"""Signing through an asymmetric AWS KMS key."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from tokenbroker.exceptions import ConfigError, SigningError
from tokenbroker.signing.base import Signer

logger = logging.getLogger(__name__)

_SIGNING_ALGORITHM = "RSASSA_PKCS1_V1_5_SHA_256"


def region_from_arn(key_arn: str) -> str | None:
    """Extract the region from ``arn:aws:kms:REGION:ACCOUNT:key/KEY_ID``.

    Bare key ids and aliases carry no region; boto3 then falls back to its
    own resolution chain.
    """
    parts = key_arn.split(":")
    if len(parts) >= 4 and parts[3]:
        return parts[3]
    return None


class KMSSigner(Signer):
    """RS256 signer that delegates to ``kms:Sign``.

    The boto3 client is built on the first signing call and reused afterwards.
    """

    def __init__(self, key_arn: str, profile: str | None = None) -> None:
        if not key_arn:
            raise ConfigError("KMS key ARN is required for remote signing")
        self.key_arn = key_arn
        self.profile = profile
        self.region = region_from_arn(key_arn)
        self._client: Any = None

    def _get_client(self) -> Any:
        if self._client is None:
            session = boto3.Session(profile_name=self.profile) if self.profile else boto3.Session()
            self._client = session.client("kms", region_name=self.region)
            logger.debug("Created KMS client (region=%s, profile=%s)", self.region, self.profile)
        return self._client

    async def sign_bytes(self, data: bytes) -> bytes:
        try:
            client = self._get_client()
            response = await asyncio.to_thread(
                client.sign,
                KeyId=self.key_arn,
                Message=data,
                MessageType="RAW",
                SigningAlgorithm=_SIGNING_ALGORITHM,
            )
        except (BotoCoreError, ClientError) as e:
            raise SigningError(f"KMS signing failed: {e}") from e

        signature = response.get("Signature")
        if not signature:
            raise SigningError("KMS signing failed: no signature returned")
        return bytes(signature)
