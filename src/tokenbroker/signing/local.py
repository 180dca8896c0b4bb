"""Signing with a PEM private key held in process memory."""

from __future__ import annotations

from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from jwt.algorithms import RSAAlgorithm
from jwt.exceptions import InvalidKeyError

from tokenbroker.exceptions import ConfigError
from tokenbroker.signing.base import Signer


class LocalKeySigner(Signer):
    """RS256 signer backed by a local RSA private key."""

    def __init__(self, private_key: str) -> None:
        if not private_key:
            raise ConfigError("Private key is required for local signing")
        self._algorithm = RSAAlgorithm(RSAAlgorithm.SHA256)
        try:
            key = self._algorithm.prepare_key(private_key)
        except (InvalidKeyError, ValueError, TypeError) as e:
            raise ConfigError(f"Invalid private key: {e}") from e
        if not isinstance(key, RSAPrivateKey):
            raise ConfigError("Invalid private key: expected an RSA private key")
        self._key = key

    async def sign_bytes(self, data: bytes) -> bytes:
        return self._algorithm.sign(data, self._key)
