"""Abstract signing backend interface."""

from __future__ import annotations

import abc

from jwt.utils import base64url_encode


def b64url_encode(data: bytes) -> str:
    """Base64url-encode *data* without ``=`` padding."""
    return base64url_encode(data).decode("ascii")


class Signer(abc.ABC):
    """Produces RS256 signatures over a JWT signing input.

    Backends only implement :meth:`sign_bytes`; the base64url conversion of
    the raw signature lives here so every backend emits the same segment.
    """

    algorithm = "RS256"

    @abc.abstractmethod
    async def sign_bytes(self, data: bytes) -> bytes:
        """Return the raw RSASSA-PKCS1-v1_5 / SHA-256 signature of *data*."""

    async def sign(self, payload: str) -> str:
        """Sign the UTF-8 bytes of *payload* and return the base64url signature."""
        signature = await self.sign_bytes(payload.encode("utf-8"))
        return b64url_encode(signature)
