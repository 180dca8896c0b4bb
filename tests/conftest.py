"""Shared test fixtures."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any
from unittest.mock import MagicMock

import httpx
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

from tokenbroker.github_app.client import GitHubAppClient
from tokenbroker.models import Identity
from tokenbroker.signing import KMSSigner, LocalKeySigner

KMS_ARN = "arn:aws:kms:us-east-1:123456789012:key/12345678-1234-1234-1234-123456789012"


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_private_key(rsa_key: rsa.RSAPrivateKey) -> str:
    """A test RSA private key in PEM format."""
    return rsa_key.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, NoEncryption()).decode()


@pytest.fixture(scope="session")
def rsa_public_key(rsa_key: rsa.RSAPrivateKey) -> str:
    return rsa_key.public_key().public_bytes(Encoding.PEM, PublicFormat.SubjectPublicKeyInfo).decode()


@pytest.fixture
def local_identity(rsa_private_key: str) -> Identity:
    return Identity(app_id=12345, signer=LocalKeySigner(rsa_private_key))


@pytest.fixture
def kms_client() -> MagicMock:
    client = MagicMock()
    # RSA-2048 signatures are 256 bytes
    client.sign.return_value = {"Signature": b"0" * 256}
    return client


@pytest.fixture
def kms_identity(kms_client: MagicMock) -> Identity:
    signer = KMSSigner(KMS_ARN)
    signer._client = kms_client
    return Identity(app_id=12345, signer=signer)


class RecordingTransport:
    """Routes requests to canned replies and keeps every request it saw.

    A route maps ``(method, path)`` to a ``(status, json)`` pair, or to a list of
    pairs served in order (the last one repeats).
    """

    def __init__(self, routes: dict[tuple[str, str], Any]) -> None:
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": "Not Found"})
        if isinstance(route, list):
            route = route.pop(0) if len(route) > 1 else route[0]
        status, payload = route
        return httpx.Response(status, json=payload)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def body(self, request: httpx.Request) -> dict[str, Any]:
        return json.loads(request.content) if request.content else {}


@pytest.fixture
def make_transport() -> type[RecordingTransport]:
    return RecordingTransport


@pytest.fixture
def make_http() -> Callable[[RecordingTransport], httpx.AsyncClient]:
    def _make(transport: RecordingTransport) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.MockTransport(transport), base_url="https://api.github.com"
        )

    return _make


@pytest.fixture
def make_client(make_http):  # noqa: ANN001, ANN201
    def _make(identity: Identity, transport: RecordingTransport) -> GitHubAppClient:
        return GitHubAppClient(identity, make_http(transport))

    return _make

