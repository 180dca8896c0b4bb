"""Tests for the signing backends."""

from __future__ import annotations

import base64
from unittest.mock import MagicMock, patch

import boto3
import pytest
from botocore.stub import Stubber
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from tokenbroker.config import BrokerConfig
from tokenbroker.exceptions import ConfigError, SigningError
from tokenbroker.signing import KMSSigner, LocalKeySigner, b64url_encode, create_signer
from tokenbroker.signing.kms import region_from_arn

KMS_ARN = "arn:aws:kms:us-east-1:123456789012:key/12345678-1234-1234-1234-123456789012"


def _b64url_decode(segment: str) -> bytes:
    return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))


class TestB64UrlEncode:
    @pytest.mark.parametrize("length", [0, 1, 2, 3, 4, 5, 128, 256])
    def test_no_padding_or_standard_alphabet(self, length: int):
        data = bytes((i * 37 + 251) % 256 for i in range(length))
        encoded = b64url_encode(data)
        assert "=" not in encoded
        assert "+" not in encoded
        assert "/" not in encoded
        assert _b64url_decode(encoded) == data

    def test_url_safe_alphabet_used(self):
        # 0xfb 0xff encodes to "+/8=" in standard base64
        assert b64url_encode(b"\xfb\xff") == "-_8"

    def test_empty(self):
        assert b64url_encode(b"") == ""


class TestLocalKeySigner:
    async def test_signature_verifies(self, rsa_key: rsa.RSAPrivateKey, rsa_private_key: str):
        signer = LocalKeySigner(rsa_private_key)
        signature = await signer.sign("header.payload")

        rsa_key.public_key().verify(
            _b64url_decode(signature),
            b"header.payload",
            padding.PKCS1v15(),
            hashes.SHA256(),
        )

    async def test_deterministic(self, rsa_private_key: str):
        signer = LocalKeySigner(rsa_private_key)
        assert await signer.sign("abc") == await signer.sign("abc")

    def test_invalid_key(self):
        with pytest.raises(ConfigError, match="Invalid private key"):
            LocalKeySigner("not a key")

    def test_public_key_rejected(self, rsa_public_key: str):
        with pytest.raises(ConfigError, match="Invalid private key"):
            LocalKeySigner(rsa_public_key)

    def test_empty_key(self):
        with pytest.raises(ConfigError, match="required"):
            LocalKeySigner("")


class TestRegionFromArn:
    def test_full_arn(self):
        assert region_from_arn(KMS_ARN) == "us-east-1"

    def test_bare_key_id(self):
        assert region_from_arn("12345678-1234-1234-1234-123456789012") is None

    def test_alias(self):
        assert region_from_arn("alias/github-app") is None


class TestKMSSigner:
    def test_requires_key(self):
        with pytest.raises(ConfigError, match="ARN is required"):
            KMSSigner("")

    async def test_sign_request_and_encoding(self):
        signer = KMSSigner(KMS_ARN)
        signer._client = MagicMock()
        signer._client.sign.return_value = {"Signature": b"\xfb\xff"}

        signature = await signer.sign("h.p")

        assert signature == "-_8"
        signer._client.sign.assert_called_once_with(
            KeyId=KMS_ARN,
            Message=b"h.p",
            MessageType="RAW",
            SigningAlgorithm="RSASSA_PKCS1_V1_5_SHA_256",
        )

    async def test_missing_signature_raises(self):
        signer = KMSSigner(KMS_ARN)
        signer._client = MagicMock()
        signer._client.sign.return_value = {"KeyId": KMS_ARN}

        with pytest.raises(SigningError, match="no signature returned"):
            await signer.sign("h.p")

    async def test_client_created_lazily_with_region_and_profile(self):
        with patch("tokenbroker.signing.kms.boto3.Session") as session_cls:
            client = session_cls.return_value.client.return_value
            client.sign.return_value = {"Signature": b"sig"}

            signer = KMSSigner(KMS_ARN, profile="ci")
            session_cls.assert_not_called()

            await signer.sign("one")
            await signer.sign("two")

        session_cls.assert_called_once_with(profile_name="ci")
        session_cls.return_value.client.assert_called_once_with("kms", region_name="us-east-1")
        assert client.sign.call_count == 2

    async def test_default_session_without_profile(self):
        with patch("tokenbroker.signing.kms.boto3.Session") as session_cls:
            session_cls.return_value.client.return_value.sign.return_value = {"Signature": b"s"}
            await KMSSigner(KMS_ARN).sign("x")

        session_cls.assert_called_once_with()

    async def test_stubbed_kms_client(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
        monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
        client = boto3.client("kms", region_name="us-east-1")
        signer = KMSSigner(KMS_ARN)
        signer._client = client

        with Stubber(client) as stubber:
            stubber.add_response(
                "sign",
                {"KeyId": KMS_ARN, "Signature": b"\x00" * 256, "SigningAlgorithm": "RSASSA_PKCS1_V1_5_SHA_256"},
                {
                    "KeyId": KMS_ARN,
                    "Message": b"a.b",
                    "MessageType": "RAW",
                    "SigningAlgorithm": "RSASSA_PKCS1_V1_5_SHA_256",
                },
            )
            signature = await signer.sign("a.b")
            stubber.assert_no_pending_responses()

        assert _b64url_decode(signature) == b"\x00" * 256

    async def test_client_error_becomes_signing_error(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
        monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
        client = boto3.client("kms", region_name="us-east-1")
        signer = KMSSigner(KMS_ARN)
        signer._client = client

        with Stubber(client) as stubber:
            stubber.add_client_error("sign", service_error_code="AccessDeniedException")
            with pytest.raises(SigningError, match="KMS signing failed"):
                await signer.sign("a.b")


class TestCreateSigner:
    def test_local(self, rsa_private_key: str):
        config = BrokerConfig(app_id=1, private_key=rsa_private_key)
        assert isinstance(create_signer(config), LocalKeySigner)

    def test_kms(self):
        config = BrokerConfig(app_id=1, kms_key_arn=KMS_ARN, aws_profile="ci")
        signer = create_signer(config)
        assert isinstance(signer, KMSSigner)
        assert signer.profile == "ci"
        assert signer.region == "us-east-1"

    def test_neither(self):
        with pytest.raises(ConfigError, match="Either"):
            create_signer(BrokerConfig(app_id=1))

    def test_both(self, rsa_private_key: str):
        config = BrokerConfig(app_id=1, private_key=rsa_private_key, kms_key_arn=KMS_ARN)
        with pytest.raises(ConfigError, match="Only one"):
            create_signer(config)


async def test_unknown_profile_becomes_signing_error(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AWS_CONFIG_FILE", str(tmp_path / "config"))
    monkeypatch.setenv("AWS_SHARED_CREDENTIALS_FILE", str(tmp_path / "credentials"))
    signer = KMSSigner(KMS_ARN, profile="no-such-profile")

    with pytest.raises(SigningError, match="KMS signing failed"):
        await signer.sign("a.b")
