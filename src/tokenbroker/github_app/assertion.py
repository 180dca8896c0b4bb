"""GitHub App JWT construction over a pluggable signer."""

from __future__ import annotations

import json
import time
from typing import Any

from tokenbroker.models import Assertion, Identity
from tokenbroker.signing.base import b64url_encode

# Backdate iat to tolerate clock drift; GitHub caps app JWTs at 10 minutes.
_CLOCK_DRIFT = 60
_LIFETIME = 600

_HEADER = {"typ": "JWT", "alg": "RS256"}


def encode_segment(obj: dict[str, Any]) -> str:
    """Serialize *obj* as compact JSON and base64url-encode it.

    Key order is preserved and no whitespace is emitted, so the same input
    always produces the same segment.
    """
    raw = json.dumps(obj, separators=(",", ":"), ensure_ascii=False)
    return b64url_encode(raw.encode("utf-8"))


async def build_assertion(identity: Identity, now: int | None = None) -> Assertion:
    """Build and sign a fresh app JWT for *identity*.

    Signing errors from the backend propagate unchanged.
    """
    issued = int(time.time()) if now is None else now
    header = dict(_HEADER)
    payload = {
        "iat": issued - _CLOCK_DRIFT,
        "exp": issued + _LIFETIME,
        "iss": int(identity.app_id),
    }
    encoded_header = encode_segment(header)
    encoded_payload = encode_segment(payload)
    signature = await identity.signer.sign(f"{encoded_header}.{encoded_payload}")
    return Assertion(
        header=header,
        payload=payload,
        encoded_header=encoded_header,
        encoded_payload=encoded_payload,
        signature=signature,
    )
