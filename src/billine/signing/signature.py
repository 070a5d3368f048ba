"""MD5 / SHA-256 request signatures over the canonical string."""

from __future__ import annotations

import base64
import enum
import hashlib
import hmac as hmac_mod
from collections.abc import Iterable, Mapping
from typing import Any, Protocol, runtime_checkable

from pydantic import SecretStr

from billine.signing.canonical import SEPARATOR, Renderable, canonicalise

__all__ = [
    "HashAlgorithm",
    "SupportsFieldList",
    "sign",
    "verify",
]


class HashAlgorithm(str, enum.Enum):
    """Digest used for a call. Payouts use MD5, iframe/h2h calls use SHA-256."""

    MD5 = "md5"
    SHA256 = "sha256"

    def digest(self, data: bytes) -> bytes:
        if self is HashAlgorithm.MD5:
            return hashlib.md5(data).digest()  # noqa: S324
        return hashlib.sha256(data).digest()


@runtime_checkable
class SupportsFieldList(Protocol):
    def to_field_list(self) -> list[tuple[str, Renderable]]: ...


SignablePayload = SupportsFieldList | Iterable[tuple[str, Renderable]] | Mapping[str, Any]


def _secret_value(secret: str | SecretStr) -> str:
    if isinstance(secret, SecretStr):
        return secret.get_secret_value()
    return secret


def _fields(payload: SignablePayload) -> Iterable[tuple[str, Renderable]] | Mapping[str, Any]:
    if isinstance(payload, SupportsFieldList):
        return payload.to_field_list()
    return payload


def sign(
    payload: SignablePayload,
    secret: str | SecretStr,
    algorithm: HashAlgorithm,
    *,
    exclude_keys: set[str] | None = None,
) -> str:
    """Sign a payload and return the base64-encoded digest.

    The digest input is ``canonical + ":" + secret`` encoded as UTF-8.
    """
    canonical = canonicalise(_fields(payload), exclude_keys=exclude_keys)
    data = f"{canonical}{SEPARATOR}{_secret_value(secret)}".encode()
    return base64.b64encode(algorithm.digest(data)).decode("ascii")


def verify(
    payload: SignablePayload,
    signature: str,
    secret: str | SecretStr,
    algorithm: HashAlgorithm,
    *,
    sign_key: str = "sign",
) -> bool:
    """Recompute the signature without ``sign_key`` and compare in constant time."""
    if not signature:
        return False
    computed = sign(payload, secret, algorithm, exclude_keys={sign_key})
    return hmac_mod.compare_digest(computed.encode(), signature.encode())
