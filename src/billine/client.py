"""Signed HTTP client for the Billine payment gateway."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import SecretStr

from billine.errors import SerializationError, SignatureMismatch, TransportError
from billine.logging import configure_logging, get_logger, request_context
from billine.models import CallbackIframe, SignedPayload, decode_json
from billine.signing.canonical import json_default
from billine.signing.signature import HashAlgorithm, sign, verify

if TYPE_CHECKING:
    from types import TracebackType

    from billine.settings import BillineSettings

__all__ = ["BillineClient", "SIGN_KEY"]

logger = get_logger(component="billine.client")

SIGN_KEY = "sign"


class BillineClient:
    """Signs payloads, sends them to the gateway and checks its callbacks.

    Holds no per-request state, so one instance can serve concurrent calls.
    """

    def __init__(
        self,
        secret_key: str | SecretStr,
        base_url: str,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._secret = secret_key if isinstance(secret_key, SecretStr) else SecretStr(secret_key)
        self._base_url = base_url
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    @classmethod
    def from_settings(
        cls,
        settings: BillineSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> BillineClient:
        """Build a client and configure logging from ``settings``."""
        configure_logging(json_output=settings.log_json, level=settings.log_level)
        return cls(
            settings.secret_key,
            settings.base_url,
            timeout=settings.timeout,
            transport=transport,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(base_url={self._base_url!r}, secret_key={self._secret!r})"

    @property
    def base_url(self) -> str:
        return self._base_url

    # ── Outgoing ───────────────────────────────────────────────

    def sign_payload(
        self,
        payload: SignedPayload | Mapping[str, Any],
        algorithm: HashAlgorithm | None = None,
    ) -> dict[str, Any]:
        """Return the wire map: every payload field plus ``sign``.

        Models sign with their own ``signature_algorithm`` unless one is
        given; plain mappings default to SHA-256.
        """
        algorithm = self._algorithm_for(payload, algorithm)
        if isinstance(payload, SignedPayload):
            wire = payload.to_wire()
            signature = sign(payload, self._secret, algorithm, exclude_keys={SIGN_KEY})
        else:
            wire = dict(payload)
            signature = sign(wire, self._secret, algorithm, exclude_keys={SIGN_KEY})
        wire[SIGN_KEY] = signature
        return wire

    @staticmethod
    def _algorithm_for(
        payload: SignedPayload | Mapping[str, Any],
        algorithm: HashAlgorithm | None,
    ) -> HashAlgorithm:
        if algorithm is not None:
            return algorithm
        if isinstance(payload, SignedPayload):
            return payload.signature_algorithm
        return HashAlgorithm.SHA256

    async def send(
        self,
        path: str,
        payload: SignedPayload | Mapping[str, Any],
        algorithm: HashAlgorithm | None = None,
    ) -> str:
        """Sign ``payload`` and send it as the JSON body of a GET to ``base_url + path``.

        Returns the raw response body.

        Raises:
            TransportError: the gateway is unreachable or answered non-2xx.
        """
        body = self.sign_payload(payload, algorithm)
        with request_context() as rid:
            log = logger.bind(
                path=path,
                request_id=rid,
                algorithm=self._algorithm_for(payload, algorithm).value,
            )
            return await self._transmit(path, body, log)

    async def _transmit(self, path: str, body: dict[str, Any], log: Any) -> str:
        log.info("billine.request", fields=sorted(k for k in body if k != SIGN_KEY))

        try:
            # The gateway expects the body on a GET; httpx only allows that via request().
            resp = await self._client.request(
                "GET",
                path,
                content=json.dumps(body, default=json_default, ensure_ascii=False).encode(),
                headers={"Content-Type": "application/json"},
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            log.warning("billine.transport_error", status_code=status_code)
            raise TransportError(
                f"Gateway returned HTTP {status_code} for {path}", status_code=status_code
            ) from e
        except httpx.HTTPError as e:
            log.warning("billine.transport_error", error=type(e).__name__)
            raise TransportError(f"Gateway unreachable for {path}: {type(e).__name__}") from e

        log.info("billine.response", status_code=resp.status_code)
        return resp.text

    # ── Callbacks ──────────────────────────────────────────────

    def verify_callback(
        self,
        payload_with_sign: SignedPayload | Mapping[str, Any],
        algorithm: HashAlgorithm | None = None,
    ) -> bool:
        """Recompute the signature over the payload minus its signature field.

        Models default to their own ``signature_algorithm``, mappings to SHA-256.
        Values with no canonical form (e.g. NaN) never verify.
        """
        if isinstance(payload_with_sign, SignedPayload):
            sign_key = getattr(type(payload_with_sign), "sign_key", SIGN_KEY)
            received = getattr(payload_with_sign, sign_key, "")
        else:
            sign_key = (
                CallbackIframe.sign_key if CallbackIframe.sign_key in payload_with_sign else SIGN_KEY
            )
            received = payload_with_sign.get(sign_key, "")
        if not isinstance(received, str):
            return False
        algorithm = self._algorithm_for(payload_with_sign, algorithm)
        try:
            return verify(payload_with_sign, received, self._secret, algorithm, sign_key=sign_key)
        except SerializationError:
            return False

    def parse_callback(
        self,
        data: Mapping[str, Any] | str | bytes,
        algorithm: HashAlgorithm | None = None,
    ) -> CallbackIframe:
        """Authenticate and parse a gateway callback.

        The signature is checked against the fields exactly as received,
        before any of them is interpreted.

        Raises:
            FormatError: the body is not JSON or a field fails to parse.
            SignatureMismatch: the signature does not match.
        """
        raw = decode_json(data) if isinstance(data, str | bytes) else dict(data)
        if not self.verify_callback(raw, algorithm):
            logger.warning("billine.callback_rejected", co_inv_id=str(raw.get("co_inv_id", "")))
            raise SignatureMismatch("Callback signature does not match")
        return CallbackIframe.parse(raw)

    # ── Lifecycle ──────────────────────────────────────────────

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> BillineClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
