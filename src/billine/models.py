"""Request and callback payloads exchanged with the Billine gateway."""

from __future__ import annotations

import enum
import json
from collections.abc import Mapping
from datetime import UTC, datetime
from decimal import Decimal
from typing import Annotated, Any, ClassVar, Self

from pydantic import BaseModel, BeforeValidator, ConfigDict, PlainSerializer, ValidationError

from billine.errors import FormatError
from billine.signing.canonical import WIRE_DATE_FORMAT, FieldList, format_date, to_renderable
from billine.signing.signature import HashAlgorithm

__all__ = [
    "CallbackIframe",
    "Language",
    "PayoutRequest",
    "RequestIframe",
    "SignedPayload",
    "Status",
    "WireDate",
    "decode_json",
    "parse_date",
]


def parse_date(text: str) -> datetime:
    """Parse a ``YYYY-MM-DD HH:MM:SS`` wire timestamp as UTC.

    Raises:
        FormatError: the text does not match the wire format.
    """
    try:
        parsed = datetime.strptime(text, WIRE_DATE_FORMAT)
    except ValueError as e:
        raise FormatError(f"Invalid date {text!r}, expected YYYY-MM-DD HH:MM:SS") from e
    return parsed.replace(tzinfo=UTC)


def _coerce_date(value: Any) -> Any:
    if isinstance(value, str):
        return parse_date(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
    return value


WireDate = Annotated[
    datetime,
    BeforeValidator(_coerce_date),
    PlainSerializer(format_date, return_type=str, when_used="json"),
]


def _reject_constant(token: str) -> Any:
    raise FormatError(f"Non-finite number {token} is not allowed")


def decode_json(data: str | bytes) -> dict[str, Any]:
    """Decode a JSON object body, keeping decimal numbers exact.

    ``NaN`` and ``Infinity`` tokens are rejected: they have no signable form.
    """
    try:
        decoded = json.loads(data, parse_float=Decimal, parse_constant=_reject_constant)
    except ValueError as e:
        raise FormatError(f"Body is not valid JSON: {e}") from e
    if not isinstance(decoded, dict):
        raise FormatError("Body must be a JSON object")
    return decoded


class Status(str, enum.Enum):
    SUCCESS = "success"
    FAIL = "fail"


class Language(str, enum.Enum):
    EN = "en"
    UA = "ua"


class SignedPayload(BaseModel):
    """Base for every payload that travels with a signature.

    Subclasses pick the digest through ``signature_algorithm``; the
    canonical field list is the declared fields, in declaration order
    (canonicalisation re-sorts them).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    signature_algorithm: ClassVar[HashAlgorithm] = HashAlgorithm.SHA256

    def to_field_list(self) -> FieldList:
        return [(name, to_renderable(getattr(self, name))) for name in type(self).model_fields]

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready field map with absent optionals left out."""
        return self.model_dump(mode="json", exclude_none=True)

    @classmethod
    def parse(cls, data: Mapping[str, Any] | str | bytes) -> Self:
        """Build the payload from a mapping or a JSON body.

        Raises:
            FormatError: a field is missing or fails to parse.
        """
        if isinstance(data, str | bytes):
            data = decode_json(data)
        try:
            return cls.model_validate(dict(data))
        except ValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            raise FormatError(f"Invalid {cls.__name__} fields: {fields}") from e


class PayoutRequest(SignedPayload):
    """Payout to a card or wallet account."""

    signature_algorithm: ClassVar[HashAlgorithm] = HashAlgorithm.MD5

    merchant: str
    method: int
    payout_id: str
    account: str
    amount: Decimal
    currency: str


class RequestIframe(SignedPayload):
    """Iframe / host-to-host payment initiation."""

    merchant: str
    order: str
    amount: Decimal
    currency: str
    item_name: str
    first_name: str
    last_name: str
    user_id: str
    payment_url: str
    country: str
    ip: str
    custom: str
    email: str
    phone: str
    address: str
    city: str
    post_code: str
    region: str
    lang: Language
    cpf: str | None = None


class CallbackIframe(SignedPayload):
    """Transaction outcome posted back by the gateway for iframe/h2h payments."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    sign_key: ClassVar[str] = "co_sign"

    co_inv_id: str
    co_inv_crt: WireDate
    co_inv_prc: WireDate
    co_inv_st: Status
    co_order_no: str
    co_amount: Decimal | None = None
    co_to_wlt: Decimal | None = None
    co_cur: str | None = None
    co_merchant_id: str
    co_merchant_uuid: str
    co_sign: str
    co_base_amount: Decimal | None = None
    co_base_currency: str | None = None
    co_rate: Decimal | None = None
