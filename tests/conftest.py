"""Shared fixtures for unit tests."""

from __future__ import annotations

from collections.abc import Iterator
from decimal import Decimal
from typing import Any

import pytest
import structlog

from billine.models import Language, PayoutRequest, RequestIframe
from billine.signing.signature import HashAlgorithm, sign


@pytest.fixture()
def reset_structlog() -> Iterator[None]:
    """Undo any structlog configuration made during the test."""
    yield
    structlog.reset_defaults()


@pytest.fixture()
def secret_key() -> str:
    return "SecRetKey0123"


@pytest.fixture()
def payout_request() -> PayoutRequest:
    """Payout matching the gateway's published MD5 example."""
    return PayoutRequest(
        merchant="M1VJDHSI6DYXS",
        method=1,
        payout_id="000002",
        account="5300111122223333",
        amount=Decimal("1.19"),
        currency="UAH",
    )


@pytest.fixture()
def request_iframe() -> RequestIframe:
    return RequestIframe(
        merchant="M1VJDHSI6DYXS",
        order="ORD-1001",
        amount=Decimal("250.00"),
        currency="UAH",
        item_name="Premium plan",
        first_name="Olena",
        last_name="Shevchenko",
        user_id="U-42",
        payment_url="https://shop.example/return",
        country="UA",
        ip="203.0.113.7",
        custom="campaign=spring",
        email="olena@example.com",
        phone="+380501112233",
        address="Khreshchatyk 1",
        city="Kyiv",
        post_code="01001",
        region="Kyiv",
        lang=Language.UA,
    )


@pytest.fixture()
def callback_body(secret_key: str) -> dict[str, Any]:
    """Callback exactly as the gateway would post it, signed with ``secret_key``."""
    body: dict[str, Any] = {
        "co_inv_id": "INV-77",
        "co_inv_crt": "2024-03-01 10:15:00",
        "co_inv_prc": "2024-03-01 10:16:42",
        "co_inv_st": "success",
        "co_order_no": "ORD-1001",
        "co_amount": Decimal("250.00"),
        "co_cur": "UAH",
        "co_merchant_id": "M1VJDHSI6DYXS",
        "co_merchant_uuid": "6f1c0a8e-6b7e-4d0c-9a57-0f8b7c1d2e3f",
    }
    body["co_sign"] = sign(body, secret_key, HashAlgorithm.SHA256)
    return body
