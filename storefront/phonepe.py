from __future__ import annotations

"""
PhonePe payment gateway: request signing and the HTTP client.

Signing helpers are pure and take the salt key explicitly; only
``PhonePeClient.from_config`` reads the environment-backed settings.

Wire contract (fixed by the provider):

  POST /pg/v1/pay                       body {"request": <base64 payload>}
  GET  /pg/v1/status/{merchantId}/{txn}

both carrying ``X-VERIFY: sha256(<signed text> + saltKey) + "###" + saltIndex``.
"""

import base64
import hashlib
import json
import secrets
import time
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional

import httpx
from loguru import logger
from pydantic import BaseModel, ValidationError

from . import config
from .errors import UpstreamFailure


SUCCESS_CODE = "PAYMENT_SUCCESS"

# codes after which the payment can no longer succeed
TERMINAL_FAILURE_CODES = frozenset(
    {
        "PAYMENT_ERROR",
        "PAYMENT_DECLINED",
        "TIMED_OUT",
        "AUTHORIZATION_FAILED",
        "TRANSACTION_NOT_FOUND",
    }
)


# ---------------------------
# Pure helpers
# ---------------------------

def generate_transaction_id() -> str:
    """
    Merchant transaction id: ``MT`` + epoch millis + 8 random hex chars.
    Stays well under the gateway's 38 character limit.
    """
    return f"MT{int(time.time() * 1000)}{secrets.token_hex(4).upper()}"


def to_paise(amount: float | int | str | Decimal) -> int:
    """Rupees to paise, rounding half up (1999.5 -> 199950)."""
    value = Decimal(str(amount)) * 100
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def encode_payload(payload: Dict[str, Any]) -> str:
    raw = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def decode_payload(encoded: str) -> Dict[str, Any]:
    return json.loads(base64.b64decode(encoded).decode("utf-8"))


def _checksum(text: str, salt_key: str, salt_index: str) -> str:
    digest = hashlib.sha256((text + salt_key).encode("utf-8")).hexdigest()
    return f"{digest}###{salt_index}"


def payment_checksum(encoded_payload: str, salt_key: str, salt_index: str) -> str:
    return _checksum(encoded_payload + config.PHONEPE_PAY_PATH, salt_key, salt_index)


def status_path(merchant_id: str, transaction_id: str) -> str:
    return f"{config.PHONEPE_STATUS_PATH}/{merchant_id}/{transaction_id}"


def status_checksum(merchant_id: str, transaction_id: str, salt_key: str, salt_index: str) -> str:
    return _checksum(status_path(merchant_id, transaction_id), salt_key, salt_index)


def build_pay_payload(
    merchant_id: str,
    transaction_id: str,
    user_id: str,
    amount: float,
    redirect_url: str,
    mobile_number: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "merchantId": merchant_id,
        "merchantTransactionId": transaction_id,
        "merchantUserId": user_id,
        "amount": to_paise(amount),
        "redirectUrl": redirect_url,
        "redirectMode": "REDIRECT",
        "mobileNumber": mobile_number or config.DEFAULT_MOBILE_NUMBER,
        "paymentInstrument": {"type": "PAY_PAGE"},
    }


# ---------------------------
# Gateway responses
# ---------------------------

class GatewayResponse(BaseModel):
    success: bool = False
    code: str = ""
    message: Optional[str] = None
    data: Optional[Dict[str, Any]] = None

    @property
    def redirect_url(self) -> Optional[str]:
        try:
            return self.data["instrumentResponse"]["redirectInfo"]["url"]  # type: ignore[index]
        except (KeyError, TypeError):
            return None

    @property
    def is_paid(self) -> bool:
        return self.success and self.code == SUCCESS_CODE

    @property
    def is_terminal_failure(self) -> bool:
        return self.code in TERMINAL_FAILURE_CODES


# ---------------------------
# HTTP client
# ---------------------------

class PhonePeClient:
    """
    Thin httpx client for the two gateway endpoints.

    Every transport error, timeout or unparseable body is raised as
    UpstreamFailure. A well-formed JSON body is returned as-is even on a
    4xx, since the gateway reports declines that way.
    """

    def __init__(
        self,
        host_url: str,
        merchant_id: str,
        salt_key: str,
        salt_index: str,
        timeout: Optional[httpx.Timeout] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.host_url = host_url.rstrip("/")
        self.merchant_id = merchant_id
        self._salt_key = salt_key
        self._salt_index = salt_index
        self._timeout = timeout or httpx.Timeout(
            config.GATEWAY_READ_TIMEOUT, connect=config.GATEWAY_CONNECT_TIMEOUT
        )
        self._transport = transport

    @classmethod
    def from_config(cls) -> "PhonePeClient":
        if not config.PHONEPE_SALT_KEY:
            logger.warning("PHONEPE_SALT_KEY is not set; gateway calls will be rejected")
        return cls(
            host_url=config.PHONEPE_HOST_URL,
            merchant_id=config.PHONEPE_MERCHANT_ID,
            salt_key=config.PHONEPE_SALT_KEY,
            salt_index=config.PHONEPE_SALT_INDEX,
        )

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.host_url,
            timeout=self._timeout,
            transport=self._transport,
            headers={
                "Content-Type": "application/json",
                "accept": "application/json",
                "User-Agent": config.HTTP_USER_AGENT,
            },
        )

    def _parse(self, r: httpx.Response, what: str) -> GatewayResponse:
        try:
            body = r.json()
        except ValueError:
            logger.warning("PhonePe {}: HTTP {} with non-JSON body", what, r.status_code)
            raise UpstreamFailure(f"Gateway {what} returned an unreadable response")
        try:
            parsed = GatewayResponse.model_validate(body)
        except ValidationError as e:
            logger.warning("PhonePe {}: unexpected body shape: {}", what, e)
            raise UpstreamFailure(f"Gateway {what} returned an unexpected response")
        logger.info("PhonePe {}: HTTP {} success={} code={}", what, r.status_code, parsed.success, parsed.code)
        return parsed

    def pay(self, payload: Dict[str, Any]) -> GatewayResponse:
        encoded = encode_payload(payload)
        headers = {"X-VERIFY": payment_checksum(encoded, self._salt_key, self._salt_index)}
        try:
            with self._client() as client:
                r = client.post(config.PHONEPE_PAY_PATH, json={"request": encoded}, headers=headers)
        except httpx.TimeoutException:
            logger.warning("PhonePe pay timed out for {}", payload.get("merchantTransactionId"))
            raise UpstreamFailure("Gateway timed out")
        except httpx.HTTPError as e:
            logger.warning("PhonePe pay transport error: {}", e)
            raise UpstreamFailure("Gateway unreachable")
        return self._parse(r, "pay")

    def check_status(self, transaction_id: str) -> GatewayResponse:
        headers = {
            "X-VERIFY": status_checksum(self.merchant_id, transaction_id, self._salt_key, self._salt_index),
            "X-MERCHANT-ID": self.merchant_id,
        }
        try:
            with self._client() as client:
                r = client.get(status_path(self.merchant_id, transaction_id), headers=headers)
        except httpx.TimeoutException:
            logger.warning("PhonePe status timed out for {}", transaction_id)
            raise UpstreamFailure("Gateway timed out")
        except httpx.HTTPError as e:
            logger.warning("PhonePe status transport error: {}", e)
            raise UpstreamFailure("Gateway unreachable")
        return self._parse(r, "status")
