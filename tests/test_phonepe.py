import hashlib
import json

import httpx
import pytest

from storefront.errors import UpstreamFailure
from storefront.phonepe import (
    GatewayResponse,
    PhonePeClient,
    build_pay_payload,
    decode_payload,
    encode_payload,
    generate_transaction_id,
    payment_checksum,
    status_checksum,
    to_paise,
)


SALT_KEY = "099eb0cd-02cf-4e2a-8aca-3e6c6aff0399"


def test_to_paise_rounds_half_up():
    assert to_paise(1999.5) == 199950
    assert to_paise(10) == 1000
    assert to_paise(0.015) == 2
    assert to_paise("249.75") == 24975


def test_transaction_ids_are_unique_and_well_formed():
    ids = {generate_transaction_id() for _ in range(500)}
    assert len(ids) == 500
    for txn in ids:
        assert txn.startswith("MT")
        assert txn.isalnum()
        assert len(txn) <= 38


def test_payload_round_trips_through_base64():
    payload = build_pay_payload("M1", "MT1", "user-1", 1999.5, "https://shop.example/cb?orderId=o1")
    assert payload["amount"] == 199950
    assert payload["paymentInstrument"] == {"type": "PAY_PAGE"}
    assert payload["mobileNumber"] == "9999999999"
    assert payload["redirectMode"] == "REDIRECT"
    assert decode_payload(encode_payload(payload)) == payload


def test_payment_checksum_format():
    encoded = encode_payload({"merchantId": "M1"})
    expected = hashlib.sha256((encoded + "/pg/v1/pay" + SALT_KEY).encode()).hexdigest() + "###1"
    assert payment_checksum(encoded, SALT_KEY, "1") == expected
    # the secret itself never appears in the header value
    assert SALT_KEY not in expected


def test_status_checksum_format():
    expected = hashlib.sha256(("/pg/v1/status/M1/MT123" + SALT_KEY).encode()).hexdigest() + "###2"
    assert status_checksum("M1", "MT123", SALT_KEY, "2") == expected


def test_gateway_response_redirect_url():
    ok = GatewayResponse.model_validate(
        {
            "success": True,
            "code": "PAYMENT_INITIATED",
            "data": {"instrumentResponse": {"redirectInfo": {"url": "https://pay.example/x"}}},
        }
    )
    assert ok.redirect_url == "https://pay.example/x"
    assert GatewayResponse(success=True, code="PAYMENT_INITIATED").redirect_url is None
    assert GatewayResponse(success=True, code="PAYMENT_SUCCESS").is_paid
    assert not GatewayResponse(success=False, code="PAYMENT_SUCCESS").is_paid
    assert GatewayResponse(code="PAYMENT_DECLINED").is_terminal_failure
    assert not GatewayResponse(code="PAYMENT_PENDING").is_terminal_failure


def _client(handler) -> PhonePeClient:
    return PhonePeClient(
        host_url="https://gateway.example/apis/pg-sandbox",
        merchant_id="M1",
        salt_key=SALT_KEY,
        salt_index="1",
        transport=httpx.MockTransport(handler),
    )


def test_pay_posts_signed_request():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["verify"] = request.headers["X-VERIFY"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "success": True,
                "code": "PAYMENT_INITIATED",
                "data": {"instrumentResponse": {"redirectInfo": {"url": "https://pay.example/abc"}}},
            },
        )

    payload = build_pay_payload("M1", "MT1", "user-1", 100, "https://shop.example/cb")
    result = _client(handler).pay(payload)

    assert result.redirect_url == "https://pay.example/abc"
    assert seen["path"] == "/apis/pg-sandbox/pg/v1/pay"
    encoded = seen["body"]["request"]
    assert decode_payload(encoded)["amount"] == 10000
    assert seen["verify"] == payment_checksum(encoded, SALT_KEY, "1")


def test_check_status_sends_merchant_headers():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["headers"] = request.headers
        return httpx.Response(200, json={"success": True, "code": "PAYMENT_SUCCESS"})

    result = _client(handler).check_status("MT42")
    assert result.is_paid
    assert seen["path"] == "/apis/pg-sandbox/pg/v1/status/M1/MT42"
    assert seen["headers"]["X-MERCHANT-ID"] == "M1"
    assert seen["headers"]["X-VERIFY"] == status_checksum("M1", "MT42", SALT_KEY, "1")


def test_declines_with_json_body_are_returned_not_raised():
    def handler(request):
        return httpx.Response(400, json={"success": False, "code": "BAD_REQUEST", "message": "Invalid"})

    result = _client(handler).check_status("MT1")
    assert not result.success
    assert result.code == "BAD_REQUEST"


def test_unreadable_body_is_upstream_failure():
    def handler(request):
        return httpx.Response(502, text="<html>Bad gateway</html>")

    with pytest.raises(UpstreamFailure):
        _client(handler).pay({"merchantTransactionId": "MT1"})


def test_timeout_is_upstream_failure():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(UpstreamFailure):
        _client(handler).check_status("MT1")


def test_transport_error_is_upstream_failure():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(UpstreamFailure):
        _client(handler).pay({"merchantTransactionId": "MT1"})
