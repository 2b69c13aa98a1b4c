import httpx
import pytest
from pizzaport.payments.gateway import (PaymentGatewayError, RazorpayGateway, payment_signature,
                                        verify_payment_signature, verify_webhook_signature, hmac_sha256_hex)


def make_gateway(handler, retries=3):
    return RazorpayGateway(key_id="rzp_test_key", key_secret="rzp_test_secret", api_base="https://rzp.test/v1/",
                           max_retries=retries, backoff_base=0, transport=httpx.MockTransport(handler))


def test_payment_signature_round_trip():
    sig = payment_signature("order_1", "pay_1", "secret")
    assert verify_payment_signature("order_1", "pay_1", sig, "secret")
    assert not verify_payment_signature("order_1", "pay_2", sig, "secret")
    assert not verify_payment_signature("order_1", "pay_1", sig, "other-secret")
    assert not verify_payment_signature("order_1", "pay_1", None, "secret")
    assert not verify_payment_signature("order_1", "pay_1", "\u00e9" * 64, "secret")


def test_webhook_signature_uses_exact_bytes():
    body = b'{"event":"payment.captured"}'
    sig = hmac_sha256_hex("whsec", body)
    assert verify_webhook_signature(body, sig, "whsec")
    assert not verify_webhook_signature(body + b" ", sig, "whsec")
    assert not verify_webhook_signature(body, "", "whsec")
    assert not verify_webhook_signature(body, "\xe9" * 64, "whsec")


async def test_create_order_posts_basic_auth_payload():
    seen = {}

    def handler(request: httpx.Request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = request.read()
        return httpx.Response(200, json={"id": "order_abc", "amount": 52500, "currency": "INR"})

    result = await make_gateway(handler).create_order(52500, "INR", receipt="r-1")

    assert result == {"session_id": "order_abc", "amount": 52500, "currency": "INR"}
    assert seen["url"] == "https://rzp.test/v1/orders"
    assert seen["auth"].startswith("Basic ")
    assert b'"payment_capture":1' in seen["body"].replace(b" ", b"")


async def test_create_order_retries_transient_failures():
    calls = {"n": 0}

    def handler(request: httpx.Request):
        calls["n"] += 1
        if calls["n"] == 1:
            raise httpx.ConnectError("connection refused", request=request)
        if calls["n"] == 2:
            return httpx.Response(503, json={"error": "unavailable"})
        return httpx.Response(200, json={"id": "order_retry", "amount": 100, "currency": "INR"})

    result = await make_gateway(handler).create_order(100, "INR", receipt="r-2")
    assert result["session_id"] == "order_retry"
    assert calls["n"] == 3


async def test_create_order_gives_up_after_max_retries():
    def handler(request: httpx.Request):
        return httpx.Response(502, json={"error": "bad gateway"})

    with pytest.raises(PaymentGatewayError):
        await make_gateway(handler, retries=2).create_order(100, "INR", receipt="r-3")


async def test_create_order_does_not_retry_client_errors():
    calls = {"n": 0}

    def handler(request: httpx.Request):
        calls["n"] += 1
        return httpx.Response(400, json={"error": {"description": "amount too small"}})

    with pytest.raises(PaymentGatewayError) as exc:
        await make_gateway(handler).create_order(1, "INR", receipt="r-4")
    assert exc.value.status_code == 400
    assert calls["n"] == 1
