import asyncio
import hashlib
import hmac
from typing import Any, Dict, Optional
import httpx
from fastapi import Request
from pizzaport.common.utils import digests_match
from pizzaport.config.settings import Settings
from pizzaport.payments.constants import DEFAULT_BACKOFF_BASE, DEFAULT_RETRIES, TRANSIENT_EXCEPTIONS, logger


class PaymentGatewayError(Exception):
    """Razorpay could not create the remote order."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def hmac_sha256_hex(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def payment_signature(razorpay_order_id: str, razorpay_payment_id: str, secret: str) -> str:
    return hmac_sha256_hex(secret, f"{razorpay_order_id}|{razorpay_payment_id}".encode())


def verify_payment_signature(razorpay_order_id: str, razorpay_payment_id: str, signature: Optional[str], secret: str) -> bool:
    expected = payment_signature(razorpay_order_id, razorpay_payment_id, secret)
    return digests_match(expected, signature)


def verify_webhook_signature(raw_body: bytes, signature: Optional[str], secret: str) -> bool:
    # raw request bytes , never a re-serialized body
    expected = hmac_sha256_hex(secret, raw_body)
    return digests_match(expected, signature)


class RazorpayGateway:

    def __init__(self, key_id: str, key_secret: str, api_base: str,
                 timeout: float = 10.0, max_retries: int = DEFAULT_RETRIES,
                 backoff_base: float = DEFAULT_BACKOFF_BASE,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.key_id = key_id
        self._key_secret = key_secret
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "RazorpayGateway":
        return cls(
            key_id=settings.RAZORPAY_KEY_ID,
            key_secret=settings.RAZORPAY_SECRET_KEY,
            api_base=settings.RAZORPAY_API_BASE,
            timeout=settings.RAZORPAY_TIMEOUT_SECONDS,
        )

    async def _post_order(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.api_base}/orders"
        async with httpx.AsyncClient(timeout=self.timeout, auth=(self.key_id, self._key_secret),
                                     transport=self._transport) as client:
            resp = await client.post(url, json=payload)
            resp.raise_for_status()
            return resp.json()

    async def create_order(self, amount_paise: int, currency: str, receipt: str,
                           notes: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """
        Create a Razorpay order (server -> razorpay).
        Returns {"session_id": <razorpay order id>, "amount": <paise>, "currency": ...}.
        Transient network errors and 5xx are retried with backoff , 4xx surface immediately.
        """
        payload = {
            "amount": amount_paise,
            "currency": currency,
            "receipt": receipt,
            "payment_capture": 1,
            "notes": notes or {},
        }

        last_exc: Optional[Exception] = None
        for attempt in range(1, self.max_retries + 1):
            try:
                data = await self._post_order(payload)
            except TRANSIENT_EXCEPTIONS as ex:
                last_exc = ex
                logger.warning("razorpay.create_order.transient_error",
                               extra={"attempt": attempt, "error": str(ex), "receipt": receipt})
            except httpx.HTTPStatusError as ex:
                status_code = ex.response.status_code if ex.response is not None else None
                if status_code and 500 <= status_code < 600:
                    last_exc = ex
                    logger.warning("razorpay.create_order.provider_5xx",
                                   extra={"attempt": attempt, "http_status": status_code, "receipt": receipt})
                else:
                    logger.error("razorpay.create_order.rejected",
                                 extra={"http_status": status_code, "body": ex.response.text if ex.response is not None else None})
                    raise PaymentGatewayError("razorpay rejected order creation", status_code=status_code) from ex
            else:
                provider_order_id = data.get("id")
                if not provider_order_id:
                    raise PaymentGatewayError("no order id in razorpay response")
                return {
                    "session_id": provider_order_id,
                    "amount": int(data.get("amount", amount_paise)),
                    "currency": data.get("currency", currency),
                }

            if attempt < self.max_retries:
                await asyncio.sleep(min(self.backoff_base * (2 ** (attempt - 1)), 8.0))

        raise PaymentGatewayError(f"razorpay unreachable after {self.max_retries} attempts") from last_exc


def get_payment_gateway(request: Request) -> RazorpayGateway:
    return request.app.state.payment_gateway
