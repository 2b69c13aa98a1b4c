import os

os.environ.setdefault("ENV", "dev")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./pizzaport_test.db")
os.environ.setdefault("AUTH_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("RAZORPAY_KEY_ID", "rzp_test_key")
os.environ.setdefault("RAZORPAY_SECRET_KEY", "rzp_test_secret")
os.environ.setdefault("RAZORPAY_WEBHOOK_SECRET", "whsec_test_secret")

import json
import pytest
from typing import Any, Dict, List, Optional
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy import select
from pizzaport.config.settings import config_settings
from pizzaport.main import create_app
from pizzaport.payments.gateway import PaymentGatewayError, hmac_sha256_hex, payment_signature
from pizzaport.schema.full_schema import Coupon, MenuItem, Orders

url_prefix = "/api/v1"


class FakeGateway:
    """In memory stand in for the Razorpay orders api."""

    key_id = "rzp_test_key"

    def __init__(self):
        self.calls: List[Dict[str, Any]] = []
        self.fail_with: Optional[PaymentGatewayError] = None

    async def create_order(self, amount_paise: int, currency: str, receipt: str,
                           notes: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        self.calls.append({"amount": amount_paise, "currency": currency, "receipt": receipt, "notes": notes})
        if self.fail_with is not None:
            raise self.fail_with
        return {"session_id": f"order_test_{len(self.calls)}", "amount": amount_paise, "currency": currency}


@pytest.fixture
def settings(tmp_path):
    return config_settings.model_copy(update={
        "DATABASE_URL": f"sqlite+aiosqlite:///{tmp_path / 'pizzaport.db'}",
        "DB_CREATE_ALL": True,
        "ENABLE_ADMIN": True,
    })


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def app(settings, fake_gateway):
    return create_app(settings=settings, payment_gateway=fake_gateway)


@pytest.fixture
async def ac_client(app):
    async with LifespanManager(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac


@pytest.fixture
async def db_session(app, ac_client):
    async with app.state.async_session() as session:
        yield session


def make_token(settings, sub: str, email: Optional[str], name: str = "Test User", admin: bool = False) -> str:
    claims = {"sub": sub, "name": name, "admin": admin}
    if email:
        claims["email"] = email
    return jwt.encode(claims, settings.AUTH_JWT_SECRET, algorithm=settings.AUTH_JWT_ALGO)


@pytest.fixture
def buyer_headers(settings):
    return {"Authorization": f"Bearer {make_token(settings, 'user_1', 'asha@example.com', 'Asha')}"}


@pytest.fixture
def other_buyer_headers(settings):
    return {"Authorization": f"Bearer {make_token(settings, 'user_2', 'ravi@example.com', 'Ravi')}"}


@pytest.fixture
def admin_headers(settings):
    return {"Authorization": f"Bearer {make_token(settings, 'admin_1', 'admin@example.com', 'Admin', admin=True)}"}


# --------------------------------------------------------------------------------------------
# seed + lookup helpers

async def seed_menu_item(session, **overrides) -> MenuItem:
    values = {
        "name": "Margherita",
        "description": "Tomato, mozzarella, basil",
        "base_price": 500,
        "category": "pizza",
        "size_options": [{"name": "Regular", "extra_price": 0}, {"name": "Large", "extra_price": 150}],
        "extra_ingredients": [{"name": "Olives", "extra_price": 40}, {"name": "Jalapeno", "extra_price": 30}],
        "image_url": "https://media.example.com/margherita.jpg",
    }
    values.update(overrides)
    item = MenuItem(**values)
    session.add(item)
    await session.commit()
    await session.refresh(item)
    return item


async def seed_coupon(session, **overrides) -> Coupon:
    values = {"code": "FLAT50", "discount_type": "fixed", "discount_value": 50}
    values.update(overrides)
    coupon = Coupon(**values)
    session.add(coupon)
    await session.commit()
    await session.refresh(coupon)
    return coupon


async def load_order(app, razorpay_order_id: str) -> Orders:
    async with app.state.async_session() as session:
        res = await session.execute(select(Orders).where(Orders.razorpay_order_id == razorpay_order_id))
        return res.scalar_one()


async def load_coupon(app, code: str) -> Coupon:
    async with app.state.async_session() as session:
        res = await session.execute(select(Coupon).where(Coupon.code == code))
        return res.scalar_one()


def checkout_body(product_id: int, coupon_code: Optional[str] = None, **line) -> Dict[str, Any]:
    body = {
        "name": "Asha",
        "email": "asha@example.com",
        "address": "12 MG Road, Bengaluru",
        "cart": [{"product_id": product_id, **line}],
    }
    if coupon_code is not None:
        body["coupon_code"] = coupon_code
    return body


async def place_order(ac_client, product_id: int, coupon_code: Optional[str] = None, headers=None) -> Dict[str, Any]:
    resp = await ac_client.post(f"{url_prefix}/checkout/orders",
                                json=checkout_body(product_id, coupon_code), headers=headers or {})
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def verify_body(settings, order: Dict[str, Any], payment_id: str = "pay_test_1") -> Dict[str, Any]:
    return {
        "razorpay_order_id": order["razorpay_order_id"],
        "razorpay_payment_id": payment_id,
        "razorpay_signature": payment_signature(order["razorpay_order_id"], payment_id, settings.RAZORPAY_SECRET_KEY),
        "integrity_token": order["integrity_token"],
    }


def webhook_request(settings, event: str, razorpay_order_id: str, payment_id: str = "pay_test_1"):
    payload = {
        "event": event,
        "payload": {"payment": {"entity": {
            "id": payment_id,
            "order_id": razorpay_order_id,
            "status": "captured" if event == "payment.captured" else "failed",
        }}},
    }
    body = json.dumps(payload).encode()
    headers = {"content-type": "application/json",
               "x-razorpay-signature": hmac_sha256_hex(settings.RAZORPAY_WEBHOOK_SECRET, body)}
    return body, headers
