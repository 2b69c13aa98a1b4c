import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from pizzaport.orders.utils import compute_integrity_token
from pizzaport.payments.gateway import PaymentGatewayError
from pizzaport.schema.full_schema import Orders
from tests.conftest import checkout_body, load_order, place_order, seed_coupon, seed_menu_item, url_prefix


async def count_orders(app) -> int:
    async with app.state.async_session() as session:
        res = await session.execute(select(func.count()).select_from(Orders))
        return res.scalar_one()


async def test_create_order_prices_from_menu(ac_client, db_session, app, fake_gateway):
    item = await seed_menu_item(db_session, base_price=500)

    data = await place_order(ac_client, item.id)

    assert data["subtotal"] == 500
    assert data["tax"] == 25
    assert data["delivery_fee"] == 0
    assert data["discount"] == 0
    assert data["total"] == 525
    assert data["amount"] == 52500
    assert data["currency"] == "INR"
    assert data["key_id"] == "rzp_test_key"
    assert fake_gateway.calls[0]["amount"] == 52500
    assert fake_gateway.calls[0]["receipt"] == data["order_id"]

    order = await load_order(app, data["razorpay_order_id"])
    assert order.payment_status == "pending"
    assert order.status == "placed"
    assert order.user_id is None
    assert order.integrity_token == data["integrity_token"]
    assert order.integrity_token == compute_integrity_token(order.cart, order.total)
    assert order.cart[0]["name"] == "Margherita"
    assert order.cart[0]["unit_price"] == 500


async def test_create_order_with_options_and_discount_price(ac_client, db_session, app):
    item = await seed_menu_item(db_session, base_price=300, discount_price=250)
    body = checkout_body(item.id, size="Large", extras=["Olives"])

    resp = await ac_client.post(f"{url_prefix}/checkout/orders", json=body)
    assert resp.status_code == 201
    data = resp.json()["data"]
    # 250 + 150 + 40
    assert data["subtotal"] == 440
    assert data["tax"] == 22
    assert data["delivery_fee"] == 0

    order = await load_order(app, data["razorpay_order_id"])
    assert order.cart[0]["size"] == {"name": "Large", "extra_price": 150}
    assert order.cart[0]["extras"] == [{"name": "Olives", "extra_price": 40}]


async def test_small_order_pays_delivery(ac_client, db_session):
    item = await seed_menu_item(db_session, base_price=199)
    data = await place_order(ac_client, item.id)
    assert data["delivery_fee"] == 50
    assert data["total"] == 199 + 10 + 50


async def test_create_order_applies_coupon(ac_client, db_session, app):
    item = await seed_menu_item(db_session, base_price=500)
    await seed_coupon(db_session, code="FLAT50")

    data = await place_order(ac_client, item.id, coupon_code="flat50")
    assert data["discount"] == 50
    assert data["total"] == 475

    order = await load_order(app, data["razorpay_order_id"])
    assert order.coupon_code == "FLAT50"
    assert order.discount_amount == 50
    assert order.coupon_usage_recorded is False


async def test_client_discount_is_ignored(ac_client, db_session):
    item = await seed_menu_item(db_session, base_price=500)
    body = {**checkout_body(item.id), "discount": 500, "total": 1}

    resp = await ac_client.post(f"{url_prefix}/checkout/orders", json=body)
    assert resp.status_code == 201
    assert resp.json()["data"]["total"] == 525


async def test_invalid_coupon_rejects_order(ac_client, db_session, app, fake_gateway):
    item = await seed_menu_item(db_session, base_price=500)
    await seed_coupon(db_session, code="BIGSPEND", min_order_value=1000)

    resp = await ac_client.post(f"{url_prefix}/checkout/orders", json=checkout_body(item.id, coupon_code="BIGSPEND"))
    assert resp.status_code == 400
    assert resp.json()["error"]["details"]["message"] == "Minimum order value of ₹1000 required"
    assert fake_gateway.calls == []
    assert await count_orders(app) == 0


@pytest.mark.parametrize("mutate", [
    lambda b: b.update(cart=[]),
    lambda b: b.update(address="abc"),
    lambda b: b.update(email="not-an-email"),
    lambda b: b.update(name="   "),
])
async def test_invalid_body_rejected_before_gateway(ac_client, db_session, fake_gateway, mutate):
    item = await seed_menu_item(db_session)
    body = checkout_body(item.id)
    mutate(body)

    resp = await ac_client.post(f"{url_prefix}/checkout/orders", json=body)
    assert resp.status_code == 422
    assert fake_gateway.calls == []


async def test_unknown_menu_item(ac_client, fake_gateway):
    resp = await ac_client.post(f"{url_prefix}/checkout/orders", json=checkout_body(9999))
    assert resp.status_code == 400
    assert resp.json()["error"]["details"]["message"] == "Menu item not found"
    assert fake_gateway.calls == []


async def test_unknown_option(ac_client, db_session, fake_gateway):
    item = await seed_menu_item(db_session)
    resp = await ac_client.post(f"{url_prefix}/checkout/orders", json=checkout_body(item.id, extras=["Pineapple"]))
    assert resp.status_code == 400
    assert resp.json()["error"]["details"]["message"] == "Invalid option"
    assert fake_gateway.calls == []


async def test_gateway_failure_writes_nothing(ac_client, db_session, app, fake_gateway):
    item = await seed_menu_item(db_session)
    fake_gateway.fail_with = PaymentGatewayError("razorpay unreachable after 3 attempts")

    resp = await ac_client.post(f"{url_prefix}/checkout/orders", json=checkout_body(item.id))
    assert resp.status_code == 502
    assert await count_orders(app) == 0


async def test_persist_failure_after_gateway_order(ac_client, db_session, app, fake_gateway, monkeypatch):
    item = await seed_menu_item(db_session)

    async def broken_insert(session, values):
        raise OperationalError("INSERT INTO orders", None, Exception("disk I/O error"))

    monkeypatch.setattr("pizzaport.orders.services.insert_order", broken_insert)

    resp = await ac_client.post(f"{url_prefix}/checkout/orders", json=checkout_body(item.id))
    assert resp.status_code == 500
    assert len(fake_gateway.calls) == 1
    assert "disk" not in resp.text


async def test_authenticated_checkout_uses_session_identity(ac_client, db_session, app, buyer_headers):
    item = await seed_menu_item(db_session)
    body = {**checkout_body(item.id), "email": "someone-else@example.com"}

    resp = await ac_client.post(f"{url_prefix}/checkout/orders", json=body, headers=buyer_headers)
    assert resp.status_code == 201

    order = await load_order(app, resp.json()["data"]["razorpay_order_id"])
    assert order.user_email == "asha@example.com"
    assert order.user_id == "user_1"


async def test_bad_token_on_checkout_is_rejected(ac_client, db_session):
    item = await seed_menu_item(db_session)
    resp = await ac_client.post(f"{url_prefix}/checkout/orders", json=checkout_body(item.id),
                                headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
