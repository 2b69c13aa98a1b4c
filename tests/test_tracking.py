from tests.conftest import checkout_body, place_order, seed_menu_item, url_prefix, verify_body


async def test_order_history_lists_only_paid_orders(ac_client, db_session, settings, buyer_headers):
    item = await seed_menu_item(db_session, base_price=500)
    paid = await place_order(ac_client, item.id, headers=buyer_headers)
    await ac_client.post(f"{url_prefix}/checkout/verify", json=verify_body(settings, paid))
    await place_order(ac_client, item.id, headers=buyer_headers)   # never paid

    resp = await ac_client.get(f"{url_prefix}/orders", headers=buyer_headers)
    assert resp.status_code == 200
    orders = resp.json()["data"]["orders"]
    assert [o["razorpay_order_id"] for o in orders] == [paid["razorpay_order_id"]]
    assert orders[0]["total"] == 525


async def test_order_history_newest_first(ac_client, db_session, settings, buyer_headers):
    item = await seed_menu_item(db_session)
    placed = []
    for _ in range(3):
        order = await place_order(ac_client, item.id, headers=buyer_headers)
        await ac_client.post(f"{url_prefix}/checkout/verify", json=verify_body(settings, order))
        placed.append(order["razorpay_order_id"])

    resp = await ac_client.get(f"{url_prefix}/orders", headers=buyer_headers)
    assert [o["razorpay_order_id"] for o in resp.json()["data"]["orders"]] == list(reversed(placed))


async def test_order_detail_groups_lines(ac_client, db_session, buyer_headers):
    item = await seed_menu_item(db_session, base_price=200)
    body = checkout_body(item.id)
    body["cart"] = [{"product_id": item.id}, {"product_id": item.id}, {"product_id": item.id, "size": "Large"}]

    resp = await ac_client.post(f"{url_prefix}/checkout/orders", json=body, headers=buyer_headers)
    rid = resp.json()["data"]["razorpay_order_id"]

    resp = await ac_client.get(f"{url_prefix}/orders/{rid}", headers=buyer_headers)
    assert resp.status_code == 200
    detail = resp.json()["data"]["order"]
    assert "integrity_token" not in detail
    assert [(i["quantity"], i["line_total"]) for i in detail["items"]] == [(2, 400), (1, 350)]
    assert detail["subtotal"] == 750


async def test_order_detail_only_for_owner(ac_client, db_session, buyer_headers, other_buyer_headers):
    item = await seed_menu_item(db_session)
    order = await place_order(ac_client, item.id, headers=buyer_headers)

    resp = await ac_client.get(f"{url_prefix}/orders/{order['razorpay_order_id']}", headers=other_buyer_headers)
    assert resp.status_code == 404

    resp = await ac_client.get(f"{url_prefix}/orders/{order['razorpay_order_id']}/status", headers=other_buyer_headers)
    assert resp.status_code == 404


async def test_order_status_polling(ac_client, db_session, settings, buyer_headers, admin_headers):
    item = await seed_menu_item(db_session)
    order = await place_order(ac_client, item.id, headers=buyer_headers)
    await ac_client.post(f"{url_prefix}/checkout/verify", json=verify_body(settings, order))
    await ac_client.patch(f"{url_prefix}/admin/orders/{order['order_id']}/status", json={"status": "preparing"},
                          headers=admin_headers)

    resp = await ac_client.get(f"{url_prefix}/orders/{order['razorpay_order_id']}/status", headers=buyer_headers)
    assert resp.status_code == 200
    assert resp.json()["data"] == {"status": "preparing", "payment_status": "verified"}


async def test_tracking_requires_auth(ac_client):
    resp = await ac_client.get(f"{url_prefix}/orders")
    assert resp.status_code in (401, 403)
