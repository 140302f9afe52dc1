"""Integration tests for order endpoints."""

import uuid
from decimal import Decimal

import pytest
from services.orders_service.models import OrderStatus, PaymentStatus
from tests.factories import AddressFactory, OrderFactory, UserFactory

ORDER_PAYLOAD = {
    "items": [{"name": "Biryani", "qty": 2, "price": 200}],
    "totalAmount": 440,
    "delivery_address": "12 MG Road, Bengaluru - 560001",
}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_place_order(client, user_headers, user_id):
    response = await client.post(
        "/api/orders", json=ORDER_PAYLOAD, headers=user_headers
    )

    assert response.status_code == 201, response.text
    order = response.json()["order"]
    assert order["user_id"] == user_id
    assert order["status"] == "pending"
    assert order["payment_status"] == "pending"
    assert Decimal(order["total_amount"]) == Decimal("440")
    assert order["items"][0]["name"] == "Biryani"
    assert order["items"][0]["quantity"] == 2


@pytest.mark.asyncio
@pytest.mark.integration
async def test_place_order_snapshots_saved_address(client, db_session, make_headers):
    user = UserFactory.create()
    db_session.add(user)
    await db_session.flush()
    address = AddressFactory.create(user.id)
    db_session.add(address)
    await db_session.commit()

    payload = {k: v for k, v in ORDER_PAYLOAD.items() if k != "delivery_address"}
    response = await client.post(
        "/api/orders",
        json={**payload, "addressId": str(address.id)},
        headers=make_headers(str(user.id)),
    )

    assert response.status_code == 201, response.text
    assert (
        response.json()["order"]["delivery_address"]
        == "12 MG Road, Bengaluru, Karnataka - 560001"
    )


@pytest.mark.asyncio
@pytest.mark.integration
async def test_place_order_requires_auth(client):
    response = await client.post("/api/orders", json=ORDER_PAYLOAD)

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_place_order_validation_error_uses_error_envelope(client, user_headers):
    payload = {"items": [], "totalAmount": 10}

    response = await client.post("/api/orders", json=payload, headers=user_headers)

    assert response.status_code == 400
    assert "error" in response.json()


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_orders_is_isolated_per_owner(
    client, user_headers, other_user_headers
):
    await client.post("/api/orders", json=ORDER_PAYLOAD, headers=user_headers)
    await client.post("/api/orders", json=ORDER_PAYLOAD, headers=other_user_headers)
    await client.post("/api/orders", json=ORDER_PAYLOAD, headers=user_headers)

    response = await client.get("/api/orders", headers=user_headers)

    assert response.status_code == 200
    orders = response.json()["orders"]
    assert len(orders) == 2
    assert {o["user_id"] for o in orders} == {"11111111-1111-1111-1111-111111111111"}
    assert orders[0]["created_at"] >= orders[1]["created_at"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_get_order_of_another_user_is_not_found(
    client, user_headers, other_user_headers
):
    created = await client.post(
        "/api/orders", json=ORDER_PAYLOAD, headers=other_user_headers
    )
    order_id = created.json()["order"]["id"]

    response = await client.get(f"/api/orders/{order_id}", headers=user_headers)

    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_all_orders_requires_operator(
    client, user_headers, seller_headers, admin_headers
):
    await client.post("/api/orders", json=ORDER_PAYLOAD, headers=user_headers)

    denied = await client.get("/api/orders/all", headers=user_headers)
    as_seller = await client.get("/api/orders/all", headers=seller_headers)
    as_admin = await client.get("/api/admin/orders", headers=admin_headers)

    assert denied.status_code == 403
    assert as_seller.status_code == 200
    assert len(as_seller.json()["orders"]) == 1
    assert as_admin.status_code == 200
    assert len(as_admin.json()["orders"]) == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_operator_advances_status(client, db_session, seller_headers):
    order = OrderFactory.create(
        status=OrderStatus.CONFIRMED, payment_status=PaymentStatus.PAID
    )
    db_session.add(order)
    await db_session.commit()

    response = await client.put(
        f"/api/orders/{order.id}/status",
        json={"status": "preparing"},
        headers=seller_headers,
    )

    assert response.status_code == 200, response.text
    assert response.json()["order"]["status"] == "preparing"
    assert response.json()["order"]["payment_status"] == "paid"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_illegal_transition_is_conflict(client, db_session, admin_headers):
    order = OrderFactory.create(
        status=OrderStatus.DELIVERED, payment_status=PaymentStatus.PAID
    )
    db_session.add(order)
    await db_session.commit()

    response = await client.put(
        f"/api/admin/orders/{order.id}",
        json={"status": "pending"},
        headers=admin_headers,
    )

    assert response.status_code == 409
    assert "delivered" in response.json()["error"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_override_transition(client, db_session, admin_headers):
    order = OrderFactory.create(
        status=OrderStatus.DELIVERED, payment_status=PaymentStatus.PAID
    )
    db_session.add(order)
    await db_session.commit()

    response = await client.put(
        f"/api/admin/orders/{order.id}",
        json={
            "status": "out_for_delivery",
            "override": True,
            "reason": "rider returned",
        },
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["order"]["status"] == "out_for_delivery"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_customer_cannot_change_status(client, db_session, user_headers):
    order = OrderFactory.create()
    db_session.add(order)
    await db_session.commit()

    response = await client.put(
        f"/api/orders/{order.id}/status",
        json={"status": "cancelled"},
        headers=user_headers,
    )

    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_status_update_unknown_order(client, admin_headers):
    response = await client.put(
        f"/api/orders/{uuid.uuid4()}/status",
        json={"status": "cancelled"},
        headers=admin_headers,
    )

    assert response.status_code == 404
    assert response.json() == {"error": "Order not found"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delete_order(client, db_session, admin_headers):
    order = OrderFactory.create()
    db_session.add(order)
    await db_session.commit()

    response = await client.delete(f"/api/orders/{order.id}", headers=admin_headers)
    again = await client.delete(f"/api/orders/{order.id}", headers=admin_headers)

    assert response.status_code == 200
    assert again.status_code == 404
