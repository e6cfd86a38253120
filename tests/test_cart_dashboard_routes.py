"""Cart and role dashboards.

Tests cover:
    - adding the same product twice keeps one cart row (quantity replaced)
    - cart totals, quantity changes, removal, per-user isolation
    - inactive products can't be added
    - dashboard shape is chosen by role and counts come from the right tables
"""

from decimal import Decimal

from tests.conftest import ALICE, BOB, VENDOR, ADMIN

CART = "/api/v1/cart"
DASHBOARD = "/api/v1/dashboard"


# ─── cart ────────────────────────────────────────────────────────

def test_adding_twice_keeps_single_row(client, db, product):
    client.post(CART, json={"product_id": product["id"]})
    resp = client.post(CART, json={"product_id": product["id"], "quantity": 3})
    assert resp.status_code == 201
    assert len(db.rows("cart_items")) == 1

    cart = client.get(CART).json()
    assert cart["item_count"] == 3
    assert Decimal(cart["subtotal"]) == Decimal("300.00")
    assert cart["items"][0]["product"]["name"] == "Cold Brew Kit"


def test_update_and_remove_cart_item(client, product):
    item_id = client.post(CART, json={"product_id": product["id"]}).json()["id"]
    assert client.put(f"{CART}/{item_id}", json={"quantity": 2}).json()["quantity"] == 2
    assert client.delete(f"{CART}/{item_id}").status_code == 204
    missing = client.delete(f"{CART}/{item_id}")
    assert missing.status_code == 404
    assert missing.json()["code"] == "CART_ITEM_NOT_FOUND"


def test_cart_is_per_user(client, product):
    item_id = client.post(CART, json={"product_id": product["id"]}).json()["id"]
    client.act_as(BOB)
    assert client.get(CART).json()["items"] == []
    assert client.put(f"{CART}/{item_id}", json={"quantity": 5}).status_code == 404


def test_inactive_product_cannot_be_added(client, db, product):
    db.rows("products")[0]["is_active"] = False
    assert client.post(CART, json={"product_id": product["id"]}).status_code == 404


# ─── dashboards ──────────────────────────────────────────────────

def test_user_dashboard(client, db, product, make_group):
    make_group(members=(BOB,))
    client.post(CART, json={"product_id": product["id"]})
    db.seed("orders", user_id=ALICE.user_id, total_amount=42.5, status="delivered")

    body = client.get(DASHBOARD).json()
    assert body["role"] == "user"
    assert body["groups_joined"] == 1
    assert body["cart_items"] == 1
    assert body["total_orders"] == 1
    assert body["pending_payments"] == 0
    assert Decimal(body["recent_orders"][0]["total_amount"]) == Decimal("42.5")


def test_vendor_dashboard(client, db, make_group):
    make_group()
    db.seed("vendor_kyc", vendor_id=VENDOR.user_id, status="pending", is_active=True)
    client.act_as(VENDOR)
    body = client.get(DASHBOARD).json()
    assert body["role"] == "vendor"
    assert body["total_products"] == 1
    assert body["active_products"] == 1
    assert body["kyc_status"] == "pending"
    assert body["groups_for_products"] == 1
    assert Decimal(body["group_revenue"]) == Decimal("0")


def test_admin_dashboard(client, db, product):
    db.seed("orders", user_id=BOB.user_id, total_amount=10, status="placed")
    db.seed("orders", user_id=ALICE.user_id, total_amount=15.25, status="placed")
    client.act_as(ADMIN)
    body = client.get(DASHBOARD).json()
    assert body["role"] == "admin"
    assert body["total_users"] == 6
    assert body["total_products"] == 1
    assert body["total_orders"] == 2
    assert Decimal(body["total_revenue"]) == Decimal("25.25")
    assert body["products_by_category"] == {"kitchen": 1}
