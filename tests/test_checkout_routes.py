"""Group checkout: fan-out and per-member payment tracking.

Tests cover:
    - one pending item per member at the tier price fixed by the final member count
    - a failed item insert is reported and doesn't block other members
    - only the creator (or an admin) starts checkout; one open checkout per group
    - payment transitions: pending -> paid | failed, failed -> paid, paid is terminal
    - session completes only once every counted member has a paid item
    - failed item inserts can be retried by the creator
    - items are managed only by their owner; session visible to participants
"""

from decimal import Decimal

from tests.conftest import ALICE, BOB, CAROL, DAVE, ADMIN

API = "/api/v1/checkout"


def _item_for(body, user):
    return next(i for i in body["items"] if i["user_id"] == user.user_id)


def _start(client, group, **json):
    return client.post(f"{API}/groups/{group['id']}", json=json or None)


def test_checkout_creates_one_item_per_member_at_tier_price(client, db, make_group):
    group = make_group(members=(BOB, CAROL))
    resp = _start(client, group)
    assert resp.status_code == 201
    body = resp.json()
    assert body["member_count"] == 3
    assert Decimal(body["discount_percentage"]) == Decimal("15")
    assert Decimal(body["unit_price"]) == Decimal("85.00")
    assert body["status"] == "member_payments"
    assert body["failed_user_ids"] == []
    assert sorted(i["user_id"] for i in body["items"]) == sorted([ALICE.user_id, BOB.user_id, CAROL.user_id])
    assert all(i["payment_status"] == "pending" for i in body["items"])
    assert Decimal(body["totals_by_status"]["pending"]) == Decimal("255.00")


def test_quantity_multiplies_item_total(client, make_group):
    group = make_group(members=(BOB,))
    body = _start(client, group, quantity=3).json()
    item = _item_for(body, BOB)
    assert Decimal(item["unit_price"]) == Decimal("90.00")
    assert Decimal(item["total_price"]) == Decimal("270.00")


def test_failed_item_does_not_block_others(client, db, make_group):
    group = make_group(members=(BOB, CAROL))
    db.fail_insert("group_checkout_items", when=lambda row: row["user_id"] == CAROL.user_id)
    body = _start(client, group).json()
    assert body["failed_user_ids"] == [CAROL.user_id]
    assert sorted(i["user_id"] for i in body["items"]) == sorted([ALICE.user_id, BOB.user_id])


def test_session_stays_open_while_a_member_has_no_item(client, db, make_group):
    group = make_group(members=(BOB, CAROL))
    db.fail_insert("group_checkout_items", when=lambda row: row["user_id"] == CAROL.user_id)
    body = _start(client, group).json()

    for member in (ALICE, BOB):
        client.act_as(member)
        client.post(f"{API}/items/{_item_for(body, member)['id']}/payment", json={"status": "paid"})

    view = client.get(f"{API}/{body['id']}").json()
    assert view["status"] == "member_payments"
    assert view["failed_user_ids"] == [CAROL.user_id]
    client.act_as(ALICE)
    assert _start(client, group).status_code == 409


def test_retry_gives_failed_member_an_item_then_completes(client, db, make_group):
    group = make_group(members=(BOB, CAROL))
    db.fail_insert("group_checkout_items", when=lambda row: row["user_id"] == CAROL.user_id)
    body = _start(client, group, quantity=2).json()
    db.stop_failing()

    client.act_as(BOB)
    assert client.post(f"{API}/{body['id']}/retry").status_code == 403

    client.act_as(ALICE)
    retried = client.post(f"{API}/{body['id']}/retry").json()
    assert retried["failed_user_ids"] == []
    carol_item = _item_for(retried, CAROL)
    assert Decimal(carol_item["unit_price"]) == Decimal("85.00")
    assert Decimal(carol_item["total_price"]) == Decimal("170.00")

    for member in (ALICE, BOB, CAROL):
        client.act_as(member)
        client.post(f"{API}/items/{_item_for(retried, member)['id']}/payment", json={"status": "paid"})
    assert client.get(f"{API}/{body['id']}").json()["status"] == "completed"


def test_only_creator_or_admin_starts_checkout(client, make_group):
    group = make_group(members=(BOB,))
    client.act_as(BOB)
    assert _start(client, group).status_code == 403
    client.act_as(ADMIN)
    assert _start(client, group).status_code == 201


def test_one_open_checkout_per_group(client, make_group):
    group = make_group(members=(BOB,))
    _start(client, group)
    resp = _start(client, group)
    assert resp.status_code == 409
    assert resp.json()["code"] == "CHECKOUT_NOT_ALLOWED"


def test_inactive_product_refused(client, db, make_group):
    group = make_group(members=(BOB,))
    db.rows("products")[0]["is_active"] = False
    assert _start(client, group).status_code == 404


def test_payment_lifecycle_completes_session(client, db, make_group):
    group = make_group(members=(BOB, CAROL))
    body = _start(client, group).json()
    session_id = body["id"]

    client.act_as(BOB)
    paid = client.post(f"{API}/items/{_item_for(body, BOB)['id']}/payment",
                       json={"status": "paid", "payment_reference": "pay_bob"})
    assert paid.status_code == 200
    assert paid.json()["payment_status"] == "paid"
    assert paid.json()["payment_reference"] == "pay_bob"

    twice = client.post(f"{API}/items/{_item_for(body, BOB)['id']}/payment", json={"status": "failed"})
    assert twice.status_code == 409
    assert twice.json()["code"] == "INVALID_PAYMENT_TRANSITION"

    client.act_as(CAROL)
    carol_item = _item_for(body, CAROL)["id"]
    assert client.post(f"{API}/items/{carol_item}/payment", json={"status": "failed"}).json()["payment_status"] == "failed"
    view = client.get(f"{API}/{session_id}").json()
    assert view["status"] == "member_payments"
    assert Decimal(view["totals_by_status"]["failed"]) == Decimal("85.00")
    assert client.post(f"{API}/items/{carol_item}/payment", json={"status": "paid"}).json()["payment_status"] == "paid"

    client.act_as(ALICE)
    client.post(f"{API}/items/{_item_for(body, ALICE)['id']}/payment", json={"status": "paid"})
    final = client.get(f"{API}/{session_id}").json()
    assert final["status"] == "completed"
    assert Decimal(final["totals_by_status"]["paid"]) == Decimal("255.00")


def test_member_cannot_touch_someone_elses_item(client, make_group):
    group = make_group(members=(BOB,))
    body = _start(client, group).json()
    client.act_as(BOB)
    resp = client.post(f"{API}/items/{_item_for(body, ALICE)['id']}/payment", json={"status": "paid"})
    assert resp.status_code == 403


def test_session_visible_to_participants_only(client, make_group):
    group = make_group(members=(BOB,))
    session_id = _start(client, group).json()["id"]
    client.act_as(BOB)
    assert client.get(f"{API}/{session_id}").status_code == 200
    client.act_as(DAVE)
    assert client.get(f"{API}/{session_id}").status_code == 403
    assert client.get(f"{API}/missing").status_code == 404


def test_shipping_address_owner_only_and_locked_after_payment(client, make_group):
    group = make_group(members=(BOB,))
    body = _start(client, group).json()
    item_id = _item_for(body, BOB)["id"]
    address = {"full_name": "Bob", "line1": "1 Bean St", "city": "Pune", "postal_code": "411001"}

    client.act_as(CAROL)
    assert client.put(f"{API}/items/{item_id}/shipping", json=address).status_code == 403

    client.act_as(BOB)
    updated = client.put(f"{API}/items/{item_id}/shipping", json=address).json()
    assert updated["shipping_address"]["city"] == "Pune"

    client.post(f"{API}/items/{item_id}/payment", json={"status": "paid"})
    locked = client.put(f"{API}/items/{item_id}/shipping", json=address)
    assert locked.status_code == 409

    mine = client.get(f"{API}/items/mine", params={"payment_status": "paid"}).json()
    assert [i["id"] for i in mine] == [item_id]
