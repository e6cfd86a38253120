"""Group routes: membership workflow end to end over the fake backend.

Tests cover:
    - create: creator becomes the only member, access code only for private groups
    - create rolls the group back when the creator membership can't be written
    - public join, duplicate join refused, membership row never duplicated
    - private join files one request; approve / reject / re-request / cancel
    - invite-only groups: plain join refused, invite admits and is marked accepted
    - access codes: wrong code refused without echoing it, right code joins
    - member limit enforced on join and approval
    - leave: creator refused, non-member refused, stale requests cleared, re-join starts clean
    - detail visibility for private groups and discount progress
    - listing, update and cascade delete
"""

from decimal import Decimal

from tests.conftest import ALICE, BOB, CAROL, DAVE, ADMIN

API = "/api/v1/groups"


def _members(db, group_id):
    return sorted(m["user_id"] for m in db.rows("group_members") if m["group_id"] == group_id)


def _requests(db, group_id):
    return [r for r in db.rows("group_join_requests") if r["group_id"] == group_id]


# ─── create ──────────────────────────────────────────────────────

def test_create_private_group_adds_creator(client, db, product):
    resp = client.post(API, json={"name": "Weekend Brew", "product_id": product["id"]})
    assert resp.status_code == 201
    body = resp.json()
    assert body["creator_id"] == ALICE.user_id
    assert body["is_private"] is True
    assert body["member_limit"] == 50
    assert body["member_count"] == 1
    assert len(body["access_code"]) == 8
    assert _members(db, body["id"]) == [ALICE.user_id]


def test_create_public_group_has_no_access_code(client, product):
    resp = client.post(API, json={"name": "Open Brew", "product_id": product["id"], "is_private": False})
    assert resp.status_code == 201
    assert resp.json()["access_code"] is None


def test_create_rolls_back_when_creator_membership_fails(client, db, product):
    db.fail_insert("group_members")
    resp = client.post(API, json={"name": "Doomed", "product_id": product["id"]})
    assert resp.status_code == 502
    assert db.rows("groups") == []


def test_create_refuses_inactive_product(client, db, product):
    db.rows("products")[0]["is_active"] = False
    resp = client.post(API, json={"name": "Nope", "product_id": product["id"]})
    assert resp.status_code == 404
    assert resp.json()["code"] == "PRODUCT_NOT_FOUND"


def test_create_refuses_product_without_group_orders(client, db, product):
    db.rows("products")[0]["group_order_enabled"] = False
    resp = client.post(API, json={"name": "Nope", "product_id": product["id"]})
    assert resp.status_code == 409
    assert resp.json()["code"] == "GROUP_ORDER_DISABLED"


def test_unknown_group_is_404(client):
    resp = client.get(f"{API}/missing")
    assert resp.status_code == 404
    assert resp.json()["code"] == "GROUP_NOT_FOUND"


# ─── public join ─────────────────────────────────────────────────

def test_public_join_is_immediate(client, db, make_group):
    group = make_group()
    client.act_as(BOB)
    resp = client.post(f"{API}/{group['id']}/join")
    assert resp.status_code == 200
    assert resp.json()["action"] == "joined"
    assert resp.json()["membership_state"] == "member"
    assert _members(db, group["id"]) == sorted([ALICE.user_id, BOB.user_id])


def test_second_join_is_refused_without_duplicate_row(client, db, make_group):
    group = make_group()
    client.act_as(BOB)
    client.post(f"{API}/{group['id']}/join")
    resp = client.post(f"{API}/{group['id']}/join")
    assert resp.status_code == 409
    assert resp.json()["code"] == "ALREADY_MEMBER"
    assert _members(db, group["id"]).count(BOB.user_id) == 1


# ─── approval workflow ───────────────────────────────────────────

def test_private_join_files_single_pending_request(client, db, make_group):
    group = make_group(is_private=True, access_code="C0FFEE01")
    client.act_as(BOB)
    first = client.post(f"{API}/{group['id']}/join")
    assert first.json()["action"] == "requested"
    assert first.json()["membership_state"] == "pending_request"

    second = client.post(f"{API}/{group['id']}/join")
    assert second.status_code == 409
    assert second.json()["code"] == "DUPLICATE_JOIN_REQUEST"
    assert len(_requests(db, group["id"])) == 1
    assert BOB.user_id not in _members(db, group["id"])


def test_approve_makes_member_and_clears_request(client, db, make_group):
    group = make_group(is_private=True, access_code="C0FFEE01")
    client.act_as(BOB)
    client.post(f"{API}/{group['id']}/join")

    client.act_as(ALICE)
    pending = client.get(f"{API}/{group['id']}/join-requests").json()
    assert len(pending) == 1
    assert pending[0]["requester"]["full_name"] == "Bob"

    resp = client.post(f"{API}/{group['id']}/join-requests/{pending[0]['id']}/approve")
    assert resp.status_code == 200
    assert resp.json()["status"] == "approved"
    assert BOB.user_id in _members(db, group["id"])
    assert _requests(db, group["id"]) == []

    client.act_as(BOB)
    assert client.post(f"{API}/{group['id']}/join").json()["code"] == "ALREADY_MEMBER"


def test_reject_keeps_row_and_allows_new_request(client, db, make_group):
    group = make_group(is_private=True, access_code="C0FFEE01")
    client.act_as(BOB)
    client.post(f"{API}/{group['id']}/join")
    request_id = _requests(db, group["id"])[0]["id"]

    client.act_as(ALICE)
    resp = client.post(f"{API}/{group['id']}/join-requests/{request_id}/reject")
    assert resp.json()["status"] == "rejected"
    assert _requests(db, group["id"])[0]["status"] == "rejected"

    again = client.post(f"{API}/{group['id']}/join-requests/{request_id}/reject")
    assert again.status_code == 409
    assert again.json()["code"] == "JOIN_REQUEST_REVIEWED"

    client.act_as(BOB)
    detail = client.get(f"{API}/{group['id']}").json()
    assert detail["membership_state"] == "non_member"
    assert client.post(f"{API}/{group['id']}/join").json()["action"] == "requested"
    rows = _requests(db, group["id"])
    assert len(rows) == 1
    assert rows[0]["status"] == "pending"


def test_only_creator_or_admin_reviews_requests(client, db, make_group):
    group = make_group(is_private=True, access_code="C0FFEE01", members=(CAROL,))
    client.act_as(BOB)
    client.post(f"{API}/{group['id']}/join")
    request_id = _requests(db, group["id"])[0]["id"]

    client.act_as(CAROL)
    resp = client.post(f"{API}/{group['id']}/join-requests/{request_id}/approve")
    assert resp.status_code == 403
    assert resp.json()["code"] == "PERMISSION_DENIED"

    client.act_as(ADMIN)
    assert client.post(f"{API}/{group['id']}/join-requests/{request_id}/approve").status_code == 200


def test_approval_respects_member_limit(client, db, make_group):
    group = make_group(is_private=True, access_code="C0FFEE01", member_limit=2)
    client.act_as(BOB)
    client.post(f"{API}/{group['id']}/join")
    db.seed("group_members", group_id=group["id"], user_id=CAROL.user_id)
    request_id = _requests(db, group["id"])[0]["id"]

    client.act_as(ALICE)
    resp = client.post(f"{API}/{group['id']}/join-requests/{request_id}/approve")
    assert resp.status_code == 409
    assert resp.json()["code"] == "GROUP_FULL"


def test_cancel_join_request(client, db, make_group):
    group = make_group(is_private=True, access_code="C0FFEE01")
    client.act_as(BOB)
    client.post(f"{API}/{group['id']}/join")
    resp = client.delete(f"{API}/{group['id']}/join-request")
    assert resp.status_code == 200
    assert resp.json()["membership_state"] == "non_member"
    assert _requests(db, group["id"]) == []

    again = client.delete(f"{API}/{group['id']}/join-request")
    assert again.status_code == 404
    assert again.json()["code"] == "JOIN_REQUEST_NOT_FOUND"


# ─── invites and access codes ────────────────────────────────────

def test_invite_only_group_admits_invited_user(client, db, make_group):
    group = make_group(is_private=True, invite_only=True, access_code="C0FFEE01")
    client.act_as(BOB)
    refused = client.post(f"{API}/{group['id']}/join")
    assert refused.status_code == 403
    assert refused.json()["code"] == "INVITE_REQUIRED"

    client.act_as(ALICE)
    sent = client.post(f"{API}/{group['id']}/invites", json={"emails": ["bob@example.com"]})
    assert sent.json() == {"sent": ["bob@example.com"], "skipped": [], "failed": []}
    resent = client.post(f"{API}/{group['id']}/invites", json={"emails": ["bob@example.com"]})
    assert resent.json()["skipped"] == ["bob@example.com"]

    client.act_as(BOB)
    invites = client.get(f"{API}/invites/mine").json()
    assert [i["group_name"] for i in invites] == ["Coffee Circle"]

    joined = client.post(f"{API}/{group['id']}/join")
    assert joined.json()["action"] == "joined"
    assert db.rows("group_invites")[0]["status"] == "accepted"
    assert client.get(f"{API}/invites/mine").json() == []


def test_invite_failures_are_reported_per_email(client, db, make_group):
    group = make_group()
    db.fail_insert("group_invites", when=lambda row: row["invited_email"] == "carol@example.com")
    resp = client.post(f"{API}/{group['id']}/invites", json={"emails": ["bob@example.com", "carol@example.com"]})
    assert resp.status_code == 200
    assert resp.json()["sent"] == ["bob@example.com"]
    assert resp.json()["failed"] == ["carol@example.com"]


def test_outsider_cannot_invite(client, make_group):
    group = make_group()
    client.act_as(DAVE)
    resp = client.post(f"{API}/{group['id']}/invites", json={"emails": ["bob@example.com"]})
    assert resp.status_code == 403


def test_wrong_access_code_is_refused_without_echo(client, db, make_group):
    group = make_group(is_private=True, access_code="C0FFEE01")
    client.act_as(BOB)
    resp = client.post(f"{API}/{group['id']}/join-with-code", json={"access_code": "GUESS123"})
    assert resp.status_code == 403
    assert resp.json()["code"] == "INVALID_ACCESS_CODE"
    assert "GUESS123" not in resp.text
    assert "C0FFEE01" not in resp.text
    assert BOB.user_id not in _members(db, group["id"])


def test_access_code_joins_and_clears_pending_request(client, db, make_group):
    group = make_group(is_private=True, access_code="C0FFEE01")
    client.act_as(BOB)
    client.post(f"{API}/{group['id']}/join")
    resp = client.post(f"{API}/{group['id']}/join-with-code", json={"access_code": "C0FFEE01"})
    assert resp.json()["action"] == "joined"
    assert _members(db, group["id"]).count(BOB.user_id) == 1
    assert _requests(db, group["id"]) == []


def test_rotating_access_code_invalidates_old_one(client, make_group):
    group = make_group(is_private=True, access_code="C0FFEE01")
    new_code = client.post(f"{API}/{group['id']}/access-code").json()["access_code"]
    assert new_code != "C0FFEE01"

    client.act_as(BOB)
    old = client.post(f"{API}/{group['id']}/join-with-code", json={"access_code": "C0FFEE01"})
    assert old.status_code == 403
    fresh = client.post(f"{API}/{group['id']}/join-with-code", json={"access_code": new_code})
    assert fresh.json()["action"] == "joined"


def test_full_group_refuses_join(client, make_group):
    group = make_group(member_limit=2, members=(BOB,))
    client.act_as(CAROL)
    resp = client.post(f"{API}/{group['id']}/join")
    assert resp.status_code == 409
    assert resp.json()["code"] == "GROUP_FULL"


# ─── leave ───────────────────────────────────────────────────────

def test_creator_cannot_leave(client, make_group):
    group = make_group(members=(BOB,))
    resp = client.post(f"{API}/{group['id']}/leave")
    assert resp.status_code == 409
    assert resp.json()["code"] == "CREATOR_CANNOT_LEAVE"


def test_member_leaves_once(client, db, make_group):
    group = make_group(members=(BOB,))
    client.act_as(BOB)
    assert client.post(f"{API}/{group['id']}/leave").json()["membership_state"] == "non_member"
    assert _members(db, group["id"]) == [ALICE.user_id]

    again = client.post(f"{API}/{group['id']}/leave")
    assert again.status_code == 409
    assert again.json()["code"] == "NOT_MEMBER"


def test_leave_clears_stale_request_and_rejoin_starts_clean(client, db, make_group):
    group = make_group(members=(BOB,))
    db.seed("group_join_requests", group_id=group["id"], user_id=BOB.user_id, status="pending")
    client.act_as(BOB)

    assert client.post(f"{API}/{group['id']}/leave").status_code == 200
    assert [r for r in _requests(db, group["id"]) if r["user_id"] == BOB.user_id] == []
    assert client.get(f"{API}/{group['id']}").json()["membership_state"] == "non_member"

    rejoined = client.post(f"{API}/{group['id']}/join").json()
    assert rejoined["membership_state"] == "member"
    assert _members(db, group["id"]) == sorted([ALICE.user_id, BOB.user_id])


# ─── reads ───────────────────────────────────────────────────────

def test_private_detail_hidden_from_outsiders(client, make_group):
    group = make_group(is_private=True, access_code="C0FFEE01", members=(BOB,))
    client.act_as(CAROL)
    body = client.get(f"{API}/{group['id']}").json()
    assert body["can_view"] is False
    assert body["members"] is None
    assert body["product"] is None
    assert body["discount"] is None
    assert body["access_code"] is None
    assert body["membership_state"] == "non_member"
    assert client.get(f"{API}/{group['id']}/members").status_code == 403


def test_member_sees_detail_but_not_access_code(client, make_group):
    group = make_group(is_private=True, access_code="C0FFEE01", members=(BOB,))
    client.act_as(BOB)
    body = client.get(f"{API}/{group['id']}").json()
    assert body["can_view"] is True
    assert body["access_code"] is None
    assert body["membership_state"] == "member"
    assert {m["user_id"] for m in body["members"]} == {ALICE.user_id, BOB.user_id}


def test_creator_detail_includes_code_and_discount(client, make_group):
    group = make_group(is_private=True, access_code="C0FFEE01", members=(BOB, CAROL))
    body = client.get(f"{API}/{group['id']}").json()
    assert body["is_creator"] is True
    assert body["access_code"] == "C0FFEE01"
    assert body["member_count"] == 3
    assert body["creator"]["full_name"] == "Alice"
    assert Decimal(body["discount"]["discount_percentage"]) == Decimal("15")
    assert Decimal(body["discount"]["unit_price"]) == Decimal("85.00")
    assert body["discount"]["members_needed"] == 1


def test_discount_endpoint_at_top_tier(client, make_group):
    group = make_group(members=(BOB, CAROL, DAVE))
    body = client.get(f"{API}/{group['id']}/discount").json()
    assert Decimal(body["unit_price"]) == Decimal("80.00")
    assert body["members_needed"] == 0
    assert body["next_tier_members_required"] is None


def test_discount_uses_product_tiers(client, db, make_group, product):
    db.seed("product_discount_tiers", product_id=product["id"], tier_number=1,
            members_required=2, discount_percentage=25)
    group = make_group(members=(BOB,))
    body = client.get(f"{API}/{group['id']}/discount").json()
    assert Decimal(body["unit_price"]) == Decimal("75.00")


def test_listing_hides_private_groups_except_mine(client, make_group):
    public = make_group(name="Open")
    private = make_group(name="Secret", is_private=True, access_code="C0FFEE01")

    client.act_as(CAROL)
    listed = client.get(API).json()
    assert [g["id"] for g in listed] == [public["id"]]
    assert listed[0]["member_count"] == 1

    client.act_as(ALICE)
    mine = {g["id"] for g in client.get(API, params={"mine": "true"}).json()}
    assert mine == {public["id"], private["id"]}

    client.act_as(ADMIN)
    assert len(client.get(API).json()) == 2


# ─── update / delete ─────────────────────────────────────────────

def test_member_limit_cannot_drop_below_count(client, make_group):
    group = make_group(members=(BOB, CAROL))
    resp = client.put(f"{API}/{group['id']}", json={"member_limit": 2})
    assert resp.status_code == 409
    assert resp.json()["code"] == "MEMBER_LIMIT_TOO_LOW"


def test_switching_to_private_generates_access_code(client, make_group):
    group = make_group()
    body = client.put(f"{API}/{group['id']}", json={"is_private": True}).json()
    assert body["is_private"] is True
    assert body["access_code"]


def test_switching_to_public_clears_access_code(client, db, make_group):
    group = make_group(is_private=True, access_code="C0FFEE01")
    body = client.put(f"{API}/{group['id']}", json={"is_private": False}).json()
    assert body["is_private"] is False
    assert body["access_code"] is None
    assert db.rows("groups")[0]["access_code"] is None

    client.act_as(BOB)
    resp = client.post(f"{API}/{group['id']}/join-with-code", json={"access_code": "C0FFEE01"})
    assert resp.status_code == 403
    assert resp.json()["code"] == "INVALID_ACCESS_CODE"


def test_delete_group_cascades(client, db, make_group):
    group = make_group(is_private=True, access_code="C0FFEE01", members=(BOB,))
    db.seed("group_join_requests", group_id=group["id"], user_id=CAROL.user_id, status="pending")
    db.seed("group_invites", group_id=group["id"], invited_by=ALICE.user_id,
            invited_email="dave@example.com", status="pending")

    client.act_as(BOB)
    assert client.delete(f"{API}/{group['id']}").status_code == 403

    client.act_as(ALICE)
    assert client.delete(f"{API}/{group['id']}").status_code == 204
    for table in ("groups", "group_members", "group_join_requests", "group_invites"):
        assert db.rows(table) == []
