"""Root conftest: environment pinning and API client fixtures.

Invariants:
    - Environment is pinned before circlebuy is imported (Settings reads it at import)
    - Every test gets a fresh FakeSupabase; get_supabase and get_service_supabase both return it,
      sign-in flows get their own client of the same fake project
    - get_current_session is overridden; act_as() switches the caller mid-test
    - Object storage uses the real S3Storage over a recording fake s3 client
"""

import os

os.environ.setdefault("SUPABASE_URL", "http://supabase.test")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("S3_BUCKET_NAME", "circlebuy-test-media")

import pytest
from fastapi.testclient import TestClient

from circlebuy.main import app
from circlebuy.core.dependencies import get_current_session
from circlebuy.core.session import UserSession
from circlebuy.core.storage import S3Storage, get_storage
from circlebuy.database.supabase_client import get_supabase, get_service_supabase, get_auth_client_factory
from circlebuy.modules.auth.service import clear_auth_cache
from circlebuy.modules.profiles.schemas import Role
from tests.fake_supabase import FakeSupabase

ALICE = UserSession(user_id="user-alice", email="alice@example.com", role=Role.USER, full_name="Alice")
BOB = UserSession(user_id="user-bob", email="bob@example.com", role=Role.USER, full_name="Bob")
CAROL = UserSession(user_id="user-carol", email="carol@example.com", role=Role.USER, full_name="Carol")
DAVE = UserSession(user_id="user-dave", email="dave@example.com", role=Role.USER, full_name="Dave")
VENDOR = UserSession(user_id="user-vendor", email="vendor@example.com", role=Role.VENDOR, full_name="Vera Vendor")
ADMIN = UserSession(user_id="user-admin", email="admin@example.com", role=Role.ADMIN, full_name="Ada Admin")


class RecordingS3Client:
    def __init__(self):
        self.objects = {}

    def put_object(self, Bucket, Key, Body, ContentType):
        self.objects[(Bucket, Key)] = (Body, ContentType)

    def delete_object(self, Bucket, Key):
        self.objects.pop((Bucket, Key), None)


@pytest.fixture
def db():
    fake = FakeSupabase()
    for session in (ALICE, BOB, CAROL, DAVE, VENDOR, ADMIN):
        fake.seed(
            "profiles",
            id=session.user_id,
            email=session.email,
            full_name=session.full_name,
            role=session.role.value,
        )
    return fake


@pytest.fixture
def s3_client():
    return RecordingS3Client()


@pytest.fixture
def client(db, s3_client):
    """TestClient acting as ALICE until act_as() says otherwise."""
    state = {"session": ALICE}

    app.dependency_overrides[get_supabase] = lambda: db
    app.dependency_overrides[get_service_supabase] = lambda: db
    app.dependency_overrides[get_auth_client_factory] = lambda: db.new_client
    app.dependency_overrides[get_current_session] = lambda: state["session"]
    app.dependency_overrides[get_storage] = lambda: S3Storage(s3_client=s3_client, bucket_name="circlebuy-test-media")

    with TestClient(app) as c:
        c.act_as = lambda session: state.update(session=session)
        yield c

    app.dependency_overrides.clear()
    clear_auth_cache()


@pytest.fixture
def product(db):
    """Active group-enabled product priced 100.00 with the default tier ladder."""
    return db.seed(
        "products",
        vendor_id=VENDOR.user_id,
        name="Cold Brew Kit",
        description="Everything for cold brew",
        price=100.0,
        category="kitchen",
        stock_quantity=40,
        is_active=True,
        group_order_enabled=True,
    )


@pytest.fixture
def make_group(db, product):
    """Seed a group (creator already a member) and optionally extra members."""
    def _make(creator=ALICE, members=(), **overrides):
        row = dict(
            name="Coffee Circle",
            description=None,
            creator_id=creator.user_id,
            product_id=product["id"],
            is_private=False,
            invite_only=False,
            auto_approve_requests=False,
            access_code=None,
            member_limit=50,
        )
        row.update(overrides)
        group = db.seed("groups", **row)
        for user in (creator, *members):
            db.seed("group_members", group_id=group["id"], user_id=user.user_id, joined_at=group["created_at"])
        return group
    return _make
