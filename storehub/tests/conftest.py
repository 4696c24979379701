import jwt
import pytest
from rest_framework.test import APIClient

from core.models import Category, Product, Store
from core.principal import AuthContext, Role

TEST_JWT_SECRET = "storehub-test-secret-with-at-least-32-bytes"


@pytest.fixture(autouse=True)
def jwt_settings(settings):
    settings.JWT_SECRET = TEST_JWT_SECRET
    settings.JWT_ALGORITHM = "HS256"
    settings.AWS_S3_BUCKET = ""
    return settings


@pytest.fixture
def store_a(db):
    return Store.objects.create(name="Store A", slug="store-a")


@pytest.fixture
def store_b(db):
    return Store.objects.create(name="Store B", slug="store-b")


@pytest.fixture
def admin_a(store_a):
    return AuthContext(id="admin-a", email="admin@a.example", role=Role.ADMIN, store_id=str(store_a.pk))


@pytest.fixture
def staff_a(store_a):
    return AuthContext(id="staff-a", email="staff@a.example", role=Role.STAFF, store_id=str(store_a.pk))


@pytest.fixture
def admin_b(store_b):
    return AuthContext(id="admin-b", email="admin@b.example", role=Role.ADMIN, store_id=str(store_b.pk))


@pytest.fixture
def super_admin():
    return AuthContext(id="root", email="root@example.com", role=Role.SUPER_ADMIN, store_id=None)


@pytest.fixture
def customer(store_a):
    return AuthContext(id="cust-1", email="cust@example.com", role=Role.CUSTOMER, store_id=str(store_a.pk))


@pytest.fixture
def unbound_admin():
    return AuthContext(id="lost-admin", email="lost@example.com", role=Role.ADMIN, store_id=None)


@pytest.fixture
def make_product():
    counter = {"n": 0}

    def _make(store, **overrides):
        counter["n"] += 1
        n = counter["n"]
        fields = {
            "sku": f"SKU-{n}",
            "title": f"Product {n}",
            "slug": f"product-{n}",
            "price_cents": 1000,
            "stock": 10,
        }
        fields.update(overrides)
        return Product.objects.create(store=store, **fields)

    return _make


@pytest.fixture
def make_category():
    def _make(store, slug="shoes", **overrides):
        return Category.objects.create(store=store, title=overrides.pop("title", slug.title()), slug=slug, **overrides)

    return _make


def token_for(ctx, secret=TEST_JWT_SECRET, **extra_claims):
    claims = {**ctx.to_claims(), **extra_claims}
    return jwt.encode(claims, secret, algorithm="HS256")


@pytest.fixture
def api():
    return APIClient()


@pytest.fixture
def client_as(api):
    """APIClient carrying a bearer token for the given principal (or none)."""
    def _client(ctx=None):
        if ctx is None:
            api.credentials()
        else:
            api.credentials(HTTP_AUTHORIZATION=f"Bearer {token_for(ctx)}")
        return api

    return _client
