import re

import pytest
from django.db import DatabaseError

from core import orders
from core.errors import AuthorizationDenied, ResourceNotFound, Unauthenticated, ValidationFailed
from core.models import Order, OrderItem, OrderStatus, PaymentMethod
from core.utils import generate_order_number

pytestmark = pytest.mark.django_db

CONTACT = {"customer_name": "Rahim", "phone": "01700000000"}


def storefront_payload(*lines, **extra):
    return {**CONTACT, "items": [{"product_id": p.pk, "quantity": q} for p, q in lines], **extra}


def admin_payload(*lines, **extra):
    return {
        **CONTACT,
        "items": [{"product_id": p.pk, "quantity": q, "unit_price_cents": price} for p, q, price in lines],
        **extra,
    }


def assert_consistent(order):
    items = list(order.items.all())
    assert order.subtotal_cents == sum(i.line_total_cents for i in items)
    assert order.total_cents == order.subtotal_cents + order.delivery_cents + order.tax_cents
    for item in items:
        assert item.quantity > 0
        assert item.line_total_cents == item.unit_price_cents * item.quantity


class TestPricing:
    def test_line_total(self):
        assert orders.line_total(1000, 3) == 3000

    @pytest.mark.parametrize("price, qty", [(100, 0), (100, -1), (-1, 1)])
    def test_line_total_rejects_bad_input(self, price, qty):
        with pytest.raises(ValidationFailed):
            orders.line_total(price, qty)

    def test_compute_totals(self):
        totals = orders.compute_totals([2000, 500], delivery_cents=6000, tax_cents=250)

        assert totals == orders.OrderTotals(subtotal_cents=2500, delivery_cents=6000, tax_cents=250, total_cents=8750)

    def test_order_number_format(self):
        assert re.fullmatch(r"ORD-\d{8}-\d{4}", generate_order_number())


class TestStorefrontChannel:
    def test_price_is_derived_from_catalog_and_snapshotted(self, store_a, make_product):
        product = make_product(store_a, sku="SKU-1", price_cents=1000, thumbnail_url="https://cdn.example.com/1.jpg")

        order = orders.create_storefront_order(storefront_payload((product, 2)))

        item = order.items.get()
        assert order.store_id == store_a.pk
        assert order.subtotal_cents == 2000
        assert item.unit_price_cents == 1000
        assert item.product_sku == "SKU-1"
        assert item.product_image_url == "https://cdn.example.com/1.jpg"
        assert order.status == OrderStatus.PENDING
        assert order.payment_method == PaymentMethod.COD
        assert_consistent(order)

    def test_snapshot_survives_product_changes_and_deletion(self, store_a, make_product):
        product = make_product(store_a, title="Runner", price_cents=1000)
        order = orders.create_storefront_order(storefront_payload((product, 1)))

        product.price_cents = 9999
        product.title = "Renamed"
        product.save()
        product_id = product.pk
        product.delete()

        item = OrderItem.objects.get(order=order)
        assert item.unit_price_cents == 1000
        assert item.product_title == "Runner"
        assert item.product_id == product_id

    def test_delivery_and_tax_flow_into_total(self, store_a, make_product):
        a = make_product(store_a, price_cents=1500)
        b = make_product(store_a, price_cents=250)

        order = orders.create_storefront_order(
            storefront_payload((a, 1), (b, 4), delivery_cents=6000, tax_cents=100)
        )

        assert order.subtotal_cents == 2500
        assert order.total_cents == 8600
        assert_consistent(order)

    def test_currency_comes_from_product(self, store_a, make_product):
        product = make_product(store_a, currency="USD")

        order = orders.create_storefront_order(storefront_payload((product, 1)))

        assert order.currency == "USD"

    def test_products_from_two_stores_are_rejected_and_nothing_is_written(self, store_a, store_b, make_product):
        a = make_product(store_a)
        b = make_product(store_b)

        with pytest.raises(ValidationFailed, match="same store"):
            orders.create_storefront_order(storefront_payload((a, 1), (b, 1)))

        assert not Order.objects.exists()
        assert not OrderItem.objects.exists()

    def test_missing_product_fails_instead_of_being_dropped(self, store_a, make_product):
        product = make_product(store_a)
        gone = make_product(store_a)
        gone_id = gone.pk
        gone.delete()
        payload = storefront_payload((product, 1))
        payload["items"].append({"product_id": gone_id, "quantity": 1})

        with pytest.raises(ValidationFailed, match="no longer exist"):
            orders.create_storefront_order(payload)
        assert not Order.objects.exists()

    def test_repeated_product_lines_are_priced_individually(self, store_a, make_product):
        product = make_product(store_a, price_cents=300)

        order = orders.create_storefront_order(storefront_payload((product, 1), (product, 2)))

        assert order.items.count() == 2
        assert order.subtotal_cents == 900

    def test_persistence_failure_leaves_no_partial_order(self, store_a, make_product, monkeypatch):
        product = make_product(store_a)

        def broken_bulk_create(*args, **kwargs):
            raise DatabaseError("disk full")

        monkeypatch.setattr(OrderItem.objects, "bulk_create", broken_bulk_create)

        with pytest.raises(DatabaseError):
            orders.create_storefront_order(storefront_payload((product, 1)))

        assert not Order.objects.exists()

    def test_serials_increase(self, store_a, make_product):
        product = make_product(store_a)

        first = orders.create_storefront_order(storefront_payload((product, 1)))
        second = orders.create_storefront_order(storefront_payload((product, 1)))

        assert second.serial > first.serial


class TestAdminChannel:
    def test_operator_price_is_trusted_and_totals_recomputed(self, admin_a, store_a, make_product):
        product = make_product(store_a, price_cents=1000)

        order = orders.create_admin_order(
            admin_a, admin_payload((product, 3, 800), subtotal_cents=1, delivery_cents=100, order_number="PHONE-1")
        )

        assert order.subtotal_cents == 2400
        assert order.total_cents == 2500
        assert order.order_number == "PHONE-1"
        assert order.items.get().unit_price_cents == 800
        assert_consistent(order)

    def test_supplied_total_must_match(self, admin_a, store_a, make_product):
        product = make_product(store_a)

        with pytest.raises(ValidationFailed):
            orders.create_admin_order(admin_a, admin_payload((product, 1, 1000), total_cents=5))
        assert not Order.objects.exists()

    def test_payload_store_is_ignored_for_operators(self, admin_a, store_a, store_b, make_product):
        product = make_product(store_a)

        order = orders.create_admin_order(admin_a, admin_payload((product, 1, 100), store_id=store_b.pk))

        assert order.store_id == store_a.pk

    def test_super_admin_must_name_store(self, super_admin, store_b, make_product):
        product = make_product(store_b)

        with pytest.raises(ValidationFailed, match="must provide storeId"):
            orders.create_admin_order(super_admin, admin_payload((product, 1, 100)))

        order = orders.create_admin_order(super_admin, admin_payload((product, 1, 100), store_id=str(store_b.pk)))
        assert order.store_id == store_b.pk

    def test_products_must_belong_to_order_store(self, admin_a, store_b, make_product):
        foreign = make_product(store_b)

        with pytest.raises(ValidationFailed):
            orders.create_admin_order(admin_a, admin_payload((foreign, 1, 100)))
        assert not Order.objects.exists()

    def test_snapshot_defaults_to_product_values(self, admin_a, store_a, make_product):
        product = make_product(store_a, title="Runner", sku="RUN-1")

        order = orders.create_admin_order(admin_a, admin_payload((product, 1, 100)))

        item = order.items.get()
        assert (item.product_title, item.product_sku) == ("Runner", "RUN-1")

    def test_anonymous_and_customer_cannot_use_admin_channel(self, customer, store_a, make_product):
        product = make_product(store_a)

        with pytest.raises(Unauthenticated):
            orders.create_admin_order(None, admin_payload((product, 1, 100)))
        with pytest.raises(AuthorizationDenied):
            orders.create_admin_order(customer, admin_payload((product, 1, 100)))


class TestOrderLifecycle:
    @pytest.fixture
    def order(self, store_a, make_product):
        return orders.create_storefront_order(storefront_payload((make_product(store_a, price_cents=1000), 2)))

    @pytest.mark.parametrize(
        "path",
        [
            [OrderStatus.PAID, OrderStatus.FULFILLED],
            [OrderStatus.CANCELLED],
            [OrderStatus.PAID, OrderStatus.CANCELLED],
        ],
    )
    def test_allowed_transitions(self, admin_a, order, path):
        for status in path:
            order = orders.set_order_status(admin_a, order.pk, status)

        assert order.status == path[-1]

    @pytest.mark.parametrize(
        "path",
        [
            [OrderStatus.FULFILLED],
            [OrderStatus.CANCELLED, OrderStatus.PAID],
            [OrderStatus.PAID, OrderStatus.FULFILLED, OrderStatus.CANCELLED],
            [OrderStatus.PAID, OrderStatus.PENDING],
        ],
    )
    def test_forbidden_transitions(self, admin_a, order, path):
        with pytest.raises(ValidationFailed):
            for status in path:
                orders.set_order_status(admin_a, order.pk, status)

    def test_status_change_on_foreign_order_is_denied(self, admin_b, order):
        with pytest.raises(AuthorizationDenied):
            orders.set_order_status(admin_b, order.pk, OrderStatus.PAID)

        order.refresh_from_db()
        assert order.status == OrderStatus.PENDING

    def test_update_recomputes_total(self, staff_a, order):
        updated = orders.update_order(staff_a, order.pk, {"delivery_cents": 500, "city": "Sylhet"})

        assert updated.city == "Sylhet"
        assert updated.total_cents == 2500
        assert_consistent(updated)

    def test_update_rejects_inconsistent_total(self, admin_a, order):
        with pytest.raises(ValidationFailed):
            orders.update_order(admin_a, order.pk, {"total_cents": 1})

    def test_get_foreign_order_is_denied(self, admin_b, order):
        with pytest.raises(AuthorizationDenied):
            orders.get_order(admin_b, order.pk)

    def test_super_admin_reads_any_order(self, super_admin, order):
        assert orders.get_order(super_admin, order.pk).pk == order.pk

    def test_delete_cascades_items(self, admin_a, order):
        orders.delete_order(admin_a, order.pk)

        assert not Order.objects.exists()
        assert not OrderItem.objects.exists()

    def test_listing_is_scoped(self, admin_a, admin_b, super_admin, order, store_b, make_product):
        orders.create_storefront_order(storefront_payload((make_product(store_b), 1)))

        assert orders.list_orders(admin_a)[0] == 1
        assert orders.list_orders(admin_b, store_id=str(order.store_id))[0] == 1
        assert orders.list_orders(super_admin)[0] == 2
        assert orders.list_orders(super_admin, store_id=str(store_b.pk))[0] == 1
        assert orders.list_orders(super_admin, status=OrderStatus.PAID)[0] == 0

    def test_tracking_needs_no_principal(self, order):
        assert orders.track_order(order.order_number).pk == order.pk

    def test_tracking_unknown_number(self):
        with pytest.raises(ResourceNotFound):
            orders.track_order("ORD-00000000-0000")
