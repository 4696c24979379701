"""
Order pricing & creation engine.

Two channels create orders:

* administrative - a trusted operator resolves the store through the guard
  and may enter negotiated unit prices;
* storefront - an anonymous shopper sends product ids and quantities only;
  prices, snapshots, store and currency all come from the catalog.

Both channels validate everything before the first write and persist the
order with its items in one transaction. Stock is neither checked nor
decremented here.
"""
import logging
from dataclasses import asdict, dataclass

from django.conf import settings
from django.db import transaction
from django.db.models import F

from .catalog import get_store, products_by_id
from .errors import ResourceNotFound, ValidationFailed
from .guard import authorize_resource, require_admin, resolve_creation_store, resolve_listing_store
from .models import Order, OrderItem, OrderSerialCounter, OrderStatus, PaymentMethod
from .utils import generate_order_number, load_or_404, parse_uuid

logger = logging.getLogger("storehub.orders")

ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: frozenset({OrderStatus.PAID, OrderStatus.CANCELLED}),
    OrderStatus.PAID: frozenset({OrderStatus.FULFILLED, OrderStatus.CANCELLED}),
    OrderStatus.FULFILLED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

CONTACT_FIELDS = (
    'customer_name', 'phone', 'email',
    'street_address', 'division', 'district', 'upazila', 'city', 'postal_code',
    'customer_note',
)


@dataclass(frozen=True)
class OrderTotals:
    subtotal_cents: int
    delivery_cents: int
    tax_cents: int
    total_cents: int


def line_total(unit_price_cents: int, quantity: int) -> int:
    if quantity <= 0:
        raise ValidationFailed('Quantity must be greater than zero.')
    if unit_price_cents < 0:
        raise ValidationFailed('Unit price cannot be negative.')
    return unit_price_cents * quantity


def compute_totals(line_totals, delivery_cents: int = 0, tax_cents: int = 0) -> OrderTotals:
    if delivery_cents < 0 or tax_cents < 0:
        raise ValidationFailed('Delivery and tax cannot be negative.')
    subtotal = sum(line_totals)
    return OrderTotals(
        subtotal_cents=subtotal,
        delivery_cents=delivery_cents,
        tax_cents=tax_cents,
        total_cents=subtotal + delivery_cents + tax_cents,
    )


def check_transition(current, target) -> None:
    """Raise unless ``current -> target`` is allowed. Re-applying the current status is a no-op."""
    current, target = OrderStatus(current), OrderStatus(target)
    if current == target:
        return
    if target not in ALLOWED_TRANSITIONS[current]:
        raise ValidationFailed(f'Cannot change order status from {current.value} to {target.value}.')


def next_order_serial() -> int:
    """Allocate the next serial. Must run inside the order's transaction: the counter row stays locked until commit."""
    counter, _ = OrderSerialCounter.objects.select_for_update().get_or_create(name='order')
    OrderSerialCounter.objects.filter(pk=counter.pk).update(value=F('value') + 1)
    counter.refresh_from_db(fields=['value'])
    return counter.value


def _load_products(product_ids) -> dict:
    """Products for every distinct requested id. Missing ones fail the whole order."""
    wanted = {parse_uuid(pid, 'productId') for pid in product_ids}
    products = products_by_id(wanted)
    if len(products) != len(wanted):
        raise ValidationFailed('One or more products no longer exist')
    return products


def _persist(order: Order, items) -> Order:
    with transaction.atomic():
        order.serial = next_order_serial()
        order.save()
        for item in items:
            item.order = order
        OrderItem.objects.bulk_create(items)
    logger.info(
        "Created order %s (%s) in store %s: %d items, total=%d %s",
        order.pk, order.order_number, order.store_id, len(items), order.total_cents, order.currency,
    )
    return order


def create_admin_order(ctx, data) -> Order:
    """
    Operator order entry. Unit prices are taken as entered; subtotal and
    total are always the server's arithmetic.
    """
    store = get_store(resolve_creation_store(ctx, data.get('store_id'), 'order'))

    lines = data['items']
    products = _load_products(line['product_id'] for line in lines)
    if any(p.store_id != store.pk for p in products.values()):
        raise ValidationFailed('All products in an order must belong to the order\'s store.')

    items = []
    for line in lines:
        product = products[parse_uuid(line['product_id'], 'productId')]
        unit_price = line['unit_price_cents']
        items.append(OrderItem(
            product_id=product.pk,
            quantity=line['quantity'],
            unit_price_cents=unit_price,
            line_total_cents=line_total(unit_price, line['quantity']),
            product_title=line.get('product_title') or product.title,
            product_sku=line.get('product_sku') or product.sku,
            product_image_url=line.get('product_image_url') or product.thumbnail_url,
        ))

    totals = compute_totals(
        (i.line_total_cents for i in items), data.get('delivery_cents', 0), data.get('tax_cents', 0)
    )
    supplied_subtotal = data.get('subtotal_cents')
    if supplied_subtotal and supplied_subtotal != totals.subtotal_cents:
        logger.warning(
            "Ignoring supplied subtotal %d for store %s, line items add up to %d",
            supplied_subtotal, store.pk, totals.subtotal_cents,
        )
    supplied_total = data.get('total_cents')
    if supplied_total is not None and supplied_total != totals.total_cents:
        raise ValidationFailed('totalCents does not equal subtotal + delivery + tax.')

    order = Order(
        store=store,
        order_number=data.get('order_number') or generate_order_number(),
        user_id=data.get('user_id'),
        status=data.get('status') or OrderStatus.PENDING,
        payment_method=data.get('payment_method') or PaymentMethod.COD,
        admin_note=data.get('admin_note'),
        currency=data.get('currency') or settings.DEFAULT_CURRENCY,
        **{f: data.get(f) for f in CONTACT_FIELDS},
        **asdict(totals),
    )
    return _persist(order, items)


def create_storefront_order(data) -> Order:
    """
    Anonymous checkout. The caller names products and quantities; price,
    snapshots, store and currency are read from the catalog at this instant.
    """
    lines = data['items']
    products = _load_products(line['product_id'] for line in lines)

    store_ids = {p.store_id for p in products.values()}
    if len(store_ids) > 1:
        raise ValidationFailed('All products in an order must belong to the same store.')

    items = []
    for line in lines:
        product = products[parse_uuid(line['product_id'], 'productId')]
        items.append(OrderItem(
            product_id=product.pk,
            quantity=line['quantity'],
            unit_price_cents=product.price_cents,
            line_total_cents=line_total(product.price_cents, line['quantity']),
            product_title=product.title,
            product_sku=product.sku,
            product_image_url=product.thumbnail_url,
        ))

    totals = compute_totals(
        (i.line_total_cents for i in items), data.get('delivery_cents', 0), data.get('tax_cents', 0)
    )
    first_product = products[parse_uuid(lines[0]['product_id'], 'productId')]

    order = Order(
        store_id=first_product.store_id,
        order_number=generate_order_number(),
        user_id=None,
        status=OrderStatus.PENDING,
        payment_method=PaymentMethod.COD,
        admin_note=None,
        currency=first_product.currency or settings.DEFAULT_CURRENCY,
        **{f: data.get(f) for f in CONTACT_FIELDS},
        **asdict(totals),
    )
    return _persist(order, items)


def list_orders(ctx, store_id=None, status=None, offset=0, limit=20):
    store_filter = resolve_listing_store(ctx, store_id)

    queryset = Order.objects.order_by('-created_at')
    if store_filter:
        queryset = queryset.filter(store_id=parse_uuid(store_filter, 'storeId'))
    if status:
        if status not in OrderStatus.values:
            raise ValidationFailed(f'Unknown order status {status}.')
        queryset = queryset.filter(status=status)

    total = queryset.count()
    items = list(queryset.prefetch_related('items')[offset:offset + limit])
    return total, items


def _load_owned_order(ctx, order_id) -> Order:
    require_admin(ctx)
    order = load_or_404(Order.objects.prefetch_related('items'), order_id, 'Order')
    authorize_resource(ctx, order.store_id, 'order')
    return order


def get_order(ctx, order_id) -> Order:
    return _load_owned_order(ctx, order_id)


def update_order(ctx, order_id, data) -> Order:
    """Edit contact details, notes, charges or status. Totals stay server-computed."""
    order = _load_owned_order(ctx, order_id)
    if data.get('store_id') is not None and parse_uuid(data['store_id'], 'storeId') != order.store_id:
        raise ValidationFailed('Moving an order to another store is not supported.')

    if data.get('status'):
        check_transition(order.status, data['status'])
        order.status = data['status']

    for field in CONTACT_FIELDS + ('admin_note',):
        if field in data:
            setattr(order, field, data[field])

    totals = compute_totals(
        [order.subtotal_cents],
        data.get('delivery_cents', order.delivery_cents),
        data.get('tax_cents', order.tax_cents),
    )
    if data.get('total_cents') is not None and data['total_cents'] != totals.total_cents:
        raise ValidationFailed('totalCents does not equal subtotal + delivery + tax.')
    order.delivery_cents = totals.delivery_cents
    order.tax_cents = totals.tax_cents
    order.total_cents = totals.total_cents

    order.save()
    return order


def set_order_status(ctx, order_id, status) -> Order:
    order = _load_owned_order(ctx, order_id)
    check_transition(order.status, status)
    if order.status != status:
        previous = order.status
        order.status = status
        order.save(update_fields=['status', 'updated_at'])
        logger.info("Order %s status %s -> %s by %s", order.pk, previous, status, ctx.id)
    return order


def delete_order(ctx, order_id) -> None:
    order = _load_owned_order(ctx, order_id)
    order.delete()
    logger.info("Deleted order %s from store %s", order_id, order.store_id)


def track_order(order_number) -> Order:
    """Public lookup by order number; order numbers are not unique, the earliest wins."""
    order = (
        Order.objects.filter(order_number=order_number)
        .prefetch_related('items')
        .order_by('serial')
        .first()
    )
    if order is None:
        raise ResourceNotFound('Order not found')
    return order
