"""
Catalog tenant binding: store-scoped lifecycle of categories and products.

Every mutation resolves its store through the guard first; `(store, slug)`
uniqueness and in-use deletion surface as ConflictDetected, and no update
can move a record to another store.
"""
import logging

from django.db import IntegrityError, transaction
from django.db.models import ProtectedError, Q

from .errors import ConflictDetected, ValidationFailed
from .guard import authorize_resource, require_admin, resolve_creation_store, resolve_listing_store
from .media import delete_media
from .models import Category, Product, Store
from .principal import has_admin_capability
from .utils import load_or_404, parse_uuid

logger = logging.getLogger("storehub.catalog")

CATEGORY_FIELDS = ('title', 'slug', 'description', 'icon_url')
PRODUCT_FIELDS = (
    'sku', 'title', 'slug', 'description', 'features', 'note',
    'price_cents', 'previous_price_cents', 'currency', 'stock', 'active', 'featured',
    'images', 'thumbnail_url', 'gallery_urls', 'video_url', 'video_poster_url', 'options_json',
)


def get_store(store_id) -> Store:
    store = Store.objects.filter(pk=parse_uuid(store_id, 'storeId')).first()
    if store is None:
        raise ValidationFailed('Store does not exist.')
    return store


def _visible_store_filter(ctx, requested_store_id):
    """
    Store filter for read endpoints that are also public.
    Operators are scoped by the guard; anyone else may narrow by store.
    """
    if has_admin_capability(ctx):
        store_id = resolve_listing_store(ctx, requested_store_id)
    else:
        store_id = requested_store_id or None
    return parse_uuid(store_id, 'storeId') if store_id else None


def _reject_store_change(data, instance, resource):
    if data.get('store_id') is None:
        return
    if parse_uuid(data['store_id'], 'storeId') != instance.store_id:
        raise ValidationFailed(f'Moving a {resource} to another store is not supported.')


# ---------------------------------------------------------------- categories

def list_categories(ctx, store_id=None):
    queryset = Category.objects.order_by('-created_at')
    store_filter = _visible_store_filter(ctx, store_id)
    if store_filter:
        queryset = queryset.filter(store_id=store_filter)
    return queryset


def get_category(ctx, category_id) -> Category:
    category = load_or_404(Category.objects.all(), category_id, 'Category')
    if has_admin_capability(ctx):
        authorize_resource(ctx, category.store_id, 'category')
    return category


def _ensure_category_slug_free(store_id, slug, exclude_pk=None):
    duplicates = Category.objects.filter(store_id=store_id, slug=slug)
    if exclude_pk is not None:
        duplicates = duplicates.exclude(pk=exclude_pk)
    if duplicates.exists():
        raise ConflictDetected('Slug already exists')


def create_category(ctx, data) -> Category:
    store_id = resolve_creation_store(ctx, data.get('store_id'), 'category')
    store = get_store(store_id)
    _ensure_category_slug_free(store.pk, data['slug'])

    try:
        with transaction.atomic():
            category = Category.objects.create(
                store=store, **{f: data[f] for f in CATEGORY_FIELDS if f in data}
            )
    except IntegrityError:
        raise ConflictDetected('Slug already exists')

    logger.info("Created category %s in store %s", category.pk, store.pk)
    return category


def update_category(ctx, category_id, data) -> Category:
    require_admin(ctx)
    category = load_or_404(Category.objects.all(), category_id, 'Category')
    authorize_resource(ctx, category.store_id, 'category')
    _reject_store_change(data, category, 'category')

    if data.get('slug') and data['slug'] != category.slug:
        _ensure_category_slug_free(category.store_id, data['slug'], exclude_pk=category.pk)

    changed = [f for f in CATEGORY_FIELDS if f in data]
    for field in changed:
        setattr(category, field, data[field])

    try:
        with transaction.atomic():
            category.save()
    except IntegrityError:
        raise ConflictDetected('Slug already exists')
    return category


def delete_category(ctx, category_id) -> None:
    require_admin(ctx)
    category = load_or_404(Category.objects.all(), category_id, 'Category')
    authorize_resource(ctx, category.store_id, 'category')

    try:
        with transaction.atomic():
            category.delete()
    except (ProtectedError, IntegrityError):
        raise ConflictDetected('Category is in use by products')
    logger.info("Deleted category %s from store %s", category_id, category.store_id)


# ------------------------------------------------------------------ products

def list_products(ctx, store_id=None, q=None, category_id=None, offset=0, limit=20):
    """Returns (total, page). Anonymous callers only ever see active products."""
    queryset = Product.objects.order_by('-created_at')

    store_filter = _visible_store_filter(ctx, store_id)
    if store_filter:
        queryset = queryset.filter(store_id=store_filter)
    if not has_admin_capability(ctx):
        queryset = queryset.filter(active=True)
    if q:
        queryset = queryset.filter(Q(title__icontains=q) | Q(sku__icontains=q))
    if category_id:
        queryset = queryset.filter(categories__id=parse_uuid(category_id, 'categoryId'))

    total = queryset.count()
    items = list(queryset.prefetch_related('categories')[offset:offset + limit])
    return total, items


def get_product(ctx, product_id) -> Product:
    product = load_or_404(Product.objects.prefetch_related('categories'), product_id, 'Product')
    if has_admin_capability(ctx):
        authorize_resource(ctx, product.store_id, 'product')
    return product


def products_by_id(product_ids) -> dict:
    """Read-only lookup used by the order engine."""
    ids = {parse_uuid(pid, 'productId') for pid in product_ids}
    return {p.pk: p for p in Product.objects.filter(pk__in=ids)}


def _store_categories(store_id, category_ids):
    ids = {parse_uuid(cid, 'categoryId') for cid in category_ids}
    categories = list(Category.objects.filter(pk__in=ids, store_id=store_id))
    if len(categories) != len(ids):
        raise ValidationFailed('Every category must exist in the product\'s store.')
    return categories


def _ensure_product_slug_free(store_id, slug, exclude_pk=None):
    duplicates = Product.objects.filter(store_id=store_id, slug=slug)
    if exclude_pk is not None:
        duplicates = duplicates.exclude(pk=exclude_pk)
    if duplicates.exists():
        raise ConflictDetected('Slug already exists')


def create_product(ctx, data) -> Product:
    store_id = resolve_creation_store(ctx, data.get('store_id'), 'product')
    store = get_store(store_id)
    _ensure_product_slug_free(store.pk, data['slug'])
    categories = _store_categories(store.pk, data.get('category_ids') or [])

    try:
        with transaction.atomic():
            product = Product.objects.create(
                store=store, **{f: data[f] for f in PRODUCT_FIELDS if f in data}
            )
            product.categories.set(categories)
    except IntegrityError:
        raise ConflictDetected('Slug already exists')

    logger.info("Created product %s (sku=%s) in store %s", product.pk, product.sku, store.pk)
    return product


def update_product(ctx, product_id, data) -> Product:
    require_admin(ctx)
    product = load_or_404(Product.objects.all(), product_id, 'Product')
    authorize_resource(ctx, product.store_id, 'product')
    _reject_store_change(data, product, 'product')

    if data.get('slug') and data['slug'] != product.slug:
        _ensure_product_slug_free(product.store_id, data['slug'], exclude_pk=product.pk)

    categories = None
    if 'category_ids' in data:
        categories = _store_categories(product.store_id, data['category_ids'] or [])

    for field in (f for f in PRODUCT_FIELDS if f in data):
        setattr(product, field, data[field])

    try:
        with transaction.atomic():
            product.save()
            if categories is not None:
                product.categories.set(categories)
    except IntegrityError:
        raise ConflictDetected('Slug already exists')
    return product


def delete_product(ctx, product_id) -> None:
    """
    Delete a product and its category links. Its media is removed from
    storage only after the row deletion has committed, on a best-effort basis.
    """
    require_admin(ctx)
    product = load_or_404(Product.objects.all(), product_id, 'Product')
    authorize_resource(ctx, product.store_id, 'product')

    urls = product.media_urls()
    with transaction.atomic():
        product.delete()
        if urls:
            transaction.on_commit(lambda: delete_media(urls))
    logger.info("Deleted product %s from store %s", product_id, product.store_id)
