from django.conf import settings
from django.db import models
import uuid


def default_currency():
    return settings.DEFAULT_CURRENCY


class Store(models.Model):
    """A tenant: every catalog and order row belongs to exactly one store."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=200, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name


class Category(models.Model):
    """Store-scoped taxonomy node."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    store = models.ForeignKey(Store, on_delete=models.PROTECT, related_name='categories')
    title = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255)
    description = models.TextField(blank=True, null=True)
    icon_url = models.URLField(max_length=1024, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['store', 'slug'], name='category_store_slug_unique'),
        ]
        indexes = [
            models.Index(fields=['store', 'created_at']),
        ]

    def __str__(self):
        return self.title


class Product(models.Model):
    """Sellable item belonging to a store. `price_cents` is authoritative for storefront orders."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    store = models.ForeignKey(Store, on_delete=models.PROTECT, related_name='products')
    sku = models.CharField(max_length=100)
    title = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255)
    description = models.TextField(blank=True, null=True)
    features = models.TextField(blank=True, null=True)
    note = models.TextField(blank=True, null=True)
    price_cents = models.PositiveIntegerField()
    previous_price_cents = models.PositiveIntegerField(blank=True, null=True)
    currency = models.CharField(max_length=8, default=default_currency)
    stock = models.PositiveIntegerField(default=0)
    active = models.BooleanField(default=True)
    featured = models.BooleanField(default=False)
    images = models.JSONField(default=list, blank=True)
    thumbnail_url = models.URLField(max_length=1024, blank=True, null=True)
    gallery_urls = models.JSONField(default=list, blank=True)
    video_url = models.URLField(max_length=1024, blank=True, null=True)
    video_poster_url = models.URLField(max_length=1024, blank=True, null=True)
    options_json = models.JSONField(blank=True, null=True)
    categories = models.ManyToManyField(Category, through='ProductCategory', related_name='products')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['store', 'slug'], name='product_store_slug_unique'),
        ]
        indexes = [
            models.Index(fields=['store', 'active', 'created_at']),
        ]

    def __str__(self):
        return self.title

    def media_urls(self):
        """Every stored media URL referenced by this product, de-duplicated."""
        urls = list(self.images or []) + list(self.gallery_urls or [])
        urls += [self.thumbnail_url, self.video_url, self.video_poster_url]
        return list(dict.fromkeys(u for u in urls if u))


class ProductCategory(models.Model):
    """Product <-> Category link. Removing a product drops its links; a linked category cannot be removed."""
    product = models.ForeignKey(Product, on_delete=models.CASCADE)
    category = models.ForeignKey(Category, on_delete=models.PROTECT)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['product', 'category'], name='product_category_unique'),
        ]


class OrderStatus(models.TextChoices):
    PENDING = 'PENDING'
    PAID = 'PAID'
    FULFILLED = 'FULFILLED'
    CANCELLED = 'CANCELLED'


class PaymentMethod(models.TextChoices):
    COD = 'COD'
    BKASH = 'BKASH'
    NAGAD = 'NAGAD'
    CARD = 'CARD'
    OTHER = 'OTHER'


class Order(models.Model):
    """Customer order. Totals are always stored as server-computed cents."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    store = models.ForeignKey(Store, on_delete=models.PROTECT, related_name='orders')
    serial = models.PositiveBigIntegerField(unique=True, editable=False)
    order_number = models.CharField(max_length=64, db_index=True)
    user_id = models.CharField(max_length=64, blank=True, null=True)
    status = models.CharField(max_length=16, choices=OrderStatus.choices, default=OrderStatus.PENDING)
    payment_method = models.CharField(max_length=16, choices=PaymentMethod.choices, default=PaymentMethod.COD)

    customer_name = models.CharField(max_length=255)
    phone = models.CharField(max_length=32)
    email = models.EmailField(blank=True, null=True)
    street_address = models.CharField(max_length=255, blank=True, null=True)
    division = models.CharField(max_length=100, blank=True, null=True)
    district = models.CharField(max_length=100, blank=True, null=True)
    upazila = models.CharField(max_length=100, blank=True, null=True)
    city = models.CharField(max_length=100, blank=True, null=True)
    postal_code = models.CharField(max_length=20, blank=True, null=True)
    customer_note = models.TextField(blank=True, null=True)
    admin_note = models.TextField(blank=True, null=True)

    subtotal_cents = models.PositiveIntegerField(default=0)
    delivery_cents = models.PositiveIntegerField(default=0)
    tax_cents = models.PositiveIntegerField(default=0)
    total_cents = models.PositiveIntegerField(default=0)
    currency = models.CharField(max_length=8, default=default_currency)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['store', 'status', 'created_at']),
        ]

    def __str__(self):
        return f"Order {self.order_number}"


class OrderItem(models.Model):
    """
    Line item of an order.

    The product reference carries no constraint: the product may be deleted
    later, and the snapshot columns keep the line displayable.
    """
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(
        Product, on_delete=models.DO_NOTHING, db_constraint=False, null=True, related_name='+'
    )
    quantity = models.PositiveIntegerField()
    unit_price_cents = models.PositiveIntegerField()
    line_total_cents = models.PositiveIntegerField()
    product_title = models.CharField(max_length=255)
    product_sku = models.CharField(max_length=100)
    product_image_url = models.URLField(max_length=1024, blank=True, null=True)

    def __str__(self):
        return f"{self.product_title} x {self.quantity}"


class OrderSerialCounter(models.Model):
    """Single-row counter backing Order.serial. Locked for the duration of an order insert."""
    name = models.CharField(max_length=32, primary_key=True)
    value = models.PositiveBigIntegerField(default=0)

    def __str__(self):
        return f"{self.name}={self.value}"


class IdempotencyKey(models.Model):
    """
    Tracks processed idempotent requests.
    Ensures repeated storefront submissions with the same key are answered from the stored result.
    """
    key = models.CharField(max_length=255, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)
    metadata = models.JSONField(default=dict, blank=True)

    def __str__(self):
        return self.key
