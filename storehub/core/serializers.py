from rest_framework import serializers

from core.models import Category, Order, OrderItem, OrderStatus, PaymentMethod, Product, Store

# Wire names are camelCase; `source=` maps them onto model attributes, so
# validated_data always arrives in the engines with snake_case keys.


class StoreSerializer(serializers.ModelSerializer):
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = Store
        fields = ['id', 'name', 'slug', 'createdAt']
        # Slug clashes are answered with 409 by the view, not 400.
        extra_kwargs = {'slug': {'validators': []}}


class CategorySerializer(serializers.ModelSerializer):
    """Schema for a category, both as payload and as response."""
    storeId = serializers.UUIDField(source='store_id', required=False, allow_null=True)
    iconUrl = serializers.URLField(source='icon_url', required=False, allow_null=True, max_length=1024)
    description = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Category
        fields = ['id', 'storeId', 'title', 'slug', 'description', 'iconUrl', 'createdAt', 'updatedAt']
        # (store, slug) uniqueness is checked by the catalog, which answers 409 rather than 400.
        validators = []


class ProductSerializer(serializers.ModelSerializer):
    """Schema for a product, both as payload and as response."""
    storeId = serializers.UUIDField(source='store_id', required=False, allow_null=True)
    sku = serializers.CharField(min_length=3, max_length=100)
    priceCents = serializers.IntegerField(source='price_cents', min_value=0)
    previousPriceCents = serializers.IntegerField(
        source='previous_price_cents', min_value=0, required=False, allow_null=True
    )
    currency = serializers.CharField(max_length=8, required=False)
    stock = serializers.IntegerField(min_value=0, required=False)
    description = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    features = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    note = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    images = serializers.ListField(child=serializers.CharField(), required=False)
    thumbnailUrl = serializers.URLField(source='thumbnail_url', required=False, allow_null=True, max_length=1024)
    galleryUrls = serializers.ListField(source='gallery_urls', child=serializers.CharField(), required=False)
    videoUrl = serializers.URLField(source='video_url', required=False, allow_null=True, max_length=1024)
    videoPosterUrl = serializers.URLField(
        source='video_poster_url', required=False, allow_null=True, max_length=1024
    )
    optionsJson = serializers.JSONField(source='options_json', required=False, allow_null=True)
    categoryIds = serializers.ListField(
        source='category_ids', child=serializers.UUIDField(), required=False, write_only=True
    )
    categories = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'storeId', 'sku', 'title', 'slug', 'description', 'features', 'note',
            'priceCents', 'previousPriceCents', 'currency', 'stock', 'active', 'featured',
            'images', 'thumbnailUrl', 'galleryUrls', 'videoUrl', 'videoPosterUrl', 'optionsJson',
            'categoryIds', 'categories', 'createdAt', 'updatedAt',
        ]
        validators = []

    def get_categories(self, obj):
        return [{'id': str(c.id), 'title': c.title, 'slug': c.slug} for c in obj.categories.all()]


class OrderItemSerializer(serializers.ModelSerializer):
    productId = serializers.UUIDField(source='product_id', read_only=True)
    unitPriceCents = serializers.IntegerField(source='unit_price_cents', read_only=True)
    lineTotalCents = serializers.IntegerField(source='line_total_cents', read_only=True)
    productTitle = serializers.CharField(source='product_title', read_only=True)
    productSku = serializers.CharField(source='product_sku', read_only=True)
    productImageUrl = serializers.CharField(source='product_image_url', read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            'id', 'productId', 'quantity', 'unitPriceCents', 'lineTotalCents',
            'productTitle', 'productSku', 'productImageUrl',
        ]


class OrderSerializer(serializers.ModelSerializer):
    """Full order as seen by store operators."""
    storeId = serializers.UUIDField(source='store_id', read_only=True)
    orderNumber = serializers.CharField(source='order_number', read_only=True)
    userId = serializers.CharField(source='user_id', read_only=True)
    paymentMethod = serializers.CharField(source='payment_method', read_only=True)
    customerName = serializers.CharField(source='customer_name', read_only=True)
    streetAddress = serializers.CharField(source='street_address', read_only=True)
    postalCode = serializers.CharField(source='postal_code', read_only=True)
    customerNote = serializers.CharField(source='customer_note', read_only=True)
    adminNote = serializers.CharField(source='admin_note', read_only=True)
    subtotalCents = serializers.IntegerField(source='subtotal_cents', read_only=True)
    deliveryCents = serializers.IntegerField(source='delivery_cents', read_only=True)
    taxCents = serializers.IntegerField(source='tax_cents', read_only=True)
    totalCents = serializers.IntegerField(source='total_cents', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)
    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            'id', 'storeId', 'orderNumber', 'serial', 'userId', 'status', 'paymentMethod',
            'customerName', 'phone', 'email', 'streetAddress', 'division', 'district', 'upazila',
            'city', 'postalCode', 'customerNote', 'adminNote',
            'subtotalCents', 'deliveryCents', 'taxCents', 'totalCents', 'currency',
            'createdAt', 'updatedAt', 'items',
        ]
        read_only_fields = fields


class OrderTrackingSerializer(OrderSerializer):
    """Public tracking view: no store, user or internal notes."""

    class Meta(OrderSerializer.Meta):
        fields = [
            'orderNumber', 'status', 'createdAt', 'customerName', 'phone',
            'streetAddress', 'division', 'district', 'upazila', 'city', 'postalCode',
            'subtotalCents', 'deliveryCents', 'taxCents', 'totalCents', 'currency', 'items',
        ]
        read_only_fields = fields


# ------------------------------------------------------------------ payloads

class CustomerContactSerializer(serializers.Serializer):
    customerName = serializers.CharField(source='customer_name', min_length=1, max_length=255)
    phone = serializers.CharField(min_length=3, max_length=32)
    email = serializers.EmailField(required=False, allow_null=True)
    streetAddress = serializers.CharField(source='street_address', required=False, allow_null=True, allow_blank=True)
    division = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    district = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    upazila = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    city = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    postalCode = serializers.CharField(source='postal_code', required=False, allow_null=True, allow_blank=True)
    customerNote = serializers.CharField(source='customer_note', required=False, allow_null=True, allow_blank=True)
    deliveryCents = serializers.IntegerField(source='delivery_cents', min_value=0, default=0)
    taxCents = serializers.IntegerField(source='tax_cents', min_value=0, default=0)


class AdminOrderItemSerializer(serializers.Serializer):
    """Operator-entered line: the unit price is trusted, snapshots default to the product's."""
    productId = serializers.UUIDField(source='product_id')
    quantity = serializers.IntegerField(min_value=1)
    unitPriceCents = serializers.IntegerField(source='unit_price_cents', min_value=0)
    productTitle = serializers.CharField(source='product_title', required=False, allow_blank=True)
    productSku = serializers.CharField(source='product_sku', required=False, allow_blank=True)
    productImageUrl = serializers.URLField(source='product_image_url', required=False, allow_null=True)


class AdminOrderCreateSerializer(CustomerContactSerializer):
    orderNumber = serializers.CharField(source='order_number', required=False, max_length=64)
    userId = serializers.CharField(source='user_id', required=False, allow_null=True, max_length=64)
    storeId = serializers.UUIDField(source='store_id', required=False, allow_null=True)
    adminNote = serializers.CharField(source='admin_note', required=False, allow_null=True, allow_blank=True)
    subtotalCents = serializers.IntegerField(source='subtotal_cents', min_value=0, required=False)
    totalCents = serializers.IntegerField(source='total_cents', min_value=0, required=False, allow_null=True)
    currency = serializers.CharField(max_length=8, required=False)
    status = serializers.ChoiceField(choices=OrderStatus.choices, required=False)
    paymentMethod = serializers.ChoiceField(source='payment_method', choices=PaymentMethod.choices, default=PaymentMethod.COD)
    items = AdminOrderItemSerializer(many=True, allow_empty=False)


class StorefrontOrderItemSerializer(serializers.Serializer):
    productId = serializers.UUIDField(source='product_id')
    quantity = serializers.IntegerField(min_value=1)


class StorefrontOrderCreateSerializer(CustomerContactSerializer):
    items = StorefrontOrderItemSerializer(many=True, allow_empty=False)


class OrderUpdateSerializer(serializers.Serializer):
    customerName = serializers.CharField(source='customer_name', required=False, min_length=1)
    phone = serializers.CharField(required=False, min_length=3)
    email = serializers.EmailField(required=False, allow_null=True)
    streetAddress = serializers.CharField(source='street_address', required=False, allow_null=True, allow_blank=True)
    division = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    district = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    upazila = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    city = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    postalCode = serializers.CharField(source='postal_code', required=False, allow_null=True, allow_blank=True)
    customerNote = serializers.CharField(source='customer_note', required=False, allow_null=True, allow_blank=True)
    adminNote = serializers.CharField(source='admin_note', required=False, allow_null=True, allow_blank=True)
    deliveryCents = serializers.IntegerField(source='delivery_cents', min_value=0, required=False)
    taxCents = serializers.IntegerField(source='tax_cents', min_value=0, required=False)
    totalCents = serializers.IntegerField(source='total_cents', min_value=0, required=False)
    status = serializers.ChoiceField(choices=OrderStatus.choices, required=False)
    storeId = serializers.UUIDField(source='store_id', required=False, allow_null=True)


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)
