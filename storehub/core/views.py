from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from django.db import IntegrityError, transaction

from core import catalog, orders
from core.auth import authenticate
from core.errors import ConflictDetected, Unauthenticated
from core.guard import require_admin, require_super
from core.models import Store
from core.serializers import (
    AdminOrderCreateSerializer,
    CategorySerializer,
    OrderSerializer,
    OrderStatusSerializer,
    OrderTrackingSerializer,
    OrderUpdateSerializer,
    ProductSerializer,
    StoreSerializer,
    StorefrontOrderCreateSerializer,
)
from core.utils import finalize_idempotency, handle_idempotency, page_params, release_idempotency

# Every view builds the request principal with authenticate() and hands it to
# the engines explicitly; nothing is attached to the request object.


def _validated(serializer_class, data, partial=False):
    serializer = serializer_class(data=data, partial=partial)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


class MeView(APIView):
    """GET /auth/me - claims of the calling principal."""

    def get(self, request):
        ctx = authenticate(request)
        if ctx is None:
            raise Unauthenticated()
        return Response({'user': ctx.to_claims()})


class StoreListView(APIView):
    """GET/POST /stores - store provisioning, SUPER_ADMIN only."""

    def get(self, request):
        require_super(authenticate(request))
        stores = Store.objects.order_by('name')
        return Response(StoreSerializer(stores, many=True).data)

    def post(self, request):
        require_super(authenticate(request))
        data = _validated(StoreSerializer, request.data)
        if Store.objects.filter(slug=data['slug']).exists():
            raise ConflictDetected('Store slug already exists')
        try:
            store = Store.objects.create(**data)
        except IntegrityError:
            raise ConflictDetected('Store slug already exists')
        return Response(StoreSerializer(store).data, status=status.HTTP_201_CREATED)


class CategoryListView(APIView):
    """GET/POST /categories"""

    def get(self, request):
        ctx = authenticate(request)
        categories = catalog.list_categories(ctx, request.query_params.get('storeId'))
        return Response(CategorySerializer(categories, many=True).data)

    def post(self, request):
        ctx = require_admin(authenticate(request))
        data = _validated(CategorySerializer, request.data)
        category = catalog.create_category(ctx, data)
        return Response(CategorySerializer(category).data, status=status.HTTP_201_CREATED)


class CategoryDetailView(APIView):
    """GET/PUT/DELETE /categories/:id"""

    def get(self, request, pk):
        category = catalog.get_category(authenticate(request), pk)
        return Response(CategorySerializer(category).data)

    def put(self, request, pk):
        ctx = require_admin(authenticate(request))
        data = _validated(CategorySerializer, request.data, partial=True)
        category = catalog.update_category(ctx, pk, data)
        return Response(CategorySerializer(category).data)

    def delete(self, request, pk):
        catalog.delete_category(authenticate(request), pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


class ProductListView(APIView):
    """GET/POST /products"""

    def get(self, request):
        ctx = authenticate(request)
        query = request.query_params
        _, limit, offset = page_params(query)
        total, items = catalog.list_products(
            ctx,
            store_id=query.get('storeId'),
            q=(query.get('q') or '').strip() or None,
            category_id=query.get('categoryId'),
            offset=offset,
            limit=limit,
        )
        return Response({'total': total, 'items': ProductSerializer(items, many=True).data})

    def post(self, request):
        ctx = require_admin(authenticate(request))
        data = _validated(ProductSerializer, request.data)
        product = catalog.create_product(ctx, data)
        return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)


class ProductDetailView(APIView):
    """GET/PUT/DELETE /products/:id"""

    def get(self, request, pk):
        product = catalog.get_product(authenticate(request), pk)
        return Response(ProductSerializer(product).data)

    def put(self, request, pk):
        ctx = require_admin(authenticate(request))
        data = _validated(ProductSerializer, request.data, partial=True)
        product = catalog.update_product(ctx, pk, data)
        return Response(ProductSerializer(product).data)

    def delete(self, request, pk):
        catalog.delete_product(authenticate(request), pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


class OrderListView(APIView):
    """GET/POST /orders - operator channel."""

    def get(self, request):
        ctx = authenticate(request)
        query = request.query_params
        _, limit, offset = page_params(query)
        total, items = orders.list_orders(
            ctx, store_id=query.get('storeId'), status=query.get('status'), offset=offset, limit=limit
        )
        return Response({'total': total, 'items': OrderSerializer(items, many=True).data})

    def post(self, request):
        ctx = require_admin(authenticate(request))
        data = _validated(AdminOrderCreateSerializer, request.data)
        order = orders.create_admin_order(ctx, data)
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)


class OrderDetailView(APIView):
    """GET/PUT/DELETE /orders/:id"""

    def get(self, request, pk):
        order = orders.get_order(authenticate(request), pk)
        return Response(OrderSerializer(order).data)

    def put(self, request, pk):
        ctx = require_admin(authenticate(request))
        data = _validated(OrderUpdateSerializer, request.data)
        order = orders.update_order(ctx, pk, data)
        return Response(OrderSerializer(order).data)

    def delete(self, request, pk):
        orders.delete_order(authenticate(request), pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


class OrderStatusView(APIView):
    """PATCH /orders/:id/status"""

    def patch(self, request, pk):
        ctx = require_admin(authenticate(request))
        data = _validated(OrderStatusSerializer, request.data)
        order = orders.set_order_status(ctx, pk, data['status'])
        return Response(OrderSerializer(order).data)


class StorefrontOrderView(APIView):
    """
    POST /storefront/orders
    Public checkout. An optional Idempotency-Key header makes retries safe:
    the same key with the same payload replays the stored response.
    """

    def post(self, request):
        data = _validated(StorefrontOrderCreateSerializer, request.data)
        idempotency_key = request.META.get('HTTP_IDEMPOTENCY_KEY')

        key_or_response, outcome = handle_idempotency(idempotency_key, request.data)
        if outcome == 'HIT':
            return Response(key_or_response, status=status.HTTP_201_CREATED)
        if outcome == 'CONFLICT':
            raise ConflictDetected(key_or_response)

        # The order and the stored replay commit together or not at all.
        try:
            with transaction.atomic():
                order = orders.create_storefront_order(data)
                body = OrderSerializer(order).data
                finalize_idempotency(key_or_response, body)
        except Exception:
            release_idempotency(key_or_response)
            raise

        return Response(body, status=status.HTTP_201_CREATED)


class StorefrontOrderStatusView(APIView):
    """GET /storefront/orders/:orderNumber - short public status."""

    def get(self, request, order_number):
        order = orders.track_order(order_number)
        return Response({
            'orderNumber': order.order_number,
            'status': order.status,
            'totalCents': order.total_cents,
        })


class OrderTrackView(APIView):
    """GET /orders/track/:orderNumber - detailed public tracking."""

    def get(self, request, order_number):
        order = orders.track_order(order_number)
        return Response(OrderTrackingSerializer(order).data)


class HealthView(APIView):
    """GET /health - liveness probe for load balancers."""

    def get(self, request):
        return Response({'ok': True})
