from django.urls import path
from .views import (
    CategoryDetailView,
    CategoryListView,
    MeView,
    OrderDetailView,
    OrderListView,
    OrderStatusView,
    OrderTrackView,
    ProductDetailView,
    ProductListView,
    StoreListView,
    StorefrontOrderStatusView,
    StorefrontOrderView,
)

urlpatterns = [
    path('auth/me', MeView.as_view(), name='auth-me'),
    path('stores', StoreListView.as_view(), name='store-list'),

    path('categories', CategoryListView.as_view(), name='category-list'),
    path('categories/<str:pk>', CategoryDetailView.as_view(), name='category-detail'),
    path('products', ProductListView.as_view(), name='product-list'),
    path('products/<str:pk>', ProductDetailView.as_view(), name='product-detail'),

    # Operator channel
    path('orders', OrderListView.as_view(), name='order-list'),
    path('orders/track/<str:order_number>', OrderTrackView.as_view(), name='order-track'),
    path('orders/<str:pk>', OrderDetailView.as_view(), name='order-detail'),
    path('orders/<str:pk>/status', OrderStatusView.as_view(), name='order-status'),

    # Public storefront channel
    path('storefront/orders', StorefrontOrderView.as_view(), name='storefront-order-create'),
    path('storefront/orders/<str:order_number>', StorefrontOrderStatusView.as_view(), name='storefront-order-status'),
]
