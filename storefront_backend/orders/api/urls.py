# orders/api/urls.py

"""
ORDERS API URLS

Mounted at /api/ in backend/urls.py:

- Staff:
    /api/admin/orders/                         list / retrieve
    /api/admin/orders/<uuid>/<action>/         transitions, tracking, refunds
    /api/admin/refunds/                        refund queue
    /api/admin/refunds/<uuid>/<action>/        process / reject / cancel

- Customer:
    /api/orders/                               my orders
    /api/orders/<uuid>/return-request/
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from orders.views import CustomerOrderViewSet, OrderAdminViewSet, RefundViewSet

app_name = "orders"

router = DefaultRouter()
router.register(r"admin/orders", OrderAdminViewSet, basename="admin-orders")
router.register(r"admin/refunds", RefundViewSet, basename="admin-refunds")
router.register(r"orders", CustomerOrderViewSet, basename="customer-orders")

urlpatterns = [
    path("", include(router.urls)),
]
