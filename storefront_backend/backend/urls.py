# backend/urls.py
"""
PROJECT URLS

Everything is served under /api/:

- /api/public/...   checkout start, payment-page return, gateway webhook (AllowAny)
- /api/admin/...    order transitions and refund review (capability-gated)
- /api/orders/...   the signed-in customer's orders and return requests
- /api/auth/...     JWT pair + current user profile
- /api/health/      liveness + DB probe

The Django admin mount point comes from settings.ADMIN_PATH so it can be moved
off /admin/ in production.
"""

from __future__ import annotations

from django.conf import settings
from django.contrib import admin
from django.db import connections
from django.db.utils import DatabaseError
from django.urls import include, path
from django.views.generic import RedirectView
from drf_spectacular.utils import OpenApiResponse, extend_schema
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

API_INDEX = {
    "message": "Storefront Backend API is running",
    "auth": {
        "me": "/api/auth/me/",
        "jwt_create": "/api/auth/jwt/create/",
        "jwt_refresh": "/api/auth/jwt/refresh/",
    },
    "docs": {"swagger": "/api/docs/", "schema": "/api/schema/"},
    "modules": {
        "admin_orders": "/api/admin/orders/",
        "admin_refunds": "/api/admin/refunds/",
        "my_orders": "/api/orders/",
        "public": "/api/public/",
    },
}


@extend_schema(responses={200: OpenApiResponse(description="Route index")})
@api_view(["GET"])
@permission_classes([AllowAny])
def api_root(request):
    return Response(API_INDEX)


@extend_schema(
    responses={
        200: OpenApiResponse(description="Application and database reachable"),
        503: OpenApiResponse(description="Database unreachable"),
    },
)
@api_view(["GET"])
@permission_classes([AllowAny])
def health_check(request):
    try:
        with connections["default"].cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
    except DatabaseError as exc:
        return Response(
            {"status": "degraded", "db": "down", "error": str(exc)},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    return Response({"status": "ok", "db": "ok"})


# Keep the trailing slash; never publish the production value.
ADMIN_PATH = getattr(settings, "ADMIN_PATH", "admin/")
if not ADMIN_PATH.endswith("/"):
    ADMIN_PATH = f"{ADMIN_PATH}/"


api_urlpatterns = [
    path("", api_root, name="api-root"),
    path("health/", health_check, name="health-check"),
    # OpenAPI
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),
    # Auth
    path("auth/jwt/create/", TokenObtainPairView.as_view(), name="jwt-create"),
    path("auth/jwt/refresh/", TokenRefreshView.as_view(), name="jwt-refresh"),
    path("auth/", include("users.urls")),
    # Staff + customer order APIs
    path("", include("orders.api.urls")),
    # Storefront checkout + gateway callbacks
    path("public/", include("public.urls")),
]

urlpatterns = [
    path(ADMIN_PATH, admin.site.urls),
    path("", RedirectView.as_view(url="/api/docs/", permanent=False), name="root"),
    path("api/", include(api_urlpatterns)),
]
