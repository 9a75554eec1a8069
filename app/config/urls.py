"""
URL configuration for the escrow engine.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/auth/token/            - Obtain JWT pair (email + password)
    /api/v1/auth/token/refresh/    - Refresh access token
    /api/v1/payments/              - Payment endpoints
        orders/                    - Create a session order (POST)
        sessions/{id}/             - Session detail (GET)
        sessions/{id}/complete/    - Submit satisfaction and finalize split (POST)
        settlements/run/           - Run a settlement batch or settle one session (POST, staff)
        wallet/                    - Caller's wallet balances (GET)
        transactions/              - Caller's transaction history (GET)
        payouts/                   - List (GET) or request (POST) payouts
        webhooks/razorpay/         - Razorpay webhook endpoint (POST)
        webhooks/paypal/           - PayPal webhook endpoint (POST)
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
api_v1_patterns = [
    path("auth/token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("auth/token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("payments/", include("payments.urls")),
]

urlpatterns = [
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("admin/", admin.site.urls),
    path("health/", health_check, name="health_check"),
    path("api/v1/", include(api_v1_patterns)),
]

admin.site.site_header = "Escrow Admin"
admin.site.site_title = "Escrow Admin Portal"
admin.site.index_title = "Sessions, wallets and payouts"
