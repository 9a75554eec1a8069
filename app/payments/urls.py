"""
URL configuration for the payments app.

Routes:
    - POST /orders/ - Create a session order
    - GET /sessions/<id>/ - Session detail
    - POST /sessions/<id>/complete/ - Complete a session
    - POST /settlements/run/ - Run settlement (staff)
    - GET /wallet/ - Caller's wallet
    - GET, POST /payouts/ - List or request payouts
    - GET /transactions/ - Caller's transactions
    - POST /webhooks/razorpay/ - Razorpay webhook endpoint
    - POST /webhooks/paypal/ - PayPal webhook endpoint

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.
"""

from django.urls import path

from payments import views
from payments.webhooks.views import paypal_webhook, razorpay_webhook

app_name = "payments"

urlpatterns = [
    path("orders/", views.OrderCreateView.as_view(), name="order_create"),
    path("sessions/<uuid:session_id>/", views.SessionDetailView.as_view(), name="session_detail"),
    path(
        "sessions/<uuid:session_id>/complete/",
        views.SessionCompleteView.as_view(),
        name="session_complete",
    ),
    path("settlements/run/", views.SettlementRunView.as_view(), name="settlement_run"),
    path("wallet/", views.WalletView.as_view(), name="wallet"),
    path("payouts/", views.PayoutListCreateView.as_view(), name="payouts"),
    path("transactions/", views.TransactionListView.as_view(), name="transactions"),
    # Webhook endpoints
    path("webhooks/razorpay/", razorpay_webhook, name="razorpay_webhook"),
    path("webhooks/paypal/", paypal_webhook, name="paypal_webhook"),
]
