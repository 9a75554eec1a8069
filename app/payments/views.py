"""
DRF views for the payments app.

This module provides API views for:
- Session orders and completion
- Manual settlement runs (staff)
- Wallet balances, payouts and transaction history

Related files:
    - services/: OrderService, SettlementService, PayoutService
    - ledger/: SessionLedger (completion)
    - serializers.py: Request/response serializers
    - urls.py: URL routing

Endpoints:
    POST /api/v1/payments/orders/                  - Create a session order
    GET  /api/v1/payments/sessions/<id>/           - Session detail
    POST /api/v1/payments/sessions/<id>/complete/  - Complete with satisfaction score
    POST /api/v1/payments/settlements/run/         - Run settlement (staff)
    GET  /api/v1/payments/wallet/                  - Caller's wallet
    GET  /api/v1/payments/payouts/                 - Caller's payouts
    POST /api/v1/payments/payouts/                 - Request a payout
    GET  /api/v1/payments/transactions/            - Caller's transactions
    POST /api/v1/payments/webhooks/razorpay/       - Razorpay webhook
    POST /api/v1/payments/webhooks/paypal/         - PayPal webhook

Errors use the {"success": false, "error": ..., "error_code": ...} shape
with the status carried by the exception.
"""

from __future__ import annotations

import logging

from django.db.models import Q
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import BaseApplicationError, PermissionDeniedError, exception_status
from core.services import ServiceResult

from payments.exceptions import PaymentNotFoundError
from payments.ledger import SessionLedger
from payments.models import Payout, Session, Transaction, Wallet
from payments.serializers import (
    OrderCreateSerializer,
    OrderResponseSerializer,
    PayoutRequestSerializer,
    PayoutSerializer,
    SessionCompleteSerializer,
    SessionSerializer,
    SettlementResultSerializer,
    SettlementRunSerializer,
    TransactionSerializer,
    WalletSerializer,
)
from payments.services import OrderService, PayoutService, SettlementService

logger = logging.getLogger(__name__)


class PaymentAPIView(APIView):
    """
    Base view that renders application errors in the shared error shape.

    Unexpected exceptions are logged and returned as a generic 500 so no
    internals reach the client.
    """

    permission_classes = [IsAuthenticated]

    def handle_exception(self, exc):
        if isinstance(exc, BaseApplicationError):
            return Response(
                ServiceResult.from_exception(exc).to_response(),
                status=exception_status(exc),
            )
        try:
            return super().handle_exception(exc)
        except Exception:
            logger.error(
                f"Unhandled error in {type(self).__name__}: {type(exc).__name__}",
                exc_info=True,
            )
            return Response(
                ServiceResult.from_exception(exc).to_response(),
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )


def _session_for(user, session_id) -> Session:
    """A session visible to this user (seeker, host or staff)."""
    queryset = Session.objects.all()
    if not user.is_staff:
        queryset = queryset.filter(Q(seeker=user) | Q(host=user))
    session = queryset.filter(id=session_id).first()
    if session is None:
        raise PaymentNotFoundError(
            "Session not found",
            error_code="SESSION_NOT_FOUND",
        )
    return session


# =============================================================================
# Sessions
# =============================================================================


class OrderCreateView(PaymentAPIView):
    """
    Create a gateway order and the session that tracks it.

    POST /api/v1/payments/orders/

    Request body:
        {"host_id": 7, "session_type": "voice_call", "gateway": "razorpay", "currency": "INR"}
    """

    @extend_schema(
        summary="Create a session order",
        request=OrderCreateSerializer,
        responses={
            201: OrderResponseSerializer,
            400: OpenApiResponse(description="Invalid request"),
            404: OpenApiResponse(description="Host not found"),
            502: OpenApiResponse(description="Gateway unavailable"),
        },
        tags=["Payments"],
    )
    def post(self, request):
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = OrderService.create_order(seeker_id=request.user.id, **serializer.validated_data)
        output = OrderResponseSerializer(
            {"session": result.session, "approval_url": result.approval_url}
        )
        return Response(output.data, status=status.HTTP_201_CREATED)


class SessionDetailView(PaymentAPIView):
    @extend_schema(
        summary="Get a session",
        responses={200: SessionSerializer, 404: OpenApiResponse(description="Not found")},
        tags=["Payments"],
    )
    def get(self, request, session_id):
        return Response(SessionSerializer(_session_for(request.user, session_id)).data)


class SessionCompleteView(PaymentAPIView):
    """
    Complete a session with the seeker's satisfaction score.

    POST /api/v1/payments/sessions/<id>/complete/

    Only the seeker (or staff) may complete a session.
    """

    @extend_schema(
        summary="Complete a session",
        request=SessionCompleteSerializer,
        responses={
            200: SessionSerializer,
            400: OpenApiResponse(description="Invalid score"),
            404: OpenApiResponse(description="Session not found"),
            409: OpenApiResponse(description="Session already completed or not paid"),
        },
        tags=["Payments"],
    )
    def post(self, request, session_id):
        session = _session_for(request.user, session_id)
        if session.seeker_id != request.user.id and not request.user.is_staff:
            raise PermissionDeniedError(
                "Only the seeker can complete this session",
                error_code="NOT_SESSION_SEEKER",
            )

        serializer = SessionCompleteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = SessionLedger.complete_session(
            session.id, serializer.validated_data["satisfaction_score"]
        )
        return Response(SessionSerializer(result.session).data)


# =============================================================================
# Settlement
# =============================================================================


class SettlementRunView(PaymentAPIView):
    """
    Trigger settlement by hand.

    POST /api/v1/payments/settlements/run/

    With session_id only that session is settled; otherwise one batch runs.
    """

    permission_classes = [IsAdminUser]

    @extend_schema(
        summary="Run settlement",
        request=SettlementRunSerializer,
        responses={200: SettlementResultSerializer(many=True)},
        tags=["Payments"],
    )
    def post(self, request):
        serializer = SettlementRunSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if "session_id" in data:
            results = [
                SettlementService.settle_one(data["session_id"], hold_hours=data.get("hold_hours"))
            ]
        else:
            results = SettlementService.run_batch(hold_hours=data.get("hold_hours"))

        return Response(
            {
                "success": True,
                "results": SettlementResultSerializer(results, many=True).data,
            }
        )


# =============================================================================
# Wallet & Payouts
# =============================================================================


class WalletView(PaymentAPIView):
    @extend_schema(
        summary="Get my wallet",
        responses={200: WalletSerializer, 404: OpenApiResponse(description="No wallet yet")},
        tags=["Payments"],
    )
    def get(self, request):
        wallet = Wallet.objects.filter(host=request.user).first()
        if wallet is None:
            raise PaymentNotFoundError("Wallet not found", error_code="WALLET_NOT_FOUND")
        return Response(WalletSerializer(wallet).data)


class PayoutListCreateView(PaymentAPIView):
    """
    List or request payouts.

    POST /api/v1/payments/payouts/

    Request body:
        {"amount": 15000, "method": "razorpay", "currency": "INR"}
    """

    @extend_schema(
        summary="List my payouts",
        responses={200: PayoutSerializer(many=True)},
        tags=["Payments"],
    )
    def get(self, request):
        payouts = Payout.objects.filter(wallet__host=request.user).order_by("-created_at")
        paginator = PageNumberPagination()
        page = paginator.paginate_queryset(payouts, request, view=self)
        return paginator.get_paginated_response(PayoutSerializer(page, many=True).data)

    @extend_schema(
        summary="Request a payout",
        request=PayoutRequestSerializer,
        responses={
            201: PayoutSerializer,
            400: OpenApiResponse(description="Invalid amount, below minimum or destination missing"),
            404: OpenApiResponse(description="No wallet"),
            409: OpenApiResponse(description="Another payout is in progress"),
            502: OpenApiResponse(description="Gateway rejected the payout"),
        },
        tags=["Payments"],
    )
    def post(self, request):
        serializer = PayoutRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        payout = PayoutService.request_payout(host_id=request.user.id, **serializer.validated_data)
        return Response(PayoutSerializer(payout).data, status=status.HTTP_201_CREATED)


class TransactionListView(PaymentAPIView):
    """
    List the caller's transactions, newest first.

    GET /api/v1/payments/transactions/
    """

    @extend_schema(
        summary="List my transactions",
        responses={200: TransactionSerializer(many=True)},
        tags=["Payments"],
    )
    def get(self, request):
        transactions = Transaction.objects.filter(user=request.user).order_by("-created_at")
        paginator = PageNumberPagination()
        page = paginator.paginate_queryset(transactions, request, view=self)
        return paginator.get_paginated_response(TransactionSerializer(page, many=True).data)
