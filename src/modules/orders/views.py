"""Order API views.

Exposes ``OrderService`` over HTTP with a DRF ``GenericViewSet``.
Domain exceptions are caught and translated into HTTP status codes; the
view never swallows generic exceptions.
"""

from __future__ import annotations

from typing import Any

import structlog
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.permissions import (
    AllowAny,
    BasePermission,
    IsAdminUser,
    IsAuthenticated,
)
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.carts.repositories.django_repository import CartDjangoRepository
from modules.notifications.services import EmailNotificationService
from modules.orders.exceptions import (
    InsufficientStock,
    InvalidOrderStatus,
    OrderNotFound,
    OrderValidationError,
    PlacementTimeout,
    ProductNotFound,
)
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    AdminOrderSerializer,
    GuestPlaceOrderSerializer,
    OrderListSerializer,
    OrderSerializer,
    OrderStatusSerializer,
    OrderUpdateSerializer,
    PlaceOrderSerializer,
)
from modules.orders.services import OrderService, build_place_order_dto
from modules.products.ledger import StockLedger
from modules.products.repositories.django_repository import ProductDjangoRepository

logger = structlog.get_logger(__name__)

PUBLIC_ACTIONS = {"guest", "track", "track_by_email"}
ADMIN_ACTIONS = {"list", "update", "partial_update", "set_status", "destroy"}


def _not_found(message: str = "Order not found.") -> Response:
    return Response({"detail": message}, status=status.HTTP_404_NOT_FOUND)


def placement_error_response(exc: Exception) -> Response:
    """Map a placement failure to its HTTP response."""
    if isinstance(exc, InsufficientStock):
        return Response(
            {
                "detail": str(exc),
                "product_id": str(exc.product_id),
                "product_name": exc.product_name,
                "requested": exc.requested,
                "available": exc.available,
            },
            status=status.HTTP_409_CONFLICT,
        )
    if isinstance(exc, ProductNotFound):
        return _not_found(str(exc))
    if isinstance(exc, PlacementTimeout):
        return Response(
            {"detail": str(exc)}, status=status.HTTP_504_GATEWAY_TIMEOUT
        )
    return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Uses ``OrderService`` with injected repositories.  Does **not** extend
    ``ModelViewSet``: all ORM access goes through the service/repository
    layer.
    """

    queryset = Order.objects.none()
    filterset_class = OrderFilter
    ordering_fields = ["created_at", "total", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = OrderService(
            order_repository=OrderDjangoRepository(),
            product_repository=ProductDjangoRepository(),
            stock_ledger=StockLedger(),
            cart_repository=CartDjangoRepository(),
            notifier=EmailNotificationService(),
        )

    def get_permissions(self) -> list[BasePermission]:
        if self.action in PUBLIC_ACTIONS:
            return [AllowAny()]
        if self.action in ADMIN_ACTIONS:
            return [IsAdminUser()]
        return [IsAuthenticated()]

    def get_throttles(self) -> list[BaseThrottle]:
        """Throttling scope per action."""
        throttle_scope: str | None
        if self.action in {"create", "guest"}:
            throttle_scope = "order_creation"
        elif self.action in {"list", "my", "retrieve"}:
            throttle_scope = "order_listing"
        elif self.action in {"track", "track_by_email"}:
            throttle_scope = "order_tracking"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    def get_queryset(self):
        return self._service.list_orders()

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/"""
        serializer = PlaceOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._place(
            dict(serializer.validated_data), request, user_id=request.user.pk
        )

    @action(detail=False, methods=["post"])
    def guest(self, request: Request) -> Response:
        """POST /api/v1/orders/guest/"""
        serializer = GuestPlaceOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._place(serializer.to_placement_data(), request, user_id=None)

    def _place(
        self, data: dict[str, Any], request: Request, user_id: int | None
    ) -> Response:
        data["items"] = [dict(item) for item in data["items"]]
        user = request.user if user_id is not None else None
        try:
            dto = build_place_order_dto(data, user_id=user_id)
            result = self._service.place_order(dto, user=user)
        except (
            OrderValidationError,
            ProductNotFound,
            InsufficientStock,
            PlacementTimeout,
        ) as exc:
            return placement_error_response(exc)

        out = dict(OrderSerializer(result.order).data)
        out["warnings"] = list(result.warnings)
        return Response(out, status=status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/ (admin)

        Filtering is handled by ``OrderFilter``, ordering by
        ``OrderingFilter``.  Results are paginated.
        """
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        serializer = OrderListSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    @action(detail=False, methods=["get"])
    def my(self, request: Request) -> Response:
        """GET /api/v1/orders/my/"""
        orders = self._service.list_user_orders(request.user.pk)
        return Response(OrderSerializer(orders, many=True).data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/ (owner or admin)"""
        try:
            order = self._service.get_order(pk)
        except OrderNotFound:
            return _not_found()

        user = request.user
        if not user.is_staff and order.user_id != user.pk:
            return Response(
                {"detail": "Access denied."}, status=status.HTTP_403_FORBIDDEN
            )
        serializer_class = AdminOrderSerializer if user.is_staff else OrderSerializer
        return Response(serializer_class(order).data)

    @action(detail=False, methods=["get"], url_path=r"track/(?P<reference>[^/]+)")
    def track(self, request: Request, reference: str) -> Response:
        """GET /api/v1/orders/track/{id_or_number}/ (public)"""
        try:
            order = self._service.track_order(reference)
        except OrderNotFound:
            return _not_found()
        return Response(OrderSerializer(order).data)

    @action(
        detail=False,
        methods=["get"],
        url_path=r"track/email/(?P<email>[^/]+)",
    )
    def track_by_email(self, request: Request, email: str) -> Response:
        """GET /api/v1/orders/track/email/{email}/ (public)"""
        orders = list(self._service.list_orders_by_email(email))
        if not orders:
            return _not_found("No orders found.")
        return Response(OrderSerializer(orders, many=True).data)

    # ------------------------------------------------------------------
    # Administrative changes
    # ------------------------------------------------------------------

    def update(self, request: Request, pk: str | None = None) -> Response:
        """PUT|PATCH /api/v1/orders/{pk}/ (admin)"""
        serializer = OrderUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            result = self._service.update_order(
                pk, dict(serializer.validated_data), user=request.user
            )
        except OrderNotFound:
            return _not_found()
        except (OrderValidationError, InvalidOrderStatus) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return self._status_change_response(result)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        return self.update(request, pk)

    @action(detail=True, methods=["put", "patch"], url_path="status")
    def set_status(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/v1/orders/{pk}/status/ (admin)"""
        serializer = OrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        try:
            result = self._service.apply_status(
                pk,
                data.pop("status"),
                notes=data.pop("notes", ""),
                user=request.user,
                **data,
            )
        except OrderNotFound:
            return _not_found()
        except (InvalidOrderStatus, OrderValidationError) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return self._status_change_response(result)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/orders/{pk}/ (admin purge, stock untouched)"""
        try:
            self._service.delete_order(pk)
        except OrderNotFound:
            return _not_found()
        logger.info("order.purged", order_id=pk, user_id=request.user.pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @staticmethod
    def _status_change_response(result) -> Response:
        out = dict(AdminOrderSerializer(result.order).data)
        out["stock_restored"] = result.stock_restored
        out["warnings"] = list(result.warnings)
        return Response(out)
