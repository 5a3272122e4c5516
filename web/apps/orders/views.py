"""HTTP views for the orders app.

Views are kept intentionally small: they validate requests (via Pydantic),
map to domain objects, delegate to the ``OrderService`` returned by
``get_order_service()`` and return an HTTP response. Domain error codes are
mapped to status codes here and nowhere else.
"""

import logging

from pydantic import ValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from . import providers
from .domain import OrderError
from .schemas import CreateOrderDTO, OrderReadDTO, UpdateStatusDTO

logger = logging.getLogger("orders")

ERROR_STATUS = {
    "EMPTY_ORDER": status.HTTP_400_BAD_REQUEST,
    "INSUFFICIENT_STOCK": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "RESERVATION_FAILED": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "INVENTORY_UNAVAILABLE": status.HTTP_503_SERVICE_UNAVAILABLE,
    "PAYMENT_FAILED": status.HTTP_402_PAYMENT_REQUIRED,
}


def _order_body(order) -> dict:
    return OrderReadDTO.from_domain(order).model_dump(mode="json")


class OrdersPingView(APIView):
    """Simple health-check endpoint for the orders module."""

    def get(self, request):
        return Response({"ok": True})


class OrdersCollectionView(APIView):
    """List all orders, or create one by running the order saga."""

    throttle_classes = [ScopedRateThrottle]

    def get_throttles(self):
        # DRF evaluates throttles in initial(), before get/post
        self.throttle_scope = "orders_list" if self.request.method == "GET" else "orders_create"
        return [throttle() for throttle in self.throttle_classes]

    def get(self, request):
        orders = providers.get_order_service().get_all_orders()
        results = [_order_body(o) for o in sorted(orders, key=lambda o: o.created_at, reverse=True)]
        return Response({"count": len(results), "results": results}, status=status.HTTP_200_OK)

    def post(self, request):
        """Create a new order.

        Returns:
            Response: One of the following responses.
            - 201 with the order body when the order is PAID.
            - 400 for DTO validation errors.
            - 422 with {detail: "INSUFFICIENT_STOCK" | "RESERVATION_FAILED"}
              when stock cannot be checked out.
            - 402 with {detail: "PAYMENT_FAILED", order_id} when payment
              fails; the order stays readable as FAILED.
            - 503 with {detail: "INVENTORY_UNAVAILABLE" | "UPSTREAM_UNAVAILABLE"}
              when a dependency misbehaves.
        """
        try:
            dto = CreateOrderDTO.model_validate(request.data)
        except ValidationError as e:
            return Response({"detail": "VALIDATION_ERROR", "errors": e.errors(include_url=False, include_context=False)},
                            status=status.HTTP_400_BAD_REQUEST)

        service = providers.get_order_service()
        try:
            order = service.create_order(
                user_id=dto.user_id,
                items=[i.to_domain() for i in dto.items],
                shipping_address=dto.shipping_address,
                payment_method=dto.payment_method,
            )
        except OrderError as e:
            body = {"detail": str(e), "message": e.detail}
            if getattr(e, "order_id", None):
                body["order_id"] = e.order_id
            return Response(body, status=ERROR_STATUS.get(str(e), status.HTTP_400_BAD_REQUEST))
        except Exception:
            logger.exception("unexpected error creating order")
            return Response({"detail": "UPSTREAM_UNAVAILABLE"}, status=status.HTTP_503_SERVICE_UNAVAILABLE)

        return Response(_order_body(order), status=status.HTTP_201_CREATED)


class RetrieveOrderView(APIView):
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "orders_detail"

    def get(self, request, oid: str):
        order = providers.get_order_service().get_order(oid)
        if order is None:
            return Response({"detail": "NOT_FOUND"}, status=status.HTTP_404_NOT_FOUND)
        return Response(_order_body(order), status=status.HTTP_200_OK)


class UserOrdersView(APIView):
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "orders_list"

    def get(self, request, user_id: str):
        orders = providers.get_order_service().get_user_orders(user_id)
        return Response([_order_body(o) for o in orders], status=status.HTTP_200_OK)


class OrderStatusView(APIView):
    """Externally driven status updates (shipping, delivery, ...)."""

    def put(self, request, oid: str):
        data = request.data if request.data else request.query_params
        value = data.get("status") if isinstance(data, dict) else None
        try:
            dto = UpdateStatusDTO.model_validate({"status": value})
        except ValidationError:
            return Response({"detail": "INVALID_STATUS"}, status=status.HTTP_400_BAD_REQUEST)
        if not providers.get_order_service().update_order_status(oid, dto.status):
            return Response({"detail": "NOT_FOUND"}, status=status.HTTP_404_NOT_FOUND)
        return Response({"id": oid, "status": dto.status.value}, status=status.HTTP_200_OK)


class CancelOrderView(APIView):
    def post(self, request, oid: str):
        if providers.get_order_service().cancel_order(oid):
            return Response({"id": oid, "status": "CANCELLED"}, status=status.HTTP_200_OK)
        return Response({"detail": "CANNOT_CANCEL"}, status=status.HTTP_400_BAD_REQUEST)
