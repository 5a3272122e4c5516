"""HTTP views for the payment ledger, refunds and breaker state."""

from pydantic import ValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.orders import providers

from .domain import PaymentNotFound
from .schemas import PaymentReadDTO, PaymentResultDTO, RefundDTO


def _rows(payments) -> list[dict]:
    return [PaymentReadDTO.from_domain(p).model_dump(mode="json") for p in payments]


class PaymentsCollectionView(APIView):
    def get(self, request):
        return Response(_rows(providers.get_payment_orchestrator().get_all_payments()))


class PaymentDetailView(APIView):
    def get(self, request, payment_id: str):
        payment = providers.get_payment_orchestrator().get_payment(payment_id)
        if payment is None:
            return Response({"detail": "NOT_FOUND"}, status=status.HTTP_404_NOT_FOUND)
        return Response(PaymentReadDTO.from_domain(payment).model_dump(mode="json"))


class OrderPaymentsView(APIView):
    def get(self, request, order_id: str):
        return Response(_rows(providers.get_payment_orchestrator().get_payments_by_order(order_id)))


class RefundView(APIView):
    """Refund the successful payment of an order.

    Returns 200 with the gateway result (``success`` may be false when the
    gateway rejects the refund), 400 on validation errors and 404 when the
    order has no refundable payment.
    """

    def post(self, request, order_id: str):
        try:
            dto = RefundDTO.model_validate(request.data)
        except ValidationError as e:
            return Response({"detail": "VALIDATION_ERROR", "errors": e.errors(include_url=False, include_context=False)},
                            status=status.HTTP_400_BAD_REQUEST)
        try:
            result = providers.get_payment_orchestrator().refund_payment(order_id, dto.amount, dto.reason)
        except PaymentNotFound as e:
            return Response({"detail": str(e), "message": e.detail}, status=status.HTTP_404_NOT_FOUND)
        return Response(PaymentResultDTO.from_domain(result).model_dump(mode="json"))


class TransactionStatusView(APIView):
    def get(self, request, transaction_id: str):
        st = providers.get_payment_orchestrator().check_status(transaction_id)
        return Response({"transaction_id": transaction_id, "status": st})


class CircuitView(APIView):
    def get(self, request):
        return Response(providers.get_payment_orchestrator().breaker.snapshot())
