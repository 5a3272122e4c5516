from django.urls import path
from .views import (
    CircuitView,
    OrderPaymentsView,
    PaymentDetailView,
    PaymentsCollectionView,
    RefundView,
    TransactionStatusView,
)
app_name = "payments"

urlpatterns = [
    path("", PaymentsCollectionView.as_view(), name="payments-collection"),
    path("circuit/", CircuitView.as_view(), name="payments-circuit"),
    path("orders/<str:order_id>/", OrderPaymentsView.as_view(), name="payments-by-order"),
    path("orders/<str:order_id>/refund/", RefundView.as_view(), name="payments-refund"),
    path("transactions/<str:transaction_id>/status/", TransactionStatusView.as_view(), name="payments-tx-status"),
    path("<str:payment_id>/", PaymentDetailView.as_view(), name="payments-detail"),
]
