from django.urls import path
from .views import OrdersPingView
from .views import OrdersCollectionView, RetrieveOrderView, UserOrdersView, OrderStatusView, CancelOrderView
app_name = "orders"

urlpatterns = [
    path("ping/", OrdersPingView.as_view(), name="ping"),
    path("", OrdersCollectionView.as_view(), name="orders-collection"),  # GET list / POST create
    path("user/<str:user_id>/", UserOrdersView.as_view(), name="orders-by-user"),
    path("<str:oid>/", RetrieveOrderView.as_view(), name="orders-detail"),
    path("<str:oid>/status/", OrderStatusView.as_view(), name="orders-status"),
    path("<str:oid>/cancel/", CancelOrderView.as_view(), name="orders-cancel"),
]
