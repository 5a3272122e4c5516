from django.urls import include, path

urlpatterns = [
    path("api/orders/", include("apps.orders.urls")),
    path("api/payments/", include("apps.payments.urls")),
    path("api/traffic/", include("apps.traffic.urls")),
    path("api/chaos/", include("apps.chaos.urls")),
    path("api/", include("apps.monitoring.urls")),
]
