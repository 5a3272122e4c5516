from django.urls import path
from .views import (
    QuickStartView,
    StressTestView,
    TrafficConfigView,
    TrafficStartView,
    TrafficStatusView,
    TrafficStopView,
)
app_name = "traffic"

urlpatterns = [
    path("start/", TrafficStartView.as_view(), name="traffic-start"),
    path("stop/", TrafficStopView.as_view(), name="traffic-stop"),
    path("status/", TrafficStatusView.as_view(), name="traffic-status"),
    path("config/", TrafficConfigView.as_view(), name="traffic-config"),
    path("quick-start/", QuickStartView.as_view(), name="traffic-quick-start"),
    path("stress-test/", StressTestView.as_view(), name="traffic-stress-test"),
]
