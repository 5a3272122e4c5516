from django.urls import path
from .views import ChaosConfigView, ChaosDisableView, ChaosEnableView, ChaosQuickTestView, ChaosStatusView
app_name = "chaos"

urlpatterns = [
    path("enable/", ChaosEnableView.as_view(), name="chaos-enable"),
    path("disable/", ChaosDisableView.as_view(), name="chaos-disable"),
    path("status/", ChaosStatusView.as_view(), name="chaos-status"),
    path("config/", ChaosConfigView.as_view(), name="chaos-config"),
    path("quick-test/", ChaosQuickTestView.as_view(), name="chaos-quick-test"),
]
