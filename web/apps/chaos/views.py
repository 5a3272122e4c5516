"""HTTP views flipping the process-wide fault-injection toggle."""

from dataclasses import asdict

from pydantic import ValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from .injector import QUICK_TEST_CONFIG, get_fault_injector
from .schemas import AssaultConfigDTO


class ChaosEnableView(APIView):
    def post(self, request):
        get_fault_injector().enable()
        return Response({"status": "enabled"})


class ChaosDisableView(APIView):
    def post(self, request):
        get_fault_injector().disable()
        return Response({"status": "disabled"})


class ChaosStatusView(APIView):
    def get(self, request):
        return Response(get_fault_injector().status())


class ChaosConfigView(APIView):
    def put(self, request):
        try:
            dto = AssaultConfigDTO.model_validate(request.data or {})
        except ValidationError as e:
            return Response({"detail": "VALIDATION_ERROR", "errors": e.errors(include_url=False, include_context=False)},
                            status=status.HTTP_400_BAD_REQUEST)
        config = dto.to_config()
        get_fault_injector().configure(config)
        return Response({"status": "updated", "config": asdict(config)})


class ChaosQuickTestView(APIView):
    """Enable injection with a medium-intensity preset."""

    def post(self, request):
        injector = get_fault_injector()
        injector.configure(QUICK_TEST_CONFIG)
        injector.enable()
        return Response({"status": "enabled", "config": asdict(QUICK_TEST_CONFIG)})
