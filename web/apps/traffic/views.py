"""HTTP views controlling the traffic generator.

``start`` answers 409 when a run is already active; ``stop`` always
answers 200 and reports whether anything was running.
"""

from pydantic import ValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from .generator import QUICK_START_CONFIG, STRESS_TEST_CONFIG
from .providers import get_load_generator
from .schemas import TrafficConfigDTO


def _validation_error(e: ValidationError) -> Response:
    return Response({"detail": "VALIDATION_ERROR", "errors": e.errors(include_url=False, include_context=False)},
                    status=status.HTTP_400_BAD_REQUEST)


def _start(config, **extra) -> Response:
    if not get_load_generator().start(config):
        return Response({"detail": "ALREADY_RUNNING"}, status=status.HTTP_409_CONFLICT)
    return Response({"status": "started", "config": config.as_dict(), **extra}, status=status.HTTP_200_OK)


class TrafficStartView(APIView):
    def post(self, request):
        try:
            dto = TrafficConfigDTO.model_validate(request.data or {})
        except ValidationError as e:
            return _validation_error(e)
        return _start(dto.to_config())


class TrafficStopView(APIView):
    def post(self, request):
        stopped = get_load_generator().stop()
        return Response({"status": "stopped" if stopped else "already_stopped"}, status=status.HTTP_200_OK)


class TrafficStatusView(APIView):
    def get(self, request):
        return Response(get_load_generator().get_stats().as_dict())


class TrafficConfigView(APIView):
    def get(self, request):
        return Response(get_load_generator().config.as_dict())

    def put(self, request):
        try:
            dto = TrafficConfigDTO.model_validate(request.data or {})
        except ValidationError as e:
            return _validation_error(e)
        config = dto.to_config()
        get_load_generator().update_config(config)
        return Response({"status": "updated", "config": config.as_dict()})


class QuickStartView(APIView):
    def post(self, request):
        return _start(QUICK_START_CONFIG, pattern="moderate load, high variability")


class StressTestView(APIView):
    def post(self, request):
        return _start(STRESS_TEST_CONFIG, pattern="high load, frequent bursts")
