# drivers/views/requests.py

from django.conf import settings
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from ..permissions import IsDriver
from assistance.models import RequestStatus
from assistance.serializers import (
    ServiceRequestSerializer,
    ServiceRequestCreateSerializer,
    ServiceRequestCancelSerializer,
)
from common.responses import service_error_response, service_result_response
from services.request_lifecycle import (
    AssistanceError,
    create_service_request,
    cancel_service_request,
    get_active_request,
)
from services.negotiation import accept_offer

CURRENT_REQUEST_MESSAGES = {
    RequestStatus.PENDING: "Looking for mechanics nearby...",
    RequestStatus.OFFERING: "Mechanics are sending offers.",
    RequestStatus.ACCEPTED: "Your mechanic is getting ready.",
    RequestStatus.EN_ROUTE: "Your mechanic is on the way!",
    RequestStatus.ARRIVED: "Your mechanic has arrived.",
}


def _serialize(service_request, request):
    context = {"request": request, "viewer": request.user}
    return ServiceRequestSerializer(service_request, context=context).data


class DriverCreateRequestView(APIView):
    """
    POST: Driver opens an assistance request at the breakdown site.
    """
    permission_classes = [IsAuthenticated, IsDriver]

    def post(self, request):
        serializer = ServiceRequestCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = create_service_request(
                request.user,
                problem_description=data["problem_description"],
                latitude=data["latitude"],
                longitude=data["longitude"],
            )
        except AssistanceError as exc:
            return service_error_response(exc)

        return service_result_response(
            result, {"request": _serialize(result.request, request)}, status=201
        )


class DriverCurrentRequestView(APIView):
    """
    GET: Driver polling endpoint for the active request and its offers.
    """
    permission_classes = [IsAuthenticated, IsDriver]

    def get(self, request):
        poll_interval = getattr(settings, "CLIENT_POLL_INTERVAL_SECONDS", 3)
        try:
            service_request = get_active_request(request.user)
        except AssistanceError as exc:
            return service_error_response(exc)

        if service_request is None:
            return Response({
                "has_active_request": False,
                "message": "No active request found",
                "poll_interval_seconds": poll_interval,
            })

        return Response({
            "has_active_request": True,
            "request": _serialize(service_request, request),
            "status": service_request.status,
            "mechanic_assigned": service_request.mechanic_id is not None,
            "message": CURRENT_REQUEST_MESSAGES.get(service_request.status, ""),
            "poll_interval_seconds": poll_interval,
        })


class DriverCancelRequestView(APIView):
    """
    POST: Driver cancels their request.
    """
    permission_classes = [IsAuthenticated, IsDriver]

    def post(self, request, request_id: int):
        serializer = ServiceRequestCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = cancel_service_request(
                request.user, request_id, reason=serializer.validated_data.get("reason", "")
            )
        except AssistanceError as exc:
            return service_error_response(exc)

        return service_result_response(result, {"request": _serialize(result.request, request)})


class DriverAcceptOfferView(APIView):
    """
    POST: Driver accepts an offer on their request at its current price.
    """
    permission_classes = [IsAuthenticated, IsDriver]

    def post(self, request, request_id: int, offer_id: int):
        try:
            result = accept_offer(request.user, request_id, offer_id)
        except AssistanceError as exc:
            return service_error_response(exc)

        return service_result_response(result, {"request": _serialize(result.request, request)})
