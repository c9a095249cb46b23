from django.conf import settings
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from mechanics.permissions import IsMechanic
from mechanics.serializers import (
    MechanicProfileSerializer,
    MechanicStatusSerializer,
)
from mechanics import services
from assistance.serializers import (
    OfferSerializer,
    OfferSubmitSerializer,
    PriceRollbackSerializer,
    CounterOfferSerializer,
    ServiceRequestSerializer,
    StatusUpdateSerializer,
)
from common.responses import service_error_response, service_result_response
from services.matching import open_requests_for_mechanic, request_history
from services.negotiation import (
    submit_offer,
    reject_counter_offer,
    mechanic_accepts_counter,
)
from services.request_lifecycle import (
    AssistanceError,
    get_active_request,
    transition_status,
    next_mechanic_status,
)


def _context(request, **extra):
    return {"request": request, "viewer": request.user, **extra}


class MechanicProfileView(APIView):
    permission_classes = [IsAuthenticated, IsMechanic]

    def get(self, request):
        profile = request.user.mechanic_profile
        serializer = MechanicProfileSerializer(profile, context={"request": request})
        return Response(serializer.data)

    def patch(self, request):
        profile = request.user.mechanic_profile
        serializer = MechanicProfileSerializer(
            profile, data=request.data, partial=True, context={"request": request}
        )
        serializer.is_valid(raise_exception=True)
        services.update_profile(profile, **serializer.validated_data)

        return Response(MechanicProfileSerializer(profile, context={"request": request}).data)


#    NOTE: WS presence can replace this, but HTTP fallback remains.
class MechanicStatusView(APIView):
    permission_classes = [IsAuthenticated, IsMechanic]

    def get(self, request):
        return Response({"is_online": request.user.mechanic_profile.is_online})

    def put(self, request):
        serializer = MechanicStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        is_online = serializer.validated_data["is_online"]

        services.set_online(request.user.mechanic_profile, is_online)

        return Response({
            "message": "You are now online" if is_online else "You are now offline",
            "is_online": is_online,
        })


class MechanicOpenRequestsView(APIView):
    """
    GET: Mechanic polling endpoint for the open request queue.
    Each request only shows this mechanic's own offer.
    """
    permission_classes = [IsAuthenticated, IsMechanic]

    def get(self, request):
        requests = open_requests_for_mechanic(request.user)
        data = ServiceRequestSerializer(requests, many=True, context=_context(request)).data
        return Response({
            "is_online": request.user.mechanic_profile.is_online,
            "count": len(data),
            "requests": data,
            "poll_interval_seconds": getattr(settings, "CLIENT_POLL_INTERVAL_SECONDS", 3),
        })


class MechanicSubmitOfferView(APIView):
    """
    POST: Bid on an open request, or revise the existing bid.

    Body: {"price": 150, "eta": 20}
    """
    permission_classes = [IsAuthenticated, IsMechanic]

    def post(self, request, request_id: int):
        serializer = OfferSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = submit_offer(request.user, request_id, data["price"], data.get("eta"))
        except AssistanceError as exc:
            return service_error_response(exc)

        offer = OfferSerializer(
            result.offer, context=_context(request, service_request=result.request)
        ).data
        return service_result_response(
            result, {"offer": offer}, status=201 if result.extra["created"] else 200
        )


class MechanicAcceptCounterView(APIView):
    """
    POST: Agree to the driver's counter price. The price seen must be echoed back.

    Body: {"price": 120}
    """
    permission_classes = [IsAuthenticated, IsMechanic]

    def post(self, request, request_id: int, offer_id: int):
        serializer = CounterOfferSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = mechanic_accepts_counter(
                request.user, request_id, offer_id, serializer.validated_data["price"]
            )
        except AssistanceError as exc:
            return service_error_response(exc)

        job = ServiceRequestSerializer(result.request, context=_context(request)).data
        return service_result_response(result, {"job": job})


class MechanicRejectCounterView(APIView):
    """
    POST: Turn down the driver's counter; the offer goes back to the original price.
    """
    permission_classes = [IsAuthenticated, IsMechanic]

    def post(self, request, offer_id: int):
        serializer = PriceRollbackSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = reject_counter_offer(
                request.user, offer_id, serializer.validated_data.get("original_price")
            )
        except AssistanceError as exc:
            return service_error_response(exc)

        offer = OfferSerializer(
            result.offer, context=_context(request, service_request=result.request)
        ).data
        return service_result_response(result, {"offer": offer})


class MechanicCurrentJobView(APIView):
    """
    GET: The job currently assigned to this mechanic.
    """
    permission_classes = [IsAuthenticated, IsMechanic]

    def get(self, request):
        try:
            job = get_active_request(request.user)
        except AssistanceError as exc:
            return service_error_response(exc)

        if job is None:
            return Response({"has_active_job": False, "message": "No active job"})

        return Response({
            "has_active_job": True,
            "job": ServiceRequestSerializer(job, context=_context(request)).data,
            "status": job.status,
            "next_status": next_mechanic_status(job.status),
        })


class MechanicJobStatusView(APIView):
    """
    POST: Move the assigned job forward (EN_ROUTE, ARRIVED, COMPLETED).
    """
    permission_classes = [IsAuthenticated, IsMechanic]

    def post(self, request, request_id: int):
        serializer = StatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = transition_status(request.user, request_id, serializer.validated_data["status"])
        except AssistanceError as exc:
            return service_error_response(exc)

        job = ServiceRequestSerializer(result.request, context=_context(request)).data
        return service_result_response(result, {
            "job": job,
            "next_status": next_mechanic_status(result.request.status),
        })


class MechanicJobHistoryView(APIView):
    permission_classes = [IsAuthenticated, IsMechanic]

    def get(self, request):
        history = request_history(request.user)
        data = ServiceRequestSerializer(history, many=True, context=_context(request)).data
        return Response({"count": len(data), "jobs": data})
