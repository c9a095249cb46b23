# drivers/views/offers.py

from rest_framework.views import APIView
from rest_framework.permissions import IsAuthenticated

from ..permissions import IsDriver
from assistance.serializers import (
    OfferSerializer,
    CounterOfferSerializer,
    PriceRollbackSerializer,
)
from common.responses import service_error_response, service_result_response
from services.request_lifecycle import AssistanceError
from services.negotiation import (
    submit_counter_offer,
    cancel_counter_offer,
    decline_offer,
)


def _offer_response(result, request):
    context = {"request": request, "viewer": request.user, "service_request": result.request}
    return service_result_response(result, {"offer": OfferSerializer(result.offer, context=context).data})


class DriverCounterOfferView(APIView):
    """
    POST: Driver proposes a different price on an offer.

    Body: {"price": 120}
    """
    permission_classes = [IsAuthenticated, IsDriver]

    def post(self, request, offer_id: int):
        serializer = CounterOfferSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = submit_counter_offer(request.user, offer_id, serializer.validated_data["price"])
        except AssistanceError as exc:
            return service_error_response(exc)

        return _offer_response(result, request)


class DriverCancelCounterView(APIView):
    """
    POST: Driver withdraws their counter; the offer returns to the mechanic's original price.
    """
    permission_classes = [IsAuthenticated, IsDriver]

    def post(self, request, offer_id: int):
        serializer = PriceRollbackSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = cancel_counter_offer(
                request.user, offer_id, serializer.validated_data.get("original_price")
            )
        except AssistanceError as exc:
            return service_error_response(exc)

        return _offer_response(result, request)


class DriverDeclineOfferView(APIView):
    """
    POST: Driver declines an offer for good.
    """
    permission_classes = [IsAuthenticated, IsDriver]

    def post(self, request, offer_id: int):
        try:
            result = decline_offer(request.user, offer_id)
        except AssistanceError as exc:
            return service_error_response(exc)

        return _offer_response(result, request)
