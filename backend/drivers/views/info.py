from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.conf import settings

from ..permissions import IsDriver
from ..serializers import NearbySearchSerializer
from accounts.services import participant_location
from assistance.serializers import ServiceRequestSerializer
from mechanics.serializers import MechanicBasicSerializer
from services.matching import nearby_mechanics, request_history


class DriverNearbyMechanicsView(APIView):
    """
    POST: Online mechanics around a point (defaults to the driver's position), closest first.
    """
    permission_classes = [IsAuthenticated, IsDriver]

    def post(self, request):
        serializer = NearbySearchSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if "latitude" in data:
            lat, lon = data["latitude"], data["longitude"]
        else:
            lat, lon = participant_location(request.user)
        radius = data.get("radius", getattr(settings, "MECHANIC_SEARCH_RADIUS_METERS", 20000))

        mechanics = []
        for profile, distance in nearby_mechanics(lat, lon, radius):
            entry = MechanicBasicSerializer(profile).data
            entry["distance_meters"] = round(distance)
            mechanics.append(entry)

        return Response({
            "count": len(mechanics),
            "mechanics": mechanics,
            "search_radius_meters": radius,
        })


class DriverRequestHistoryView(APIView):
    """
    GET: Retrieve the driver's past requests (completed + cancelled)
    """
    permission_classes = [IsAuthenticated, IsDriver]

    def get(self, request):
        history = request_history(request.user)
        data = ServiceRequestSerializer(
            history, many=True, context={"request": request, "viewer": request.user}
        ).data
        return Response({"count": len(data), "requests": data})
