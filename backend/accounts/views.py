from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from .serializers import (
    RegisterSerializer,
    LoginSerializer,
    UserSerializer,
    LocationUpdateSerializer,
)
from . import services


def _tokens_for(user):
    refresh = RefreshToken.for_user(user)
    return {
        'refresh': str(refresh),
        'access': str(refresh.access_token),
    }


class RegisterView(APIView):
    """
    Register a new participant (driver or mechanic)

    POST Body:
    {
        "username": "yassine",
        "email": "yassine@example.com",
        "password": "password123",
        "role": "DRIVER",  // or "MECHANIC"
        "display_name": "Yassine",
        "phone_number": "0600000000",
        "vehicle_model": "Dacia Logan",  // drivers
        "base_price": 150, "specialties": ["Batterie"], "vehicle_type": "car"  // mechanics
    }
    """
    permission_classes = (AllowAny,)
    authentication_classes = []

    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        if serializer.is_valid():
            user = serializer.save()
            return Response({
                'message': 'User registered successfully',
                'user': UserSerializer(user).data,
                'tokens': _tokens_for(user),
            }, status=status.HTTP_201_CREATED)

        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


class LoginView(APIView):
    """Login with username and password to get JWT tokens"""
    permission_classes = (AllowAny,)
    authentication_classes = []

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.validated_data

        return Response({
            "message": "Login successful",
            "user": UserSerializer(user).data,
            "tokens": _tokens_for(user),
        }, status=status.HTTP_200_OK)


class RefreshTokenView(APIView):
    """Refresh JWT access token"""
    permission_classes = (AllowAny,)
    authentication_classes = []

    def post(self, request):
        refresh_token = request.data.get('refresh')

        if not refresh_token:
            return Response(
                {'error': 'Refresh token is required'},
                status=status.HTTP_400_BAD_REQUEST
            )

        try:
            refresh = RefreshToken(refresh_token)
        except TokenError:
            return Response(
                {'error': 'Invalid refresh token'},
                status=status.HTTP_401_UNAUTHORIZED
            )
        return Response({'access': str(refresh.access_token)})


class MeView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(UserSerializer(request.user).data)

    def patch(self, request):
        serializer = UserSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)


class LocationUpdateView(APIView):
    """
    POST: participant reports its GPS position.

    Writes are throttled per participant; a throttled report still returns 200
    with "stored": false so clients can keep their normal cadence.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = LocationUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        lat = serializer.validated_data["latitude"]
        lon = serializer.validated_data["longitude"]
        stored = services.update_participant_location(request.user, lat, lon)

        return Response({
            "stored": stored,
            "latitude": float(lat),
            "longitude": float(lon),
        })
