"""WebSocket URL routing for the realtime app."""

from django.urls import re_path

from .consumers.driver_consumer import DriverConsumer
from .consumers.mechanic_consumer import MechanicConsumer
from .consumers.request_consumer import RequestConsumer

websocket_urlpatterns = [
    # Driver-specific WebSocket endpoint
    # URL: ws://localhost:8000/ws/driver/
    re_path(
        r"ws/driver/$",
        DriverConsumer.as_asgi(),
        name="driver-ws"
    ),

    # Mechanic-specific WebSocket endpoint
    # URL: ws://localhost:8000/ws/mechanic/
    re_path(
        r"ws/mechanic/$",
        MechanicConsumer.as_asgi(),
        name="mechanic-ws"
    ),

    # Request tracking WebSocket endpoint (shared by both roles)
    # URL: ws://localhost:8000/ws/request/
    re_path(
        r"ws/request/$",
        RequestConsumer.as_asgi(),
        name="request-ws"
    ),
]
