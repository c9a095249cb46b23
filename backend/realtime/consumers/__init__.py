"""Realtime consumers for WebSocket communication."""

from .base import BaseConsumer
from .driver_consumer import DriverConsumer
from .mechanic_consumer import MechanicConsumer
from .request_consumer import RequestConsumer

__all__ = [
    "BaseConsumer",
    "DriverConsumer",
    "MechanicConsumer",
    "RequestConsumer",
]
