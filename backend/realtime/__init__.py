"""
Realtime app for WebSocket communication.

This app provides:
- WebSocket consumers for drivers, mechanics and request tracking
- Notification helpers sent after the engine's transactions commit
- JWT/Cookie authentication middleware for WebSocket connections

Usage:
    from realtime.consumers import DriverConsumer, MechanicConsumer, RequestConsumer
    from realtime.notifications import notify_driver_event, notify_mechanic_event
"""
