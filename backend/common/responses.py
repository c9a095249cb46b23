"""Translate engine errors into the API's JSON error shape."""

import logging

from rest_framework.response import Response

from services.request_lifecycle.exceptions import AssistanceError

logger = logging.getLogger(__name__)


def service_error_response(exc: AssistanceError) -> Response:
    """
    {"success": false, "error": <code>, "message": <text>} with the error's
    HTTP status. Upstream failures also carry "effect_unknown": true.
    """
    body = {
        "success": False,
        "error": exc.error_code,
        "message": exc.message,
    }
    if getattr(exc, "effect_unknown", False):
        body["effect_unknown"] = True
    if exc.status_code >= 500:
        logger.warning("Returning %s for %s: %s", exc.status_code, exc.error_code, exc.message)
    return Response(body, status=exc.status_code)


def service_result_response(result, data=None, status=200) -> Response:
    """Success body for an engine ServiceResult."""
    body = {"success": True, "message": result.message}
    if data:
        body.update(data)
    return Response(body, status=status)
