"""WebSocket authentication for driver, mechanic and request sockets."""

import logging
from urllib.parse import parse_qs

from asgiref.sync import sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import AccessToken

User = get_user_model()
logger = logging.getLogger(__name__)


@sync_to_async
def _participant_for_token(raw_token):
    access = AccessToken(raw_token)
    return User.objects.get(id=access["user_id"], is_active=True)


class JWTOrCookieAuthMiddleware(BaseMiddleware):
    """
    Put the connecting participant on ``scope["user"]``.

    The mobile apps pass their access token as ``?token=...``; the admin
    and browser tools ride on the session set by AuthMiddlewareStack.
    Anything else connects as anonymous and is closed by the consumer.
    """

    async def __call__(self, scope, receive, send):
        params = parse_qs(scope.get("query_string", b"").decode())
        token_list = params.get("token")

        if token_list:
            try:
                scope["user"] = await _participant_for_token(token_list[0])
            except (TokenError, KeyError, User.DoesNotExist) as e:
                logger.info("Rejected socket token on %s: %s", scope.get("path", "?"), e)
                scope["user"] = AnonymousUser()
        elif "session" not in scope:
            scope["user"] = AnonymousUser()
        else:
            scope.setdefault("user", AnonymousUser())

        return await super().__call__(scope, receive, send)
