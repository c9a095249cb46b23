import logging
from datetime import timedelta

from django.conf import settings
from django.db.models import Q
from django.utils import timezone

from accounts.models import User
from common.utils import parse_coordinates
from services.request_lifecycle.exceptions import InvalidInputError

logger = logging.getLogger(__name__)


def _min_interval() -> float:
    return float(getattr(settings, "LOCATION_UPDATE_MIN_INTERVAL_SECONDS", 2))


def update_participant_location(user: User, lat, lon, now=None) -> bool:
    """
    Store the participant's self-reported position.

    At most one write per LOCATION_UPDATE_MIN_INTERVAL_SECONDS per participant;
    updates arriving sooner are dropped and False is returned.
    """
    try:
        lat, lon = parse_coordinates(lat, lon)
    except ValueError as exc:
        raise InvalidInputError(str(exc))
    now = now or timezone.now()

    window_start = now - timedelta(seconds=_min_interval())

    # Window checked against the stored row, other devices write too
    updated = User.objects.filter(
        Q(last_location_update__isnull=True) | Q(last_location_update__lte=window_start),
        pk=user.pk,
    ).update(
        current_latitude=lat,
        current_longitude=lon,
        last_location_update=now,
    )
    if not updated:
        logger.debug("Location update for user %s inside the rate window, dropped", user.pk)
        return False

    user.current_latitude = lat
    user.current_longitude = lon
    user.last_location_update = now
    return True


def participant_location(user: User):
    """Current (lat, lon) of a participant, falling back to DEFAULT_LOCATION."""
    if user.current_latitude is not None and user.current_longitude is not None:
        return float(user.current_latitude), float(user.current_longitude)
    return tuple(getattr(settings, "DEFAULT_LOCATION", (33.5731, -7.5898)))
