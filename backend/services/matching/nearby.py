"""
Nearby online mechanics for a driver.

Uses the mechanics' last reported positions and the haversine distance to
list who could come (closest first). Purely advisory: every online mechanic
sees every open request regardless of distance.
"""

import logging
from typing import List, Optional, Tuple

from django.conf import settings

from mechanics.models import MechanicProfile
from common.utils import calculate_distance

logger = logging.getLogger(__name__)


def nearby_mechanics(lat: float, lon: float, radius: Optional[float] = None) -> List[Tuple[MechanicProfile, float]]:
    """
    Online mechanics within ``radius`` meters of (lat, lon).

    Args:
        lat: Reference latitude (driver or breakdown site)
        lon: Reference longitude
        radius: Search radius in meters, defaults to MECHANIC_SEARCH_RADIUS_METERS

    Returns:
        List of (MechanicProfile, distance in meters) sorted closest first
    """
    if radius is None:
        radius = getattr(settings, "MECHANIC_SEARCH_RADIUS_METERS", 20000)

    online = (
        MechanicProfile.objects.select_related("user")
        .filter(
            is_online=True,
            user__current_latitude__isnull=False,
            user__current_longitude__isnull=False,
        )
    )

    candidates: List[Tuple[MechanicProfile, float]] = []
    for profile in online:
        distance = calculate_distance(
            float(lat),
            float(lon),
            float(profile.user.current_latitude),
            float(profile.user.current_longitude),
        )
        if distance <= float(radius):
            candidates.append((profile, distance))

    candidates.sort(key=lambda item: item[1])

    logger.debug("Found %d online mechanics within %sm of (%s, %s)", len(candidates), radius, lat, lon)
    return candidates
