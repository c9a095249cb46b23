import logging

from mechanics.models import MechanicProfile
from realtime.notifications import after_commit, notify_mechanic_presence

logger = logging.getLogger(__name__)


def set_online(profile: MechanicProfile, is_online: bool) -> MechanicProfile:
    """
    Toggle mechanic availability.
    Online mechanics see the open request queue; the change is pushed to their
    own sockets so they join or leave the queue group.
    """
    if profile.is_online == is_online:
        return profile

    profile.is_online = is_online
    profile.save(update_fields=["is_online"])
    logger.info("Mechanic %s is now %s", profile.user_id, "online" if is_online else "offline")

    after_commit(notify_mechanic_presence, profile.user_id, is_online)
    return profile


def update_profile(profile: MechanicProfile, **fields) -> MechanicProfile:
    """Update the editable, advisory parts of a mechanic profile."""
    editable = ("base_price", "specialties", "vehicle_type", "bio")
    changed = [name for name in editable if name in fields]
    for name in changed:
        setattr(profile, name, fields[name])
    if changed:
        profile.save(update_fields=changed)
    return profile
