"""
Offer negotiation service.

This module handles:
    - Mechanic bids and bid revisions
    - Driver counter offers and their withdrawal or rejection
    - Declining offers
    - Accepting an offer (driver) or a counter (mechanic)
"""

from .offers import (
    submit_offer,
    submit_counter_offer,
    cancel_counter_offer,
    reject_counter_offer,
    accept_offer,
    mechanic_accepts_counter,
    decline_offer,
    parse_price,
)

__all__ = [
    "submit_offer",
    "submit_counter_offer",
    "cancel_counter_offer",
    "reject_counter_offer",
    "accept_offer",
    "mechanic_accepts_counter",
    "decline_offer",
    "parse_price",
]
