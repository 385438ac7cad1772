"""Nearby upcoming events."""
import logging
from typing import List

from eventgraph.geo import distance_bearing
from eventgraph.models import Event

logger = logging.getLogger(__name__)

MAX_DISTANCE_KM = 5.0
MAX_NEAR_EVENTS = 3


def find_upcoming_near_events(
    events: List[Event],
    candidates: List[Event],
    max_distance_km: float = MAX_DISTANCE_KM,
    count: int = MAX_NEAR_EVENTS
) -> None:
    """
    Attach up to `count` nearby upcoming events to every event with coordinates.

    Candidates are taken in the order of the candidate list (usually the
    chronological list of upcoming events), not sorted by distance, so the
    result holds the earliest nearby events. Cancelled candidates,
    candidates without coordinates and the event itself are skipped.

    Args:
        events: Events to annotate; entries without coordinates are left alone
        candidates: Upcoming events to pick from
        max_distance_km: Maximum great-circle distance
        count: Maximum number of nearby events per event
    """
    annotated = 0
    for event in events:
        if not event.location.has_geo():
            continue

        near = []
        for candidate in candidates:
            if len(near) >= count:
                break
            if candidate is event or candidate.cancelled or not candidate.location.has_geo():
                continue
            distance, _ = distance_bearing(
                event.location.lat, event.location.lon,
                candidate.location.lat, candidate.location.lon
            )
            if distance > max_distance_km:
                continue
            near.append(candidate)

        event.upcoming_near = near
        annotated += 1

    logger.debug(f"Computed nearby events for {annotated} events")
