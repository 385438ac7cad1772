"""Temporal organization of events: splitting, ordering, separators, siblings."""
import logging
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple

from eventgraph.models import Event, OldEventsYear
from eventgraph.text import is_similar_name

logger = logging.getLogger(__name__)

CURRENT_GRACE_DAYS = 7
RESULTS_LINK_NAME = 'Anmeldung / Ergebnisse'
REGISTRATION_SITES_WITH_RESULTS = ['raceresult.com', 'sporkrono.fr', 'racepedia.de', 'xivado.com']


def split_events(events: List[Event]) -> Tuple[List[Event], List[Event]]:
    """
    Partition events into future and past by their precomputed `old` flag.

    Returns:
        Tuple (future, past), both in input order
    """
    future = []
    past = []
    for event in events:
        if event.old:
            past.append(event)
        else:
            future.append(event)
    return future, past


def split_obsolete(events: List[Event]) -> Tuple[List[Event], List[Event]]:
    """Return (current, obsolete), both in input order."""
    current = []
    obsolete = []
    for event in events:
        if event.obsolete:
            obsolete.append(event)
        else:
            current.append(event)
    return current, obsolete


def reverse(events: List[Event]) -> List[Event]:
    return list(reversed(events))


def validate_date_order(events: List[Event]) -> bool:
    """
    Warn about the first event that breaks chronological order.

    Returns:
        True if the start dates are non-decreasing
    """
    last: Optional[Event] = None
    for event in events:
        if last is not None and not last.time.is_zero():
            if event.time.is_zero():
                logger.warning(f"event '{event.name.orig}' has no date")
                return False
            if event.time.is_before_range(last.time):
                logger.warning(
                    f"event '{event.name.orig}' has date '{event.time.formatted}' "
                    f"before date of previous event '{last.time.formatted}'"
                )
                return False
        last = event
    return True


def validate_name_order(events: List[Event]) -> bool:
    """
    Warn about every pair that is not strictly increasing by sanitized name.

    Returns:
        True if the list is strictly sorted
    """
    ok = True
    for last, event in zip(events, events[1:]):
        if not last.name.sanitized < event.name.sanitized:
            logger.warning(f"bad order: {last.name.sanitized} ... {event.name.sanitized}")
            ok = False
    return ok


def _next_month(day: date) -> date:
    if day.month == 12:
        return date(day.year + 1, 1, 1)
    return date(day.year, day.month + 1, 1)


def _previous_month(day: date) -> date:
    if day.month == 1:
        return date(day.year - 1, 12, 1)
    return date(day.year, day.month - 1, 1)


def _same_month(a: date, b: date) -> bool:
    return a.year == b.year and a.month == b.month


def add_month_separators(events: List[Event]) -> List[Event]:
    """
    Insert a separator before the first event of every month.

    Expects events sorted by start date. Gaps produce one separator per
    month crossed, so an event in April following one in January is
    preceded by separators for February, March and April. Events without
    a date get no separator.
    """
    result = []
    last: Optional[date] = None

    for event in events:
        day = event.time.start
        if day is None:
            pass
        elif last is None:
            last = day
            result.append(Event.separator(last))
        elif day > last and not _same_month(day, last):
            while not _same_month(day, last):
                last = _next_month(last)
                result.append(Event.separator(last))
        result.append(event)

    return result


def add_month_separators_descending(events: List[Event]) -> List[Event]:
    """Like add_month_separators, for lists sorted most recent first."""
    result = []
    last: Optional[date] = None

    for event in events:
        day = event.time.start
        if day is None:
            pass
        elif last is None:
            last = day
            result.append(Event.separator(last))
        elif day < last and not _same_month(day, last):
            while not _same_month(day, last):
                last = _previous_month(last)
                result.append(Event.separator(last))
        result.append(event)

    return result


def _select_current(siblings: List[Event], today: date) -> Event:
    """
    Pick the current instance of a family sorted most recent first.

    Starting from the most recent instance, older instances take over as
    long as they started no more than CURRENT_GRACE_DAYS before today.
    """
    limit = today - timedelta(days=CURRENT_GRACE_DAYS)
    current = siblings[0]
    for sibling in siblings[1:]:
        if sibling.time.is_before(limit):
            break
        current = sibling
    return current


def find_siblings(events: List[Event], today: date) -> None:
    """
    Group events sharing a base name and mark one current instance per group.

    Every member of a group gets the full sibling list, most recent first.
    Events without a base name are left alone.
    """
    families: Dict[str, List[Event]] = {}
    for event in events:
        base = event.meta.base_name.sanitized
        if not base:
            continue
        families.setdefault(base, []).append(event)

    for base, family in families.items():
        siblings = reverse(family)
        for event in siblings:
            event.meta.siblings = siblings
            event.meta.current = False
        _select_current(siblings, today).meta.current = True
        logger.debug(f"Family '{base}' has {len(siblings)} instances")


def find_prev_next_events(events: List[Event]) -> None:
    """
    Link each event to the latest earlier event with a similar name.

    This is a fuzzy chaining by display name, independent of the explicit
    base name used by find_siblings.
    """
    for i, event in enumerate(events):
        prev = None
        for candidate in events[:i]:
            if is_similar_name(candidate.name.sanitized, event.name.sanitized):
                prev = candidate
        if prev is not None:
            prev.next = event
            event.prev = prev


def change_registration_links(events: List[Event]) -> None:
    """Relabel registration links of past events on platforms that also host results."""
    for event in events:
        for link in event.links:
            if not link.is_registration:
                continue
            if any(site in link.url for site in REGISTRATION_SITES_WITH_RESULTS):
                link.name = RESULTS_LINK_NAME


def group_by_year(events: List[Event]) -> List[OldEventsYear]:
    """
    Group past events by start year, most recent year first.

    Separators in the input are dropped; each year's list gets its own
    descending month separators.
    """
    by_year: Dict[int, List[Event]] = {}
    for event in events:
        if event.is_separator or event.time.is_zero():
            continue
        by_year.setdefault(event.time.year(), []).append(event)

    return [
        OldEventsYear(year=str(year), events=add_month_separators_descending(by_year[year]))
        for year in sorted(by_year, reverse=True)
    ]
