"""Calendar export fields for events."""
from datetime import timedelta
from typing import List
from urllib.parse import quote_plus

from eventgraph.models import Event

GOOGLE_CALENDAR_URL = 'https://calendar.google.com/calendar/u/0/r/eventedit'
DATE_FORMAT = '%Y%m%d'


def join_url(base_url: str, part: str) -> str:
    """Append a path to a base URL, e.g. ("https://freiburg.run", "tags.html")."""
    if not part:
        return base_url
    return f"{base_url}/{part}"


def google_calendar_link(event: Event, base_url: str) -> str:
    """
    Link that opens Google Calendar with the event pre-filled.

    The end date is exclusive, so one day is added to the last day.
    """
    info_url = join_url(base_url, event.slug())
    site = base_url.split('://', 1)[-1]
    end_plus_one = event.time.end + timedelta(days=1)
    details = f'{event.details}<br>Infos: <a href="{info_url}">{site}</a>'
    return (
        f"{GOOGLE_CALENDAR_URL}?text={quote_plus(event.name.orig)}"
        f"&dates={event.time.start.strftime(DATE_FORMAT)}/{end_plus_one.strftime(DATE_FORMAT)}"
        f"&details={quote_plus(details)}"
        f"&location={quote_plus(event.location.name_no_flag())}"
    )


def add_calendar_fields(events: List[Event], base_url: str) -> None:
    """Fill the calendar slug and Google Calendar link of every dated event."""
    for event in events:
        if event.is_separator or event.time.is_zero():
            continue
        event.calendar = event.calendar_slug()
        event.calendar_google = google_calendar_link(event, base_url)
