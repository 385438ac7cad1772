"""Shared fixtures for building events by hand."""
from datetime import date
from typing import Optional, Sequence

import pytest

from eventgraph.models import Event, EventKind, EventMeta, Link, Location, Name, TimeRange


def build_event(
    name: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
    kind: EventKind = EventKind.EVENT,
    base: str = '',
    lat: Optional[float] = None,
    lon: Optional[float] = None,
    cancelled: bool = False,
    old: bool = False,
    tags: Sequence[str] = (),
    series: Sequence[str] = (),
    url: str = 'https://example.com/'
) -> Event:
    """Create an Event without going through the normalizer."""
    location = Location(city='Freiburg')
    if lat is not None and lon is not None:
        location = Location(city='Freiburg', geo=f"{lat:.6f},{lon:.6f}", lat=lat, lon=lon)
    time_range = TimeRange()
    if start is not None:
        time_range = TimeRange(start=start, end=end or start, original=start.isoformat())
    return Event(
        kind=kind,
        name=Name.create(name),
        time=time_range,
        old=old,
        cancelled=cancelled,
        location=location,
        main_link=Link.unnamed(url),
        raw_tags=list(tags),
        raw_series=list(series),
        meta=EventMeta(base_name=Name.create(base))
    )


@pytest.fixture
def make_event():
    """Factory fixture returning build_event."""
    return build_event
