"""Data models for the event graph."""
import hashlib
import uuid
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional

from eventgraph.text import month_label, sanitize_name


class EventKind(str, Enum):
    EVENT = 'event'
    GROUP = 'group'
    SHOP = 'shop'


class LinkKind(str, Enum):
    NORMAL = 'normal'
    EMAIL = 'email'
    REGISTRATION = 'registration'
    EXTERNAL = 'external'


REGISTRATION_LINK_NAME = 'Anmeldung'


@dataclass(frozen=True)
class City:
    """Reference point for distances, usually the city the site is about."""
    name: str
    lat: float
    lon: float


@dataclass(frozen=True)
class Name:
    """Display name plus the slug used for lookups, sorting and URLs."""
    orig: str
    sanitized: str

    @classmethod
    def create(cls, text: str) -> 'Name':
        return cls(orig=text, sanitized=sanitize_name(text))

    @classmethod
    def with_id(cls, text: str, identifier: str) -> 'Name':
        return cls(orig=text, sanitized=identifier)

    def is_empty(self) -> bool:
        return self.orig == ''


@dataclass
class TimeRange:
    """Start/end dates together with the source text they were parsed from."""
    start: Optional[date] = None
    end: Optional[date] = None
    original: str = ''
    formatted: str = ''

    def is_zero(self) -> bool:
        return self.start is None

    def is_before(self, day: date) -> bool:
        """True if the range starts strictly before the given day."""
        return self.start is not None and self.start < day

    def is_before_range(self, other: 'TimeRange') -> bool:
        if self.start is None or other.start is None:
            return False
        return self.start < other.start

    def year(self) -> Optional[int]:
        return self.start.year if self.start is not None else None


@dataclass
class Location:
    city: str = ''
    country: str = ''
    geo: str = ''
    lat: float = 0.0
    lon: float = 0.0
    distance: str = ''
    direction: str = ''
    dist_dir_fancy: str = ''

    def has_geo(self) -> bool:
        return self.geo != ''

    def name(self) -> str:
        if not self.city:
            return ''
        if self.country == 'Frankreich':
            return f"{self.city}, FR \U0001F1EB\U0001F1F7"
        if self.country == 'Schweiz':
            return f"{self.city}, CH \U0001F1E8\U0001F1ED"
        return self.city

    def name_no_flag(self) -> str:
        if not self.city:
            return ''
        if self.country == 'Frankreich':
            return f"{self.city}, FR"
        if self.country == 'Schweiz':
            return f"{self.city}, CH"
        return self.city

    def google_maps(self) -> str:
        return f"https://www.google.com/maps/place/{self.geo}"

    def tags(self) -> List[str]:
        if self.country:
            return [sanitize_name(self.country)]
        return []


@dataclass(eq=False)
class Link:
    name: str
    url: str

    @classmethod
    def unnamed(cls, url: str) -> 'Link':
        """Link without display name; bare e-mail addresses become mailto: URLs."""
        if '@' in url and '://' not in url and not url.startswith('mailto:'):
            url = f"mailto:{url}"
        return cls(name='', url=url)

    @property
    def is_email(self) -> bool:
        return self.url.startswith('mailto:')

    @property
    def is_registration(self) -> bool:
        return self.name == REGISTRATION_LINK_NAME

    @property
    def is_external(self) -> bool:
        return self.url.startswith('http://') or self.url.startswith('https://')

    @property
    def kind(self) -> LinkKind:
        if self.is_email:
            return LinkKind.EMAIL
        if self.is_registration:
            return LinkKind.REGISTRATION
        if self.is_external:
            return LinkKind.EXTERNAL
        return LinkKind.NORMAL


@dataclass(eq=False)
class EventMeta:
    current: bool = False
    base_name: Name = field(default_factory=lambda: Name('', ''))
    seo_title: str = ''
    siblings: List['Event'] = field(default_factory=list)


@dataclass(eq=False)
class Event:
    """
    A running event, group or shop.

    Month separators are Events too: they have no kind and only carry a
    label in their name.
    """
    kind: Optional[EventKind]
    name: Name
    name_old: Name = field(default_factory=lambda: Name('', ''))
    time: TimeRange = field(default_factory=TimeRange)
    old: bool = False
    status: str = ''
    cancelled: bool = False
    obsolete: bool = False
    special: bool = False
    location: Location = field(default_factory=Location)
    details: str = ''
    details2: str = ''
    details_text: str = ''
    main_link: Optional[Link] = None
    links: List[Link] = field(default_factory=list)
    raw_tags: List[str] = field(default_factory=list)
    tags: Optional[List['Tag']] = None
    raw_series: List[str] = field(default_factory=list)
    series: Optional[List['Serie']] = None
    calendar: str = ''
    calendar_google: str = ''
    prev: Optional['Event'] = None
    next: Optional['Event'] = None
    upcoming_near: Optional[List['Event']] = None
    meta: EventMeta = field(default_factory=EventMeta)

    @classmethod
    def separator(cls, day: date) -> 'Event':
        return cls(kind=None, name=Name.create(month_label(day)))

    @property
    def is_separator(self) -> bool:
        return self.kind is None

    def _slug(self, ext: str) -> str:
        kind = self.kind.value if self.kind else ''
        sanitized = self.name.sanitized
        if not self.time.is_zero():
            return f"{kind}/{self.time.year()}-{sanitized}.{ext}"
        return f"{kind}/{sanitized}.{ext}"

    def _is_current_base(self) -> bool:
        return (
            self.kind == EventKind.EVENT
            and self.meta.base_name.sanitized != ''
            and self.meta.current
        )

    def slug(self) -> str:
        if self._is_current_base():
            return f"{self.kind.value}/{self.meta.base_name.sanitized}/"
        return self._slug('html')

    def slug_file(self) -> str:
        if self._is_current_base():
            return f"{self.kind.value}/{self.meta.base_name.sanitized}/index.html"
        return self._slug('html')

    def slug_no_base(self) -> str:
        return self._slug('html')

    def slug_old(self) -> str:
        """Slug of the legacy name, for redirects; empty without a legacy name."""
        if self.name_old.is_empty():
            return ''
        kind = self.kind.value if self.kind else ''
        if not self.time.is_zero():
            return f"{kind}/{self.time.year()}-{self.name_old.sanitized}.html"
        return f"{kind}/{self.name_old.sanitized}.html"

    def calendar_slug(self) -> str:
        return self._slug('ics')

    def uuid(self) -> uuid.UUID:
        """Stable identifier derived from the slug, e.g. for calendar exports."""
        if self.is_separator:
            raise ValueError("cannot create UUID for separator")
        digest = hashlib.sha256(self.slug().encode('utf-8')).digest()
        return uuid.UUID(bytes=digest[:16])


def non_separators(events: List[Event]) -> int:
    return sum(1 for event in events if not event.is_separator)


@dataclass(eq=False)
class Tag:
    name: Name
    description: str = ''
    events: List[Event] = field(default_factory=list)
    events_old: List[Event] = field(default_factory=list)
    groups: List[Event] = field(default_factory=list)
    shops: List[Event] = field(default_factory=list)

    @classmethod
    def create(cls, name: str) -> 'Tag':
        return cls(name=Name.create(name))

    def slug(self) -> str:
        return f"tag/{self.name.sanitized}.html"

    def num_events(self) -> int:
        return non_separators(self.events)

    def num_old_events(self) -> int:
        return non_separators(self.events_old)

    def num_groups(self) -> int:
        return non_separators(self.groups)

    def num_shops(self) -> int:
        return non_separators(self.shops)


@dataclass(eq=False)
class Serie:
    name: Name
    description: str = ''
    links: List[Link] = field(default_factory=list)
    events: List[Event] = field(default_factory=list)
    events_old: List[Event] = field(default_factory=list)
    groups: List[Event] = field(default_factory=list)
    shops: List[Event] = field(default_factory=list)

    def is_old(self) -> bool:
        return not self.events and not self.groups and not self.shops

    def num(self) -> int:
        return (
            non_separators(self.events) + non_separators(self.events_old)
            + non_separators(self.groups) + non_separators(self.shops)
        )

    def slug(self) -> str:
        return f"serie/{self.name.sanitized}.html"


@dataclass
class ParkrunEvent:
    """One weekly parkrun, independent of the event graph."""
    current_week: bool
    index: str
    date: str
    runners: str
    temp: str
    special: str
    cafe: str
    results: str
    report: str
    author: str
    photos: str


@dataclass
class OldEventsYear:
    year: str
    events: List[Event]


@dataclass
class EventGraph:
    """Finished output of one pipeline run."""
    events: List[Event] = field(default_factory=list)
    events_old: List[Event] = field(default_factory=list)
    old_events_by_year: List[OldEventsYear] = field(default_factory=list)
    events_obsolete: List[Event] = field(default_factory=list)
    groups: List[Event] = field(default_factory=list)
    groups_obsolete: List[Event] = field(default_factory=list)
    shops: List[Event] = field(default_factory=list)
    shops_obsolete: List[Event] = field(default_factory=list)
    tags: List[Tag] = field(default_factory=list)
    series: List[Serie] = field(default_factory=list)
    series_old: List[Serie] = field(default_factory=list)
    parkrun_events: List[ParkrunEvent] = field(default_factory=list)

    def count_events(self) -> int:
        return non_separators(self.events)
