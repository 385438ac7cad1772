"""Per-run build context."""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, FrozenSet, Optional, Tuple

from eventgraph.models import City, Name, Serie, Tag
from eventgraph.text import sanitize_name

DEFAULT_CITY = City(name='Freiburg', lat=47.9990, lon=7.8421)
DEFAULT_PARKRUN_RESULTS_URL = 'https://www.parkrun.com.de/dietenbach/results/'
DEFAULT_BASE_URL = 'https://freiburg.run'


@dataclass(frozen=True)
class StatusFlags:
    cancelled: bool = False
    special: bool = False
    obsolete: bool = False
    skip: bool = False
    status: str = ''


@dataclass(frozen=True)
class StatusTable:
    """
    Decodes the free-text STATUS cell into flags.

    Status texts containing one of the cancel markers cancel the entry;
    texts listed in `cleared` are not shown on the page.
    """
    cancel_markers: Tuple[str, ...] = ('abgesagt', 'geschlossen')
    special: str = 'spezial'
    obsolete: str = 'obsolete'
    skip: str = 'temp'
    cleared: FrozenSet[str] = frozenset({'abgesagt', 'spezial', 'obsolete'})

    def decode(self, status: str) -> StatusFlags:
        cancelled = any(marker in status for marker in self.cancel_markers)
        return StatusFlags(
            cancelled=cancelled,
            special=status == self.special,
            obsolete=status == self.obsolete,
            skip=status == self.skip,
            status='' if status in self.cleared else status
        )


@dataclass
class BuildContext:
    """
    Everything one pipeline invocation needs besides the input tables.

    The tag and series registries are scoped to the context, so nothing
    leaks from one run into the next.
    """
    today: date
    city: City = DEFAULT_CITY
    status_table: StatusTable = field(default_factory=StatusTable)
    parkrun_results_url: str = DEFAULT_PARKRUN_RESULTS_URL
    base_url: str = DEFAULT_BASE_URL
    tags: Dict[str, Tag] = field(default_factory=dict)
    series: Dict[str, Serie] = field(default_factory=dict)

    @classmethod
    def for_today(cls, now: Optional[datetime] = None, **kwargs) -> 'BuildContext':
        """Create a context whose reference date is today at midnight."""
        now = now or datetime.now()
        return cls(today=now.date(), **kwargs)

    def get_tag(self, name: str) -> Tag:
        """Look up a tag by sanitized name, creating it on first use."""
        tag = self.tags.get(name)
        if tag is None:
            tag = Tag.create(name)
            self.tags[name] = tag
        return tag

    def get_serie(self, name: str) -> Tuple[Serie, bool]:
        """
        Look up a series by name, creating a placeholder for unknown ones.

        Returns:
            Tuple (serie, already_existed)
        """
        identifier = sanitize_name(name)
        serie = self.series.get(identifier)
        if serie is not None:
            return serie, True
        serie = Serie(name=Name.with_id(name, identifier))
        self.series[identifier] = serie
        return serie, False
