"""Record normalizer turning raw table rows into typed records."""
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

from eventgraph.context import BuildContext
from eventgraph.dates import create_time_range, parse_date
from eventgraph.errors import MalformedLinkError, MissingTableError, NormalizationError
from eventgraph.geo import create_location
from eventgraph.models import (
    REGISTRATION_LINK_NAME,
    Event,
    EventKind,
    EventMeta,
    Link,
    Name,
    ParkrunEvent,
    Serie,
    Tag,
    TimeRange,
)
from eventgraph.table import Table
from eventgraph.text import html_to_text, sanitize_name, sort_and_uniquify, split_list, split_pair

logger = logging.getLogger(__name__)

EVENT_COLUMNS = [
    'DATE', 'NAME', 'NAME2', 'SEO', 'STATUS', 'URL', 'DESCRIPTION',
    'LOCATION', 'COORDINATES', 'REGISTRATION', 'TAGS'
]
PARKRUN_COLUMNS = [
    'DATE', 'INDEX', 'RUNNERS', 'TEMP', 'SPECIAL', 'CAFE',
    'RESULTS', 'REPORT', 'AUTHOR', 'PHOTOS'
]
TAG_COLUMNS = ['TAG', 'NAME', 'DESCRIPTION']
SERIE_COLUMNS = ['NAME', 'DESCRIPTION']

SERIES_PREFIX = 'serie'
MIN_EVENT_SHEETS = 2


@dataclass
class SheetNames:
    events: List[str] = field(default_factory=list)
    groups: str = ''
    shops: str = ''
    parkrun: str = ''
    tags: str = ''
    series: str = ''


def find_sheet_names(titles: Sequence[str]) -> SheetNames:
    """
    Assign sheet titles to their role.

    Args:
        titles: All sheet titles of the spreadsheet

    Returns:
        SheetNames with every role filled

    Raises:
        MissingTableError: If a required sheet is missing
    """
    names = SheetNames()
    for title in titles:
        if title.startswith('Events'):
            names.events.append(title)
        elif title == 'Groups':
            names.groups = title
        elif title == 'Shops':
            names.shops = title
        elif title == 'Parkrun':
            names.parkrun = title
        elif title == 'Tags':
            names.tags = title
        elif title == 'Series':
            names.series = title
        elif 'ignore' in title:
            continue
        else:
            logger.info(f"Ignoring unknown sheet: '{title}'")

    if len(names.events) < MIN_EVENT_SHEETS:
        raise MissingTableError("unable to find enough 'Events' sheets")
    for role in ('groups', 'shops', 'parkrun', 'tags', 'series'):
        if not getattr(names, role):
            raise MissingTableError(f"unable to find '{role.capitalize()}' sheet", table=role.capitalize())
    return names


def parse_links(cells: Sequence[str], registration: str = '') -> List[Link]:
    """
    Parse "name|url" link cells.

    A registration URL becomes the first link; a cell literally named like
    the registration link is dropped in that case.

    Raises:
        MalformedLinkError: If a non-empty cell is not exactly "name|url"
    """
    links = []
    has_registration = registration != ''
    if has_registration:
        links.append(Link(REGISTRATION_LINK_NAME, registration))
    for cell in cells:
        if cell == '':
            continue
        parts = cell.split('|')
        if len(parts) != 2:
            raise MalformedLinkError(f"bad link: <{cell}>")
        name, url = parts
        if has_registration and name == REGISTRATION_LINK_NAME:
            continue
        links.append(Link(name, url))
    return links


def split_tags(cell: str) -> Tuple[List[str], List[str]]:
    """
    Split a TAGS cell into sanitized tags and raw series names.

    Entries starting with "serie" (e.g. "serie:Trailcup") name a series;
    series naming the same slug are kept once, first spelling wins.
    """
    tags = []
    series = []
    seen_series = set()
    for entry in split_list(cell):
        if entry.startswith(SERIES_PREFIX):
            serie = entry[len(SERIES_PREFIX):].lstrip(':').strip()
            if serie and sanitize_name(serie) not in seen_series:
                seen_series.add(sanitize_name(serie))
                series.append(serie)
        else:
            tags.append(sanitize_name(entry))
    return tags, series


def _read_fields(table: Table, row: Sequence[Any], titles: Sequence[str]) -> Dict[str, str]:
    return {title: table.columns.get(title, row) for title in titles}


class RecordNormalizer:
    """Converts raw table rows into events, groups, shops, tags, series and parkruns."""

    def __init__(self, context: BuildContext):
        self.context = context

    def normalize_events(self, table: Table, kind: EventKind) -> List[Event]:
        """
        Normalize all rows of an events, groups or shops table.

        Rows with missing essentials are skipped with a warning; structural
        problems abort the whole table.

        Args:
            table: Source table
            kind: Kind of the records in this table

        Returns:
            List of Event objects in table order

        Raises:
            NormalizationError: With table and line context
        """
        events = []
        for line, row in enumerate(table.rows):
            try:
                event = self._normalize_event_row(table, kind, row, line)
            except NormalizationError as e:
                raise e.with_context(table=table.name, row=line) from e
            if event:
                events.append(event)

        logger.info(f"Normalized {len(events)} {kind.value} records from table '{table.name}'")
        return events

    def _normalize_event_row(
        self,
        table: Table,
        kind: EventKind,
        row: Sequence[Any],
        line: int
    ) -> Optional[Event]:
        data = _read_fields(table, row, EVENT_COLUMNS)
        flags = self.context.status_table.decode(data['STATUS'])

        if flags.skip:
            logger.warning(f"table '{table.name}', line {line}: skipping row with temp status")
            return None
        if kind == EventKind.EVENT and not data['DATE']:
            logger.warning(f"table '{table.name}', line {line}: skipping row with empty date")
            return None
        if not data['NAME']:
            logger.warning(f"table '{table.name}', line {line}: skipping row with empty name")
            return None
        if data['NAME2'] not in data['NAME']:
            logger.warning(
                f"table '{table.name}', line {line}: name '{data['NAME']}' "
                f"does not contain name2 '{data['NAME2']}'"
            )
        if not data['URL']:
            logger.warning(f"table '{table.name}', line {line}: skipping row with empty url")
            return None

        name, name_old = split_pair(data['NAME'])
        details, details2 = split_pair(data['DESCRIPTION'])
        tags, series = split_tags(data['TAGS'])
        location = create_location(self.context.city, data['LOCATION'], data['COORDINATES'])
        tags.extend(location.tags())

        try:
            time_range = create_time_range(data['DATE'])
        except ValueError as e:
            if kind == EventKind.EVENT:
                logger.warning(f"event '{name}': {e}")
            else:
                logger.debug(f"{kind.value} '{name}': {e}")
            time_range = TimeRange(original=data['DATE'], formatted=data['DATE'])

        try:
            links = parse_links(table.columns.get_links(row), data['REGISTRATION'])
        except MalformedLinkError as e:
            raise e.with_context(field='LINK') from e

        return Event(
            kind=kind,
            name=Name.create(name),
            name_old=Name.create(name_old),
            time=time_range,
            old=time_range.is_before(self.context.today),
            status=flags.status,
            cancelled=flags.cancelled,
            obsolete=flags.obsolete,
            special=flags.special,
            location=location,
            details=details,
            details2=details2,
            details_text=html_to_text(details),
            main_link=Link.unnamed(data['URL']),
            links=links,
            raw_tags=sort_and_uniquify(tags),
            raw_series=series,
            meta=EventMeta(
                base_name=Name.create(data['NAME2']),
                seo_title=data['SEO']
            )
        )

    def normalize_parkrun(self, table: Table) -> List[ParkrunEvent]:
        """
        Normalize the weekly parkrun table.

        Args:
            table: Parkrun table

        Returns:
            List of ParkrunEvent objects in table order
        """
        today = self.context.today
        parkruns = []
        for line, row in enumerate(table.rows):
            try:
                data = _read_fields(table, row, PARKRUN_COLUMNS)
            except NormalizationError as e:
                raise e.with_context(table=table.name, row=line) from e

            temp = f"{data['TEMP']}°C" if data['TEMP'] else ''
            results = f"{self.context.parkrun_results_url}{data['RESULTS']}" if data['RESULTS'] else ''

            # only numbered runs can be "this week's" parkrun
            current_week = False
            if data['INDEX']:
                try:
                    day = parse_date(data['DATE'])
                except ValueError:
                    logger.warning(f"parkrun #{data['INDEX']}: cannot parse date '{data['DATE']}'")
                else:
                    current_week = day == today or (day < today < day + timedelta(days=7))

            parkruns.append(ParkrunEvent(
                current_week=current_week,
                index=data['INDEX'],
                date=data['DATE'],
                runners=data['RUNNERS'],
                temp=temp,
                special=data['SPECIAL'],
                cafe=data['CAFE'],
                results=results,
                report=data['REPORT'],
                author=data['AUTHOR'],
                photos=data['PHOTOS']
            ))
        return parkruns

    def normalize_tags(self, table: Table) -> List[Tag]:
        """Read tag descriptions; rows without name and description are ignored."""
        tags = []
        for line, row in enumerate(table.rows):
            try:
                data = _read_fields(table, row, TAG_COLUMNS)
            except NormalizationError as e:
                raise e.with_context(table=table.name, row=line) from e

            tag_id = sanitize_name(data['TAG'])
            if tag_id and (data['NAME'] or data['DESCRIPTION']):
                tags.append(Tag(
                    name=Name.with_id(data['NAME'], tag_id),
                    description=data['DESCRIPTION']
                ))
        return tags

    def normalize_series(self, table: Table) -> List[Serie]:
        series = []
        for line, row in enumerate(table.rows):
            try:
                data = _read_fields(table, row, SERIE_COLUMNS)
                links = parse_links(table.columns.get_links(row))
            except NormalizationError as e:
                raise e.with_context(table=table.name, row=line) from e

            if not data['NAME']:
                logger.warning(f"table '{table.name}', line {line}: skipping series with empty name")
                continue
            series.append(Serie(
                name=Name.create(data['NAME']),
                description=data['DESCRIPTION'],
                links=links
            ))
        return series
