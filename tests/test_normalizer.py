"""Unit tests for the record normalizer."""
import logging
from datetime import date

import pytest

from eventgraph.context import BuildContext, StatusTable
from eventgraph.crossref import CrossReferenceBuilder
from eventgraph.errors import DuplicateColumnError, MalformedLinkError, MissingColumnError, MissingTableError
from eventgraph.models import City, EventGraph, EventKind, LinkKind
from eventgraph.normalizer import RecordNormalizer, find_sheet_names, parse_links, split_tags
from eventgraph.table import Columns, Table

EVENT_HEADER = [
    'DATE', 'NAME', 'NAME2', 'SEO', 'STATUS', 'URL', 'DESCRIPTION',
    'LOCATION', 'COORDINATES', 'REGISTRATION', 'TAGS', 'LINK1', 'LINK2'
]
PARKRUN_HEADER = [
    'DATE', 'INDEX', 'RUNNERS', 'TEMP', 'SPECIAL', 'CAFE',
    'RESULTS', 'REPORT', 'AUTHOR', 'PHOTOS'
]


def event_row(**cells):
    """Row in EVENT_HEADER order; unspecified cells are empty."""
    defaults = {'DATE': '12.04.2025', 'NAME': 'Testlauf', 'URL': 'https://testlauf.example.com'}
    defaults.update(cells)
    return [defaults.get(title, '') for title in EVENT_HEADER]


def event_table(*rows, name='Events 2025'):
    return Table.from_values(name, [EVENT_HEADER] + list(rows))


@pytest.fixture
def normalizer():
    context = BuildContext(today=date(2025, 1, 1), city=City('Freiburg', 48.0, 7.85))
    return RecordNormalizer(context)


class TestTable:
    """Test cases for table and column access."""

    def test_empty_values_raise_missing_table(self):
        with pytest.raises(MissingTableError) as exc_info:
            Table.from_values('Events 2025', [])

        assert exc_info.value.table == 'Events 2025'

    def test_duplicate_title_raises(self):
        with pytest.raises(DuplicateColumnError) as exc_info:
            Table.from_values('Groups', [['NAME', 'URL', 'NAME'], ['a', 'b', 'c']])

        assert exc_info.value.table == 'Groups'
        assert exc_info.value.field == 'NAME'
        assert "table 'Groups'" in str(exc_info.value)

    def test_short_rows_read_as_empty(self):
        columns = Columns.from_header(['A', 'B', 'C'])

        assert columns.get('C', ['x']) == ''
        assert columns.get('A', ['x']) == 'x'

    def test_missing_column_raises(self):
        columns = Columns.from_header(['A'])

        with pytest.raises(MissingColumnError):
            columns.get('B', ['x'])

    def test_links_are_read_until_first_missing_column(self):
        columns = Columns.from_header(['LINK1', 'LINK2', 'LINK4'])

        assert columns.get_links(['a', 'b', 'd']) == ['a', 'b']


class TestFindSheetNames:
    """Test cases for assigning sheet titles to roles."""

    def test_all_roles_found(self):
        names = find_sheet_names([
            'Events 2024', 'Events 2025', 'Groups', 'Shops', 'Parkrun',
            'Tags', 'Series', 'Notizen ignore', 'Misc'
        ])

        assert names.events == ['Events 2024', 'Events 2025']
        assert names.groups == 'Groups'
        assert names.series == 'Series'

    def test_single_events_sheet_is_not_enough(self):
        with pytest.raises(MissingTableError, match="'Events' sheets"):
            find_sheet_names(['Events 2025', 'Groups', 'Shops', 'Parkrun', 'Tags', 'Series'])

    def test_missing_groups_sheet(self):
        with pytest.raises(MissingTableError, match='Groups'):
            find_sheet_names(['Events 2024', 'Events 2025', 'Shops', 'Parkrun', 'Tags', 'Series'])


class TestParseLinks:
    """Test cases for "name|url" link cells."""

    def test_links_in_order(self):
        links = parse_links(['Ergebnisse|https://r.example.com', '', 'Fotos|https://f.example.com'])

        assert [(link.name, link.url) for link in links] == [
            ('Ergebnisse', 'https://r.example.com'),
            ('Fotos', 'https://f.example.com'),
        ]

    def test_registration_comes_first_and_replaces_named_registration(self):
        links = parse_links(
            ['Anmeldung|https://old.example.com', 'Fotos|https://f.example.com'],
            registration='https://reg.example.com'
        )

        assert [(link.name, link.url) for link in links] == [
            ('Anmeldung', 'https://reg.example.com'),
            ('Fotos', 'https://f.example.com'),
        ]
        assert links[0].kind == LinkKind.REGISTRATION

    @pytest.mark.parametrize('cell', ['nur-ein-link', 'a|b|c'])
    def test_malformed_link_raises(self, cell):
        with pytest.raises(MalformedLinkError):
            parse_links([cell])


def test_split_tags_separates_series():
    tags, series = split_tags('Berg Lauf, serie:Trailcup, Trail, serie Nachtlauf-Cup')

    assert tags == ['berg-lauf', 'trail']
    assert series == ['Trailcup', 'Nachtlauf-Cup']


@pytest.mark.parametrize('status, cancelled, special, obsolete, shown', [
    ('', False, False, False, ''),
    ('abgesagt', True, False, False, ''),
    ('abgesagt wegen Hochwasser', True, False, False, 'abgesagt wegen Hochwasser'),
    ('geschlossen', True, False, False, 'geschlossen'),
    ('spezial', False, True, False, ''),
    ('obsolete', False, False, True, ''),
    ('verschoben', False, False, False, 'verschoben'),
])
def test_status_decoding(status, cancelled, special, obsolete, shown):
    flags = StatusTable().decode(status)

    assert flags.cancelled == cancelled
    assert flags.special == special
    assert flags.obsolete == obsolete
    assert flags.status == shown
    assert not flags.skip


class TestNormalizeEvents:
    """Test cases for events, groups and shops."""

    def test_full_row(self, normalizer):
        table = event_table(event_row(
            NAME='Schauinsland-Lauf 2025|Schauinslandlauf 2025',
            NAME2='Schauinsland-Lauf',
            SEO='Berglauf auf den Schauinsland',
            URL='https://schauinslandlauf.example.com',
            DESCRIPTION='<b>Berglauf</b> über 11km|Mit Shuttle zurück',
            LOCATION='Freiburg-Günterstal',
            COORDINATES='48.009, 7.85',
            REGISTRATION='https://reg.example.com',
            TAGS='Berglauf, serie:Trailcup, Trail',
            LINK1='Anmeldung|https://dup.example.com',
            LINK2='Ergebnisse|https://results.example.com'
        ))

        events = normalizer.normalize_events(table, EventKind.EVENT)

        assert len(events) == 1
        event = events[0]
        assert event.kind == EventKind.EVENT
        assert event.name.orig == 'Schauinsland-Lauf 2025'
        assert event.name.sanitized == 'schauinsland-lauf-2025'
        assert event.name_old.orig == 'Schauinslandlauf 2025'
        assert event.time.start == date(2025, 4, 12)
        assert not event.old
        assert event.details == '<b>Berglauf</b> über 11km'
        assert event.details2 == 'Mit Shuttle zurück'
        assert event.details_text == 'Berglauf über 11km'
        assert event.raw_tags == ['berglauf', 'trail']
        assert event.raw_series == ['Trailcup']
        assert event.tags is None
        assert event.series is None
        assert [link.name for link in event.links] == ['Anmeldung', 'Ergebnisse']
        assert event.links[0].url == 'https://reg.example.com'
        assert event.location.has_geo()
        assert event.location.direction == 'N'
        assert event.meta.base_name.sanitized == 'schauinsland-lauf'
        assert event.meta.seo_title == 'Berglauf auf den Schauinsland'

    def test_past_event_is_old(self, normalizer):
        events = normalizer.normalize_events(event_table(event_row(DATE='10.03.2024')), EventKind.EVENT)

        assert events[0].old

    def test_event_on_reference_date_is_not_old(self, normalizer):
        events = normalizer.normalize_events(event_table(event_row(DATE='01.01.2025')), EventKind.EVENT)

        assert not events[0].old

    def test_unparsable_date_keeps_event_without_time(self, normalizer, caplog):
        with caplog.at_level(logging.WARNING):
            events = normalizer.normalize_events(
                event_table(event_row(DATE='Termin folgt')), EventKind.EVENT
            )

        assert len(events) == 1
        assert events[0].time.is_zero()
        assert events[0].time.original == 'Termin folgt'
        assert not events[0].old
        assert 'Termin folgt' in caplog.text

    def test_email_main_link_becomes_mailto(self, normalizer):
        events = normalizer.normalize_events(
            event_table(event_row(URL='info@lauftreff.example.com')), EventKind.GROUP
        )

        assert events[0].main_link.url == 'mailto:info@lauftreff.example.com'
        assert events[0].main_link.is_email

    def test_foreign_location_adds_country_tag(self, normalizer):
        events = normalizer.normalize_events(
            event_table(event_row(LOCATION='Mulhouse, FR', TAGS='Trail')), EventKind.EVENT
        )

        assert events[0].raw_tags == ['frankreich', 'trail']

    def test_status_flags_are_applied(self, normalizer):
        table = event_table(
            event_row(NAME='Lauf A', STATUS='abgesagt'),
            event_row(NAME='Lauf B', STATUS='obsolete'),
            event_row(NAME='Lauf C', STATUS='spezial'),
        )

        a, b, c = normalizer.normalize_events(table, EventKind.EVENT)

        assert a.cancelled and a.status == ''
        assert b.obsolete
        assert c.special

    def test_rows_missing_essentials_are_skipped(self, normalizer, caplog):
        table = event_table(
            event_row(NAME='Temporär', STATUS='temp'),
            event_row(NAME='Ohne Datum', DATE=''),
            event_row(NAME=''),
            event_row(NAME='Ohne URL', URL=''),
            event_row(NAME='Gültig'),
        )

        with caplog.at_level(logging.WARNING):
            events = normalizer.normalize_events(table, EventKind.EVENT)

        assert [event.name.orig for event in events] == ['Gültig']
        assert 'empty date' in caplog.text
        assert 'empty name' in caplog.text
        assert 'empty url' in caplog.text

    def test_groups_do_not_need_a_date(self, normalizer):
        events = normalizer.normalize_events(
            event_table(event_row(NAME='Lauftreff Ost', DATE=''), name='Groups'), EventKind.GROUP
        )

        assert len(events) == 1
        assert events[0].time.is_zero()

    def test_malformed_link_carries_context(self, normalizer):
        table = event_table(
            event_row(NAME='Lauf A'),
            event_row(NAME='Lauf B', LINK1='kaputt'),
        )

        with pytest.raises(MalformedLinkError) as exc_info:
            normalizer.normalize_events(table, EventKind.EVENT)

        error = exc_info.value
        assert error.table == 'Events 2025'
        assert error.row == 1
        assert error.field == 'LINK'
        assert str(error) == "table 'Events 2025', line 1, field 'LINK': bad link: <kaputt>"

    def test_missing_column_carries_table_name(self, normalizer):
        header = [title for title in EVENT_HEADER if title != 'SEO']
        table = Table.from_values('Shops', [header, ['', 'Laufladen']])

        with pytest.raises(MissingColumnError) as exc_info:
            normalizer.normalize_events(table, EventKind.SHOP)

        assert exc_info.value.table == 'Shops'
        assert exc_info.value.field == 'SEO'


class TestNormalizeParkrun:
    """Test cases for the parkrun table."""

    def test_parkrun_rows(self):
        context = BuildContext(
            today=date(2025, 4, 15),
            parkrun_results_url='https://parkrun.example.com/results/'
        )
        table = Table.from_values('Parkrun', [
            PARKRUN_HEADER,
            ['05.04.2025', '41', '88', '6', '', '', '41', '', '', ''],
            ['12.04.2025', '42', '95', '8', 'Jubiläum', 'Café Pause', '42', 'Bericht', 'Anna', 'Fotos'],
            ['19.04.2025', '', '', '', '', '', '', '', '', ''],
        ])

        runs = RecordNormalizer(context).normalize_parkrun(table)

        assert [run.current_week for run in runs] == [False, True, False]
        assert runs[1].temp == '8°C'
        assert runs[1].results == 'https://parkrun.example.com/results/42'
        assert runs[1].special == 'Jubiläum'
        assert runs[2].temp == ''
        assert runs[2].results == ''

    def test_run_on_reference_date_is_current(self):
        context = BuildContext(today=date(2025, 4, 12))
        table = Table.from_values('Parkrun', [
            PARKRUN_HEADER,
            ['Sa. 12.04.2025', '42', '', '', '', '', '', '', '', ''],
        ])

        runs = RecordNormalizer(context).normalize_parkrun(table)

        assert runs[0].current_week


def test_normalize_tags(normalizer):
    table = Table.from_values('Tags', [
        ['TAG', 'NAME', 'DESCRIPTION'],
        ['Berg Lauf', 'Berglauf', 'Läufe mit vielen Höhenmetern'],
        ['trail', '', ''],
    ])

    tags = normalizer.normalize_tags(table)

    assert len(tags) == 1
    assert tags[0].name.sanitized == 'berg-lauf'
    assert tags[0].name.orig == 'Berglauf'
    assert tags[0].description == 'Läufe mit vielen Höhenmetern'


def test_normalize_series(normalizer, caplog):
    table = Table.from_values('Series', [
        ['NAME', 'DESCRIPTION', 'LINK1'],
        ['Trailcup', 'Fünf Trailläufe', 'Website|https://trailcup.example.com'],
        ['', 'ohne Namen', ''],
    ])

    with caplog.at_level(logging.WARNING):
        series = normalizer.normalize_series(table)

    assert len(series) == 1
    assert series[0].name.sanitized == 'trailcup'
    assert series[0].links[0].url == 'https://trailcup.example.com'
    assert 'empty name' in caplog.text


def test_split_tags_keeps_each_series_once():
    tags, series = split_tags('serie:Trailcup, Trail, serie:trailcup, serie: TRAILCUP')

    assert tags == ['trail']
    assert series == ['Trailcup']


def test_repeated_series_counts_event_once(normalizer):
    events = normalizer.normalize_events(
        event_table(event_row(TAGS='serie:Trailcup, serie:trailcup')), EventKind.EVENT
    )
    graph = EventGraph(events=events)

    CrossReferenceBuilder(normalizer.context).collect_series(graph)

    assert len(events[0].series) == 1
    assert graph.series[0].num() == 1
