"""Builds the finished event graph from the input tables."""
import logging
from typing import List, Mapping

from eventgraph.calendar_export import add_calendar_fields
from eventgraph.context import BuildContext
from eventgraph.crossref import CrossReferenceBuilder
from eventgraph.errors import MissingTableError
from eventgraph.models import Event, EventGraph, EventKind
from eventgraph.normalizer import RecordNormalizer, find_sheet_names
from eventgraph.proximity import find_upcoming_near_events
from eventgraph.table import Table
from eventgraph import temporal

logger = logging.getLogger(__name__)


def _table(tables: Mapping[str, Table], name: str) -> Table:
    table = tables.get(name)
    if table is None:
        raise MissingTableError(f"table '{name}' was not fetched", table=name)
    return table


def build_graph(tables: Mapping[str, Table], context: BuildContext) -> EventGraph:
    """
    Run all stages on a snapshot of the input tables.

    Stages run strictly one after another: normalization, ordering
    checks, sibling and prev/next linkage, past/future split with month
    separators, nearby events, and finally tag and series indexes.

    Args:
        tables: Tables keyed by sheet title
        context: Per-run context with reference date and registries

    Returns:
        The finished EventGraph

    Raises:
        GraphBuildError: If the input is structurally broken
    """
    names = find_sheet_names(list(tables.keys()))
    normalizer = RecordNormalizer(context)

    events: List[Event] = []
    for sheet in names.events:
        events.extend(normalizer.normalize_events(_table(tables, sheet), EventKind.EVENT))
    groups = normalizer.normalize_events(_table(tables, names.groups), EventKind.GROUP)
    shops = normalizer.normalize_events(_table(tables, names.shops), EventKind.SHOP)

    graph = EventGraph(
        parkrun_events=normalizer.normalize_parkrun(_table(tables, names.parkrun)),
        tags=normalizer.normalize_tags(_table(tables, names.tags)),
        series=normalizer.normalize_series(_table(tables, names.series)),
    )

    temporal.validate_date_order(events)
    temporal.validate_name_order(groups)
    temporal.validate_name_order(shops)

    events, graph.events_obsolete = temporal.split_obsolete(events)
    graph.groups, graph.groups_obsolete = temporal.split_obsolete(groups)
    graph.shops, graph.shops_obsolete = temporal.split_obsolete(shops)

    temporal.find_prev_next_events(events)
    temporal.find_siblings(events, context.today)

    future, past = temporal.split_events(events)
    graph.events = temporal.add_month_separators(future)
    find_upcoming_near_events(graph.events, graph.events)
    find_upcoming_near_events(past, graph.events)

    graph.events_old = temporal.add_month_separators_descending(temporal.reverse(past))
    temporal.change_registration_links(past)

    builder = CrossReferenceBuilder(context)
    builder.collect_tags(graph)
    builder.collect_series(graph)

    graph.old_events_by_year = temporal.group_by_year(graph.events_old)
    add_calendar_fields(future + past, context.base_url)

    logger.info(
        f"Built graph: {len(future)} upcoming events, {len(past)} past events, "
        f"{len(graph.groups)} groups, {len(graph.shops)} shops, "
        f"{len(graph.tags)} tags, {len(graph.series)} series"
    )
    return graph
