"""Tag and series indexes with back-references to events, groups and shops."""
import logging
from typing import List, Tuple, Union

from eventgraph.context import BuildContext
from eventgraph.errors import CrossReferenceError, DoubleResolutionError, UnknownEventKindError
from eventgraph.models import Event, EventGraph, EventKind, Serie, Tag
from eventgraph.temporal import add_month_separators, add_month_separators_descending

logger = logging.getLogger(__name__)

Index = Union[Tag, Serie]


def _add_backlink(index: Index, event: Event) -> None:
    if event.kind == EventKind.EVENT:
        if event.old:
            index.events_old.append(event)
        else:
            index.events.append(event)
    elif event.kind == EventKind.GROUP:
        index.groups.append(event)
    elif event.kind == EventKind.SHOP:
        index.shops.append(event)
    else:
        raise UnknownEventKindError(f"unexpected kind for '{event.name.orig}': {event.kind}")


def _graph_lists(graph: EventGraph) -> List[Tuple[str, List[Event]]]:
    return [
        ('events', graph.events),
        ('events_old', graph.events_old),
        ('groups', graph.groups),
        ('shops', graph.shops),
    ]


def _sort_by_name(items: List[Index]) -> List[Index]:
    return sorted(items, key=lambda item: item.name.sanitized)


class CrossReferenceBuilder:
    """
    Resolves raw tag and series strings into shared Tag/Serie objects.

    Registries live in the BuildContext; they are seeded from the
    authoritative tag and series tables before any event is resolved.
    """

    def __init__(self, context: BuildContext):
        self.context = context

    def collect_tags(self, graph: EventGraph) -> None:
        """
        Resolve the tags of all events, groups and shops and rebuild graph.tags.

        Raises:
            CrossReferenceError: If an event was already resolved or has an unknown kind
        """
        for tag in graph.tags:
            self.context.tags[tag.name.sanitized] = tag

        for list_name, events in _graph_lists(graph):
            try:
                for event in events:
                    self._resolve_tags(event)
            except CrossReferenceError as e:
                raise type(e)(f"collecting tags for {list_name}: {e}") from e

        tags = list(self.context.tags.values())
        for tag in tags:
            tag.events = add_month_separators(tag.events)
            tag.events_old = add_month_separators_descending(tag.events_old)
        graph.tags = _sort_by_name(tags)
        logger.info(f"Collected {len(graph.tags)} tags")

    def _resolve_tags(self, event: Event) -> None:
        if event.is_separator:
            return
        if event.tags is not None:
            raise DoubleResolutionError(f"tags of '{event.name.orig}' are already resolved")

        event.tags = []
        for raw in event.raw_tags:
            tag = self.context.get_tag(raw)
            event.tags.append(tag)
            _add_backlink(tag, event)

    def collect_series(self, graph: EventGraph) -> None:
        """
        Resolve the series of all events, groups and shops.

        Unknown series are logged and created on the fly. Afterwards the
        series are split into active ones (with upcoming events, groups or
        shops) and old ones, each sorted by name.

        Raises:
            CrossReferenceError: If an event was already resolved or has an unknown kind
        """
        for serie in graph.series + graph.series_old:
            self.context.series[serie.name.sanitized] = serie

        for list_name, events in _graph_lists(graph):
            try:
                for event in events:
                    self._resolve_series(event)
            except CrossReferenceError as e:
                raise type(e)(f"collecting series for {list_name}: {e}") from e

        active = []
        old = []
        for serie in self.context.series.values():
            serie.events = add_month_separators(serie.events)
            serie.events_old = add_month_separators_descending(serie.events_old)
            if serie.is_old():
                old.append(serie)
            else:
                active.append(serie)

        graph.series = _sort_by_name(active)
        graph.series_old = _sort_by_name(old)
        logger.info(f"Collected {len(graph.series)} active and {len(graph.series_old)} old series")

    def _resolve_series(self, event: Event) -> None:
        if event.is_separator:
            return
        if event.series is not None:
            raise DoubleResolutionError(f"series of '{event.name.orig}' are already resolved")

        event.series = []
        for raw in event.raw_series:
            serie, known = self.context.get_serie(raw)
            if not known:
                logger.warning(f"Event '{event.name.orig}' has unknown series tag: {raw}")
            event.series.append(serie)
            _add_backlink(serie, event)
