"""Concurrent validation of all outbound links of the event graph."""
import logging
import queue
import threading
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol

from eventgraph.models import Event, EventGraph
from linkcheck.checker import LinkChecker

logger = logging.getLogger(__name__)

PER_DOMAIN_LIMIT = 2


class Checker(Protocol):
    def check(self, url: str) -> None:
        ...


@dataclass(frozen=True)
class CheckUrl:
    """A URL to check, with the event it belongs to and its role ("main" or "link")."""
    url: str
    event: Event
    name: str


@dataclass(frozen=True)
class LinkCheckResult:
    check: CheckUrl
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def extract_domain(url: str) -> str:
    """
    Host part of a URL.

    Args:
        url: URL like "https://example.com/sub?x#y"; text without a
            scheme is cut at the first "/", "?" or "#"

    Returns:
        Host, e.g. "example.com"
    """
    rest = url.split('://', 1)[1] if '://' in url else url
    for stop in ('/', '?', '#'):
        rest = rest.split(stop, 1)[0]
    return rest


def collect_check_urls(graph: EventGraph) -> List[CheckUrl]:
    """
    Collect the main link and all external links of every upcoming event.

    E-mail main links are not checked.
    """
    urls = []
    for event in graph.events:
        if event.is_separator:
            continue
        if event.main_link is not None and not event.main_link.is_email:
            urls.append(CheckUrl(url=event.main_link.url, event=event, name='main'))
        for link in event.links:
            if link.is_external:
                urls.append(CheckUrl(url=link.url, event=event, name='link'))
    return urls


class LinkValidator:
    """
    Checks many links concurrently, at most `per_domain_limit` at a time per domain.

    Each domain gets its own small pool of workers draining that domain's
    links; a worker waits only for a free slot of its own domain, so slow
    domains never hold back others. Failures are reported per link and
    never abort the pass.
    """

    def __init__(self, checker: Optional[Checker] = None, per_domain_limit: int = PER_DOMAIN_LIMIT):
        self.checker = checker or LinkChecker()
        self.per_domain_limit = per_domain_limit

    def check_graph(self, graph: EventGraph) -> List[LinkCheckResult]:
        """Validate all links of the graph and log every failure."""
        results = self.validate(collect_check_urls(graph))
        failures = [result for result in results if not result.ok]
        for result in failures:
            logger.warning(
                f"Invalid {result.check.name} link in event "
                f"'{result.check.event.name.orig}': {result.check.url} -> {result.error}"
            )
        logger.info(f"Checked {len(results)} links, {len(failures)} invalid")
        return results

    def validate(self, urls: List[CheckUrl]) -> List[LinkCheckResult]:
        """
        Check all URLs and wait for every result.

        Args:
            urls: URLs to check

        Returns:
            One LinkCheckResult per URL, in completion order
        """
        if not urls:
            return []

        by_domain: Dict[str, List[CheckUrl]] = defaultdict(list)
        for check in urls:
            by_domain[extract_domain(check.url)].append(check)

        results: 'queue.Queue[LinkCheckResult]' = queue.Queue(maxsize=len(urls))
        workers = sum(min(self.per_domain_limit, len(checks)) for checks in by_domain.values())
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix='linkcheck') as executor:
            for domain, checks in by_domain.items():
                logger.info(f"Checking {len(checks)} links for domain {domain}")
                pending: 'queue.Queue[CheckUrl]' = queue.Queue()
                for check in checks:
                    pending.put(check)
                gate = threading.BoundedSemaphore(self.per_domain_limit)
                for _ in range(min(self.per_domain_limit, len(checks))):
                    executor.submit(self._drain_domain, pending, gate, results)

            collected = [results.get() for _ in range(len(urls))]

        return collected

    def _drain_domain(
        self,
        pending: 'queue.Queue[CheckUrl]',
        gate: threading.BoundedSemaphore,
        results: 'queue.Queue[LinkCheckResult]'
    ) -> None:
        while True:
            try:
                check = pending.get_nowait()
            except queue.Empty:
                return
            self._check_one(check, gate, results)

    def _check_one(
        self,
        check: CheckUrl,
        gate: threading.BoundedSemaphore,
        results: 'queue.Queue[LinkCheckResult]'
    ) -> None:
        error = None
        with gate:
            try:
                self.checker.check(check.url)
            except Exception as e:
                error = str(e) or type(e).__name__
        results.put(LinkCheckResult(check=check, error=error))
