"""AWS Lambda handler for the running events graph."""
import json
import logging
import os
import time
from datetime import date, datetime
from typing import Any, Dict

from eventgraph.context import DEFAULT_BASE_URL, DEFAULT_CITY, DEFAULT_PARKRUN_RESULTS_URL, BuildContext
from eventgraph.errors import GraphBuildError
from eventgraph.models import City, EventGraph, non_separators
from eventgraph.pipeline import build_graph
from linkcheck.checker import LinkChecker
from linkcheck.validator import LinkValidator
from sheets.google_sheets import GoogleSheetsSource
from storage.s3_backup import SheetBackupManager

ACTIONS = ('build', 'check_links', 'backup')


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure the root logger with a single JSON handler.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def _reference_date(event: Dict[str, Any]) -> date:
    """Reference date for old/new decisions: event['today'] or today at midnight."""
    if event.get('today'):
        return date.fromisoformat(event['today'])
    return datetime.now().date()


def _response(status_code: int, body: Dict[str, Any], start_time: float) -> Dict[str, Any]:
    body['duration_seconds'] = round(time.time() - start_time, 2)
    return {
        'statusCode': status_code,
        'body': json.dumps(body)
    }


def _graph_statistics(graph: EventGraph) -> Dict[str, int]:
    return {
        'events': graph.count_events(),
        'events_old': sum(non_separators(year.events) for year in graph.old_events_by_year),
        'events_obsolete': len(graph.events_obsolete),
        'groups': len(graph.groups),
        'shops': len(graph.shops),
        'tags': len(graph.tags),
        'series': len(graph.series),
        'series_old': len(graph.series_old),
        'parkrun_events': len(graph.parkrun_events)
    }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler.

    The payload's "action" selects what to do:
        build: fetch the spreadsheet and build the event graph (default)
        check_links: build the graph and validate all outbound links
        backup: store an ODS export of the spreadsheet in S3

    Args:
        event: Invocation payload
        context: Lambda context object

    Returns:
        Response dict with statusCode and a JSON body
    """
    event = event or {}

    # Read configuration from environment variables
    sheet_id = os.environ.get('GOOGLE_SHEET_ID', '')
    api_key = os.environ.get('GOOGLE_API_KEY', '')
    log_level = os.environ.get('LOG_LEVEL', 'INFO')
    timeout_seconds = int(os.environ.get('TIMEOUT_SECONDS', '30'))
    backup_bucket = os.environ.get('BACKUP_BUCKET', '')
    backup_prefix = os.environ.get('BACKUP_PREFIX', 'backups/')
    city = City(
        name=os.environ.get('CITY_NAME', DEFAULT_CITY.name),
        lat=float(os.environ.get('CITY_LAT', DEFAULT_CITY.lat)),
        lon=float(os.environ.get('CITY_LON', DEFAULT_CITY.lon))
    )
    parkrun_results_url = os.environ.get('PARKRUN_RESULTS_URL', DEFAULT_PARKRUN_RESULTS_URL)
    base_url = os.environ.get('BASE_URL', DEFAULT_BASE_URL)
    action = event.get('action', 'build')

    setup_logging(log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    logger.info(
        f"Lambda execution started (action: {action})",
        extra={'sheet_id': sheet_id, 'timeout_seconds': timeout_seconds}
    )

    if action not in ACTIONS:
        logger.error(f"Unknown action: {action}")
        return _response(400, {
            'message': f"Unknown action '{action}'",
            'allowed_actions': list(ACTIONS)
        }, start_time)

    try:
        source = GoogleSheetsSource(sheet_id, api_key, timeout=timeout_seconds)

        if action == 'backup':
            if not backup_bucket:
                return _response(400, {'message': 'BACKUP_BUCKET is not configured'}, start_time)
            try:
                logger.info("Exporting spreadsheet for backup")
                content = source.export_spreadsheet()
                key = SheetBackupManager(backup_bucket, backup_prefix).store(sheet_id, content)
            except Exception as e:
                logger.error(
                    f"Backup failed: {str(e)}",
                    extra={'error_type': type(e).__name__},
                    exc_info=True
                )
                return _response(500, {
                    'message': 'Backup failed',
                    'error': str(e),
                    'error_type': type(e).__name__
                }, start_time)
            return _response(200, {
                'message': 'Backup completed successfully',
                'key': key,
                'size_bytes': len(content)
            }, start_time)

        # Fetch tables with error handling
        try:
            logger.info("Fetching spreadsheet tables")
            tables = source.fetch_tables()
            logger.info(f"Fetched {len(tables)} tables")
        except Exception as e:
            logger.error(
                f"Failed to fetch spreadsheet tables after retries: {str(e)}",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            return _response(500, {
                'message': 'Failed to fetch spreadsheet tables',
                'error': str(e),
                'error_type': type(e).__name__
            }, start_time)

        # Build the graph; structural input errors are fatal
        try:
            logger.info("Building event graph")
            build_context = BuildContext(
                today=_reference_date(event),
                city=city,
                parkrun_results_url=parkrun_results_url,
                base_url=base_url
            )
            graph = build_graph(tables, build_context)
        except GraphBuildError as e:
            logger.error(
                f"Cannot build event graph: {str(e)}",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            return _response(500, {
                'message': 'Failed to build event graph',
                'error': str(e),
                'error_type': type(e).__name__
            }, start_time)

        body: Dict[str, Any] = {'statistics': _graph_statistics(graph)}

        if action == 'check_links':
            logger.info("Checking links")
            validator = LinkValidator(LinkChecker(timeout=timeout_seconds))
            results = validator.check_graph(graph)
            body['message'] = 'Link check completed'
            body['links_checked'] = len(results)
            body['invalid_links'] = [
                {
                    'event': result.check.event.name.orig,
                    'role': result.check.name,
                    'url': result.check.url,
                    'error': result.error
                }
                for result in results if not result.ok
            ]
        else:
            body['message'] = 'Graph built successfully'

        logger.info("Lambda execution completed successfully", extra=body['statistics'])
        return _response(200, body, start_time)

    except Exception as e:
        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _response(500, {
            'message': 'Execution failed',
            'error': str(e),
            'error_type': type(e).__name__
        }, start_time)
