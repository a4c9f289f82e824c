"""AWS Lambda handler for calendar request understanding."""
import json
import logging
import os
import time
from datetime import date
from typing import Any, Callable, Dict, Tuple

import requests

from fetcher.caldav_fetcher import CalDAVFetcher
from processor.event_matcher import EventMatcher
from processor.ics_splitter import DEFAULT_PRODUCT_ID, ICSEventSplitter
from processor.models import ACTION_DELETE, MatchCriteria, MatchResult
from processor.request_classifier import RequestClassifier
from storage.caldav_store import CalDAVStore


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

        return json.dumps(log_data)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


logger = logging.getLogger(__name__)


def load_settings() -> Dict[str, Any]:
    """Read configuration from environment variables."""
    return {
        'caldav_url': os.environ.get('CALDAV_URL', ''),
        'caldav_username': os.environ.get('CALDAV_USERNAME', ''),
        'caldav_password': os.environ.get('CALDAV_PASSWORD', ''),
        'log_level': os.environ.get('LOG_LEVEL', 'INFO'),
        'timeout_seconds': int(os.environ.get('TIMEOUT_SECONDS', '30')),
        'product_id': os.environ.get('ICS_PRODUCT_ID', DEFAULT_PRODUCT_ID)
    }


def _fetcher(settings: Dict[str, Any]) -> CalDAVFetcher:
    return CalDAVFetcher(
        url=settings['caldav_url'],
        username=settings['caldav_username'],
        password=settings['caldav_password'],
        timeout=settings['timeout_seconds']
    )


def _store(settings: Dict[str, Any]) -> CalDAVStore:
    return CalDAVStore(
        url=settings['caldav_url'],
        username=settings['caldav_username'],
        password=settings['caldav_password'],
        timeout=settings['timeout_seconds']
    )


def _reference_date(event: Dict[str, Any]) -> str:
    return event.get('today') or date.today().isoformat()


def _classify(event: Dict[str, Any]):
    return RequestClassifier().classify(event.get('request', ''), _reference_date(event))


def _calendar_content(event: Dict[str, Any]) -> str:
    return event.get('content') or event.get('output') or event.get('text') or ''


def handle_classify(event: Dict[str, Any], settings: Dict[str, Any]) -> Tuple[int, Dict[str, Any]]:
    return 200, _classify(event).to_dict()


def handle_query(event: Dict[str, Any], settings: Dict[str, Any]) -> Tuple[int, Dict[str, Any]]:
    """List events in the requested date range."""
    if event.get('startDate'):
        start = date.fromisoformat(event['startDate'])
        end = date.fromisoformat(event.get('endDate') or event['startDate'])
    else:
        classification = _classify(event)
        start, end = classification.start_date, classification.end_date

    try:
        events = _fetcher(settings).fetch_events(start, end)
    except requests.RequestException as e:
        logger.error(
            f"Calendar query failed: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return 502, {
            'message': 'Failed to query calendar',
            'error': str(e),
            'error_type': type(e).__name__
        }

    return 200, {
        'startDate': start.isoformat(),
        'endDate': end.isoformat(),
        'events': [parsed.to_dict() for parsed in events],
        'eventCount': len(events)
    }


def find_matches(
    event: Dict[str, Any],
    settings: Dict[str, Any]
) -> Tuple[date, MatchCriteria, MatchResult]:
    """
    Fetch the events on the requested day and match them against the
    request's search fields. A failed calendar query yields an empty
    MatchResult carrying the error instead of raising.
    """
    if event.get('startDate'):
        day = date.fromisoformat(event['startDate'])
        criteria = MatchCriteria(
            search_term=event.get('searchTerm') or '',
            search_time=event.get('searchTime') or ''
        )
    else:
        classification = _classify(event)
        day = classification.start_date
        criteria = MatchCriteria.from_classification(classification)

    try:
        candidates = _fetcher(settings).fetch_day_events(day)
    except requests.RequestException as e:
        logger.error(
            f"Calendar query failed: {str(e)}",
            extra={'error_type': type(e).__name__}
        )
        return day, criteria, MatchResult(
            matches=[],
            match_count=0,
            all_events_on_day=0,
            error=f"Calendar query failed: {str(e)}"
        )

    return day, criteria, EventMatcher().match(candidates, criteria)


def handle_find_matches(event: Dict[str, Any], settings: Dict[str, Any]) -> Tuple[int, Dict[str, Any]]:
    day, criteria, result = find_matches(event, settings)
    return 200, {
        'startDate': day.isoformat(),
        'searchTerm': criteria.search_term,
        'searchTime': criteria.search_time,
        **result.to_dict()
    }


def handle_split(event: Dict[str, Any], settings: Dict[str, Any]) -> Tuple[int, Dict[str, Any]]:
    splitter = ICSEventSplitter(product_id=settings['product_id'])
    events = splitter.split(_calendar_content(event))
    return 200, {
        'events': [split_event.to_dict() for split_event in events],
        'eventCount': len(events)
    }


def handle_save(event: Dict[str, Any], settings: Dict[str, Any]) -> Tuple[int, Dict[str, Any]]:
    """Split generated calendar text and store every event."""
    splitter = ICSEventSplitter(product_id=settings['product_id'])
    events = splitter.split(_calendar_content(event))

    result = _store(settings).save_events(events)
    return 200, {
        'message': 'Save completed',
        'events': [split_event.to_dict() for split_event in events],
        'statistics': {'events_saved': result.saved},
        'errors': result.errors
    }


def handle_delete(event: Dict[str, Any], settings: Dict[str, Any]) -> Tuple[int, Dict[str, Any]]:
    """
    Delete the events a request refers to.

    A single match is deleted directly; several matches are returned for
    disambiguation unless the caller passes the chosen `uids`. Requests that
    target the whole day delete every event on it.
    """
    classification = _classify(event)
    if classification.action != ACTION_DELETE:
        return 400, {
            'message': 'Request is not a delete request',
            'classification': classification.to_dict()
        }

    if classification.delete_all:
        day_event = {'startDate': classification.start_date.isoformat()}
    else:
        day_event = {
            'startDate': classification.start_date.isoformat(),
            'searchTerm': classification.search_term,
            'searchTime': classification.search_time
        }
    day, criteria, match_result = find_matches(day_event, settings)

    if match_result.error:
        return 502, {
            'message': 'Failed to query calendar',
            'error': match_result.error,
            **match_result.to_dict()
        }

    targets = match_result.matches
    if event.get('uids'):
        chosen = set(event['uids'])
        targets = [match for match in targets if match.uid in chosen]
    elif len(targets) > 1 and not classification.delete_all:
        return 200, {
            'message': 'Multiple events match, choose which to delete',
            'requiresConfirmation': True,
            **match_result.to_dict()
        }

    result = _store(settings).delete_events(targets)
    return 200, {
        'message': 'Delete completed',
        'requiresConfirmation': False,
        'statistics': {'events_deleted': result.deleted},
        'errors': result.errors,
        **match_result.to_dict()
    }


OPERATIONS: Dict[str, Callable[[Dict[str, Any], Dict[str, Any]], Tuple[int, Dict[str, Any]]]] = {
    'classify': handle_classify,
    'query': handle_query,
    'find_matches': handle_find_matches,
    'split': handle_split,
    'save': handle_save,
    'delete': handle_delete
}


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function for calendar requests.

    Args:
        event: Payload with an "operation" key and its inputs
        context: Lambda context object

    Returns:
        Response dict with statusCode and JSON body
    """
    settings = load_settings()
    setup_logging(settings['log_level'])

    start_time = time.time()
    operation = event.get('operation', 'classify')
    logger.info(
        f"Lambda execution started",
        extra={'operation': operation}
    )

    handler = OPERATIONS.get(operation)
    if handler is None:
        logger.warning(f"Unknown operation: {operation}")
        return _response(400, {
            'message': f"Unknown operation '{operation}'",
            'operations': sorted(OPERATIONS)
        }, start_time)

    try:
        status_code, body = handler(event, settings)
    except ValueError as e:
        logger.warning(f"Invalid input for {operation}: {e}")
        return _response(400, {
            'message': 'Invalid input',
            'error': str(e),
            'error_type': type(e).__name__
        }, start_time)
    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return _response(500, {
            'message': f"Operation '{operation}' failed",
            'error': str(e),
            'error_type': type(e).__name__
        }, start_time)

    logger.info(
        f"Lambda execution completed",
        extra={'operation': operation, 'status_code': status_code}
    )
    return _response(status_code, body, start_time)


def _response(status_code: int, body: Dict[str, Any], start_time: float) -> Dict[str, Any]:
    body['duration_seconds'] = round(time.time() - start_time, 2)
    return {
        'statusCode': status_code,
        'body': json.dumps(body)
    }
