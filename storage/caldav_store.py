"""CalDAV store for calendar write operations."""
import logging
from typing import List
from urllib.parse import quote, urljoin

import requests

from processor.models import ParsedEvent, SplitEvent, StoreResult

logger = logging.getLogger(__name__)


class CalDAVStore:
    """Stores and deletes single-event calendar documents on a CalDAV server."""

    def __init__(self, url: str, username: str, password: str, timeout: int = 30):
        """
        Initialize the store.

        Args:
            url: CalDAV calendar collection URL
            username: CalDAV username
            password: CalDAV (app) password
            timeout: HTTP request timeout in seconds (default: 30)
        """
        self.url = url if url.endswith('/') else f"{url}/"
        self.auth = (username, password)
        self.timeout = timeout
        logger.info(f"Initialized CalDAVStore for collection: {self.url}")

    def put_event(self, uid: str, calendar_document: str) -> str:
        """
        Create or replace the calendar resource for one event.

        Args:
            uid: Event uid, used as the resource name
            calendar_document: Complete VCALENDAR document

        Returns:
            URL of the stored resource

        Raises:
            requests.RequestException: If the server rejects the request
        """
        resource_url = self.resource_url(uid)
        response = requests.put(
            resource_url,
            data=calendar_document.encode('utf-8'),
            headers={'Content-Type': 'text/calendar; charset=utf-8'},
            auth=self.auth,
            timeout=self.timeout
        )
        response.raise_for_status()

        logger.info(f"Stored event {uid}")
        return resource_url

    def save_events(self, events: List[SplitEvent]) -> StoreResult:
        """
        Store split events one resource per event.

        Pass-through records are not calendar documents and are reported as
        errors; a failing event does not stop the remaining ones.

        Args:
            events: List of SplitEvent objects

        Returns:
            StoreResult with the count of saved events and error messages
        """
        if not events:
            return StoreResult(saved=0, deleted=0)

        logger.info(f"Saving {len(events)} events to calendar")
        saved = 0
        errors = []

        for event in events:
            if event.passthrough:
                errors.append("Content contains no calendar events")
                continue

            try:
                self.put_event(event.uid, event.calendar_document)
                saved += 1
            except requests.RequestException as e:
                error_msg = f"Error saving event '{event.summary}' ({event.uid}): {e}"
                logger.error(error_msg)
                errors.append(error_msg)

        logger.info(f"Successfully saved {saved} events")
        return StoreResult(saved=saved, deleted=0, errors=errors)

    def delete_event(self, event: ParsedEvent) -> None:
        """
        Delete one event by its href, or by its uid when no href is known.

        A 404 response counts as already deleted.

        Raises:
            requests.RequestException: If the server rejects the request
        """
        target = urljoin(self.url, event.href) if event.href else self.resource_url(event.uid)
        response = requests.delete(target, auth=self.auth, timeout=self.timeout)

        if response.status_code == 404:
            logger.warning(f"Event {event.uid} was already gone from {target}")
            return

        response.raise_for_status()
        logger.info(f"Deleted event {event.uid}")

    def delete_events(self, events: List[ParsedEvent]) -> StoreResult:
        """
        Delete events, continuing after individual failures.

        Args:
            events: List of ParsedEvent objects to delete

        Returns:
            StoreResult with the count of deleted events and error messages
        """
        if not events:
            return StoreResult(saved=0, deleted=0)

        logger.info(f"Deleting {len(events)} events from calendar")
        deleted = 0
        errors = []

        for event in events:
            try:
                self.delete_event(event)
                deleted += 1
            except requests.RequestException as e:
                error_msg = f"Error deleting event '{event.summary}' ({event.uid}): {e}"
                logger.error(error_msg)
                errors.append(error_msg)

        logger.info(f"Successfully deleted {deleted} events")
        return StoreResult(saved=0, deleted=deleted, errors=errors)

    def resource_url(self, uid: str) -> str:
        return urljoin(self.url, f"{quote(uid, safe='')}.ics")
