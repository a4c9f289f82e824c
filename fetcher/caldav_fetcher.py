"""CalDAV fetcher for querying calendar events by date range."""
import logging
import re
import time
from datetime import date
from typing import List

import requests
from bs4 import BeautifulSoup

from processor.event_parser import EventRecordParser
from processor.models import CalendarObject, ParsedEvent

logger = logging.getLogger(__name__)

CALENDAR_QUERY_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<C:calendar-query xmlns:D="DAV:" xmlns:C="urn:ietf:params:xml:ns:caldav">
  <D:prop>
    <D:getetag/>
    <C:calendar-data/>
  </D:prop>
  <C:filter>
    <C:comp-filter name="VCALENDAR">
      <C:comp-filter name="VEVENT">
        <C:time-range start="{start}T000000Z" end="{end}T235959Z"/>
      </C:comp-filter>
    </C:comp-filter>
  </C:filter>
</C:calendar-query>"""

# Servers differ in namespace prefixes (d:, D:, cal:, C:, none)
RESPONSE_TAG = re.compile(r'^(?:[\w-]+:)?response$')
HREF_TAG = re.compile(r'^(?:[\w-]+:)?href$')
ETAG_TAG = re.compile(r'^(?:[\w-]+:)?getetag$')
CALENDAR_DATA_TAG = re.compile(r'^(?:[\w-]+:)?calendar-data$')


class CalDAVFetcher:
    """Client for the CalDAV calendar-query REPORT."""

    MAX_RETRIES = 3
    BASE_DELAY = 1  # seconds

    def __init__(self, url: str, username: str, password: str, timeout: int = 30):
        """
        Initialize the CalDAV fetcher.

        Args:
            url: CalDAV calendar collection URL
            username: CalDAV username
            password: CalDAV (app) password
            timeout: HTTP request timeout in seconds (default: 30)
        """
        self.url = url
        self.auth = (username, password)
        self.timeout = timeout
        self.parser = EventRecordParser()

    def query_events(self, start_date: date, end_date: date) -> List[CalendarObject]:
        """
        Fetch calendar objects with events in a date range.

        Args:
            start_date: First day of the range
            end_date: Last day of the range (inclusive)

        Returns:
            List of CalendarObject entries from the multistatus response

        Raises:
            requests.RequestException: If all retry attempts fail
        """
        logger.info(f"Querying calendar for {start_date}..{end_date}")

        body = CALENDAR_QUERY_TEMPLATE.format(
            start=start_date.strftime('%Y%m%d'),
            end=end_date.strftime('%Y%m%d')
        )
        xml_content = self._send_report(body)
        objects = self._parse_multistatus(xml_content)

        logger.info(f"Calendar query returned {len(objects)} events")
        return objects

    def fetch_events(self, start_date: date, end_date: date) -> List[ParsedEvent]:
        """
        Fetch and parse every event in a date range.

        Returns:
            List of ParsedEvent objects carrying their server href

        Raises:
            requests.RequestException: If all retry attempts fail
        """
        return [
            self.parser.parse(obj.calendar_data, href=obj.href)
            for obj in self.query_events(start_date, end_date)
        ]

    def fetch_day_events(self, day: date) -> List[ParsedEvent]:
        """Fetch and parse every event on a single day."""
        return self.fetch_events(day, day)

    def _send_report(self, body: str) -> str:
        """
        Send the REPORT request with retry logic.

        Args:
            body: calendar-query XML body

        Returns:
            Multistatus XML as string

        Raises:
            requests.RequestException: If all retry attempts fail
        """
        headers = {
            'Content-Type': 'application/xml; charset=utf-8',
            'Depth': '1'
        }

        for attempt in range(self.MAX_RETRIES):
            try:
                logger.info(f"Sending calendar REPORT (attempt {attempt + 1}/{self.MAX_RETRIES})")
                response = requests.request(
                    'REPORT',
                    self.url,
                    data=body.encode('utf-8'),
                    headers=headers,
                    auth=self.auth,
                    timeout=self.timeout
                )
                response.raise_for_status()
                return response.text

            except requests.RequestException as e:
                if attempt < self.MAX_RETRIES - 1:
                    delay = self.BASE_DELAY * (2 ** attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{self.MAX_RETRIES}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {self.MAX_RETRIES} retry attempts failed. Last error: {e}"
                    )
                    raise

    def _parse_multistatus(self, xml_content: str) -> List[CalendarObject]:
        """
        Parse calendar objects from a multistatus response.

        Args:
            xml_content: Multistatus XML from the server

        Returns:
            List of CalendarObject entries; responses without calendar data
            are skipped
        """
        soup = BeautifulSoup(xml_content, 'html.parser')
        objects = []

        for element in soup.find_all(RESPONSE_TAG):
            calendar_data = element.find(CALENDAR_DATA_TAG)
            if calendar_data is None or not calendar_data.get_text(strip=True):
                continue

            href = element.find(HREF_TAG)
            etag = element.find(ETAG_TAG)
            objects.append(CalendarObject(
                href=href.get_text(strip=True) if href else '',
                etag=etag.get_text(strip=True) if etag else '',
                calendar_data=calendar_data.get_text()
            ))

        return objects
