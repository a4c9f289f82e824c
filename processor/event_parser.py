"""Parser for single VEVENT blocks."""
import logging
import re
import time
import uuid
from datetime import datetime
from typing import Optional, Tuple

from processor.models import ParsedEvent

logger = logging.getLogger(__name__)

DATE_VALUE_PATTERN = r'(\d{8})(?:T(\d{2})(\d{2})(\d{2})?)?'
VEVENT_PATTERN = re.compile(r'BEGIN:VEVENT[\s\S]*?END:VEVENT')


def ordinal(day: int) -> str:
    """Return the day with its English ordinal suffix (1st, 22nd, 13th)."""
    if 4 <= day <= 20:
        return f"{day}th"
    suffix = {1: 'st', 2: 'nd', 3: 'rd'}.get(day % 10, 'th')
    return f"{day}{suffix}"


class EventRecordParser:
    """Extracts uid, title and times from one VEVENT block."""

    UNTITLED = 'Untitled Event'
    ALL_DAY = 'All day'

    def parse(self, block: str, href: str = '') -> ParsedEvent:
        """
        Parse a VEVENT block into a ParsedEvent.

        Missing fields fall back to defaults rather than failing: a generated
        uid, "Untitled Event" and empty time fields.

        Args:
            block: Text from BEGIN:VEVENT to END:VEVENT (or a whole
                VCALENDAR document containing one event)
            href: Server location of the event, when known

        Returns:
            ParsedEvent object
        """
        unfolded = self.unfold(block)

        # VTIMEZONE sections carry their own DTSTART lines
        vevent = VEVENT_PATTERN.search(unfolded)
        if vevent:
            unfolded = vevent.group(0)

        uid = self._extract_property(unfolded, 'UID') or self.generate_uid()
        summary = self._extract_property(unfolded, 'SUMMARY') or self.UNTITLED

        start = self._extract_date_time(unfolded, 'DTSTART')
        end = self._extract_date_time(unfolded, 'DTEND')

        event_date, display_date = '', ''
        start_time, display_time = '', ''
        if start:
            event_date, display_date = self._format_date(start[0])
            start_time = start[1]
            display_time = self._format_display_time(start_time) if start_time else self.ALL_DAY

        return ParsedEvent(
            uid=uid,
            summary=summary,
            start_time=start_time,
            end_time=end[1] if end else '',
            display_time=display_time,
            display_date=display_date,
            event_date=event_date,
            raw_block=block,
            href=href
        )

    def generate_uid(self) -> str:
        """Generate a uid of the form event-<millis>-<9 char suffix>."""
        return f"event-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"

    def unfold(self, block: str) -> str:
        """Join RFC 5545 continuation lines onto the line they continue."""
        return re.sub(r'\r?\n[ \t]', '', block)

    def _extract_property(self, block: str, name: str) -> Optional[str]:
        match = re.search(
            rf'^{name}(?:;[^:\n]*)?:(.*)$', block, re.MULTILINE
        )
        if not match:
            return None

        value = match.group(1).strip()
        value = value.replace('\\,', ',').replace('\\;', ';').replace('\\\\', '\\')
        return value or None

    def _extract_date_time(self, block: str, name: str) -> Optional[Tuple[str, str]]:
        """
        Extract a DTSTART/DTEND value verbatim, without timezone conversion.

        Returns:
            Tuple of (YYYYMMDD, "HH:MM" or "") or None if the property is absent
        """
        match = re.search(
            rf'^{name}[^:\n]*:{DATE_VALUE_PATTERN}', block, re.MULTILINE
        )
        if not match:
            return None

        time_str = f"{match.group(2)}:{match.group(3)}" if match.group(2) else ''
        return match.group(1), time_str

    def _format_date(self, date_str: str) -> Tuple[str, str]:
        """
        Format YYYYMMDD as ISO date and display date ("22nd Jan").

        Returns:
            Tuple of (YYYY-MM-DD, display date); empty strings if invalid
        """
        try:
            date_obj = datetime.strptime(date_str, '%Y%m%d')
        except ValueError:
            logger.warning(f"Invalid date value in event: {date_str}")
            return '', ''

        return date_obj.strftime('%Y-%m-%d'), f"{ordinal(date_obj.day)} {date_obj.strftime('%b')}"

    def _format_display_time(self, start_time: str) -> str:
        hour, minute = start_time.split(':')
        hour_num = int(hour)
        meridiem = 'PM' if hour_num >= 12 else 'AM'
        hour_num = hour_num % 12 or 12
        return f"{hour_num}:{minute} {meridiem}"
