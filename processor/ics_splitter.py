"""Splitter for generated calendar text containing one or more events."""
import logging
import re
from typing import List, Optional

from processor.event_parser import VEVENT_PATTERN, EventRecordParser
from processor.models import SplitEvent

logger = logging.getLogger(__name__)

DEFAULT_PRODUCT_ID = '-//Calendar Assistant//Request Pipeline//EN'


class ICSEventSplitter:
    """Splits ICS text into standalone single-event calendar documents."""

    def __init__(
        self,
        parser: Optional[EventRecordParser] = None,
        product_id: str = DEFAULT_PRODUCT_ID
    ):
        """
        Initialize the splitter.

        Args:
            parser: Parser applied to each VEVENT block
            product_id: PRODID written into every generated document
        """
        self.parser = parser or EventRecordParser()
        self.product_id = product_id

    def split(self, raw_text: str) -> List[SplitEvent]:
        """
        Split ICS text into one record per VEVENT block.

        Text without any VEVENT block is returned as a single pass-through
        record so that user content is never dropped.

        Args:
            raw_text: ICS text, possibly with literal "\\n" sequences

        Returns:
            List of SplitEvent objects in input order
        """
        content = self.normalize(raw_text)
        blocks = VEVENT_PATTERN.findall(content)

        if not blocks:
            logger.info("No VEVENT blocks found, passing content through")
            return [SplitEvent(
                uid='',
                calendar_document=content,
                summary='',
                start_time='',
                end_time='',
                display_date='',
                passthrough=True
            )]

        results = []
        seen_uids = set()

        for index, block in enumerate(blocks):
            try:
                event = self.parser.parse(block)
                uid, summary = event.uid, event.summary
                start_time, end_time = event.start_time, event.end_time
                display_date = event.display_date
            except Exception as e:
                logger.warning(f"Failed to parse VEVENT block {index + 1}: {e}")
                uid, summary = self.parser.generate_uid(), EventRecordParser.UNTITLED
                start_time, end_time, display_date = '', '', ''

            while uid in seen_uids:
                uid = self.parser.generate_uid()
            seen_uids.add(uid)

            results.append(SplitEvent(
                uid=uid,
                calendar_document=self.wrap(self._with_uid(block, uid)),
                summary=summary,
                start_time=start_time,
                end_time=end_time,
                display_date=display_date
            ))

        logger.info(f"Split {len(results)} events from calendar text")
        return results

    def normalize(self, raw_text: str) -> str:
        """Convert literal "\\n" sequences and CRLF/CR line breaks to LF."""
        content = (raw_text or '').replace('\\n', '\n')
        return content.replace('\r\n', '\n').replace('\r', '\n')

    def _with_uid(self, block: str, uid: str) -> str:
        """Make the block's UID line carry `uid` (generated or de-duplicated)."""
        if re.search(rf'^UID[^:\n]*:\s*{re.escape(uid)}\s*$', block, re.MULTILINE):
            return block

        uid_line = re.compile(r'^UID[^:\n]*:.*$', re.MULTILINE)
        if uid_line.search(block):
            return uid_line.sub(lambda match: f'UID:{uid}', block, count=1)
        return block.replace('BEGIN:VEVENT', f'BEGIN:VEVENT\nUID:{uid}', 1)

    def wrap(self, vevent: str) -> str:
        """Wrap a single VEVENT block in a minimal VCALENDAR document."""
        return '\n'.join([
            'BEGIN:VCALENDAR',
            'VERSION:2.0',
            f'PRODID:{self.product_id}',
            'CALSCALE:GREGORIAN',
            vevent,
            'END:VCALENDAR'
        ])
