"""Unit tests for EventRecordParser."""
import pytest

from processor.event_parser import EventRecordParser, ordinal

TIMED_BLOCK = """BEGIN:VEVENT
UID:dentist-123@example.com
DTSTAMP:20260120T090000Z
DTSTART;TZID=Europe/London:20260122T150000
DTEND;TZID=Europe/London:20260122T160000
SUMMARY:Dentist appointment
END:VEVENT"""

ALL_DAY_BLOCK = """BEGIN:VEVENT
UID:holiday-1
DTSTART;VALUE=DATE:20260126
DTEND;VALUE=DATE:20260127
SUMMARY:Bank holiday
END:VEVENT"""


@pytest.fixture
def parser():
    return EventRecordParser()


def synthesize_block(uid: str, summary: str, date: str, start_time: str, end_time: str) -> str:
    """Build a VEVENT block from extracted fields."""
    lines = ['BEGIN:VEVENT', f'UID:{uid}', f'SUMMARY:{summary}']
    if start_time:
        lines.append(f"DTSTART:{date}T{start_time.replace(':', '')}00")
    else:
        lines.append(f'DTSTART;VALUE=DATE:{date}')
    if end_time:
        lines.append(f"DTEND:{date}T{end_time.replace(':', '')}00")
    lines.append('END:VEVENT')
    return '\n'.join(lines)


class TestEventRecordParser:
    """Test cases for EventRecordParser class."""

    def test_parse_timed_event(self, parser):
        event = parser.parse(TIMED_BLOCK, href='/cal/dentist.ics')

        assert event.uid == 'dentist-123@example.com'
        assert event.summary == 'Dentist appointment'
        assert event.start_time == '15:00'
        assert event.end_time == '16:00'
        assert event.display_time == '3:00 PM'
        assert event.display_date == '22nd Jan'
        assert event.event_date == '2026-01-22'
        assert event.href == '/cal/dentist.ics'
        assert event.raw_block == TIMED_BLOCK

    def test_parse_all_day_event(self, parser):
        event = parser.parse(ALL_DAY_BLOCK)

        assert event.start_time == ''
        assert event.end_time == ''
        assert event.display_time == 'All day'
        assert event.display_date == '26th Jan'
        assert event.event_date == '2026-01-26'

    def test_missing_fields_fall_back(self, parser):
        event = parser.parse("BEGIN:VEVENT\nEND:VEVENT")

        assert event.summary == 'Untitled Event'
        assert event.uid.startswith('event-')
        assert event.start_time == ''
        assert event.display_time == ''
        assert event.event_date == ''

    def test_generated_uids_are_unique(self, parser):
        uids = {parser.generate_uid() for _ in range(200)}

        assert len(uids) == 200

    def test_summary_with_parameters_and_escapes(self, parser):
        block = "BEGIN:VEVENT\nSUMMARY;LANGUAGE=en:Lunch\\, then coffee\nEND:VEVENT"

        assert parser.parse(block).summary == 'Lunch, then coffee'

    def test_folded_lines_are_unfolded(self, parser):
        block = "BEGIN:VEVENT\r\nUID:abc\r\nSUMMARY:Quarterly planning\r\n  with finance\r\nEND:VEVENT"

        event = parser.parse(block)

        assert event.summary == 'Quarterly planning with finance'
        assert event.uid == 'abc'

    def test_timezone_component_is_ignored(self, parser):
        document = "\n".join([
            "BEGIN:VCALENDAR",
            "BEGIN:VTIMEZONE",
            "TZID:Europe/London",
            "BEGIN:STANDARD",
            "DTSTART:19701025T020000",
            "END:STANDARD",
            "END:VTIMEZONE",
            TIMED_BLOCK,
            "END:VCALENDAR"
        ])

        event = parser.parse(document)

        assert event.start_time == '15:00'
        assert event.event_date == '2026-01-22'

    def test_utc_time_taken_verbatim(self, parser):
        block = "BEGIN:VEVENT\nUID:x\nDTSTART:20260122T093000Z\nSUMMARY:Call\nEND:VEVENT"

        event = parser.parse(block)

        assert event.start_time == '09:30'
        assert event.display_time == '9:30 AM'

    def test_invalid_date_value(self, parser):
        block = "BEGIN:VEVENT\nUID:x\nDTSTART:20261345T100000\nEND:VEVENT"

        event = parser.parse(block)

        assert event.event_date == ''
        assert event.display_date == ''
        assert event.start_time == '10:00'

    def test_display_time_noon_and_midnight(self, parser):
        assert parser._format_display_time('12:15') == '12:15 PM'
        assert parser._format_display_time('00:05') == '12:05 AM'

    def test_extraction_is_idempotent(self, parser):
        first = parser.parse(TIMED_BLOCK)
        rebuilt = synthesize_block(
            first.uid, first.summary, first.event_date.replace('-', ''),
            first.start_time, first.end_time
        )
        second = parser.parse(rebuilt)
        third = parser.parse(synthesize_block(
            second.uid, second.summary, second.event_date.replace('-', ''),
            second.start_time, second.end_time
        ))

        for event in (second, third):
            assert event.uid == first.uid
            assert event.summary == first.summary
            assert event.start_time == first.start_time
            assert event.end_time == first.end_time
            assert event.display_date == first.display_date


class TestOrdinal:
    """Test cases for ordinal suffixes."""

    def test_ordinals(self):
        assert ordinal(1) == '1st'
        assert ordinal(2) == '2nd'
        assert ordinal(3) == '3rd'
        assert ordinal(4) == '4th'
        assert ordinal(11) == '11th'
        assert ordinal(12) == '12th'
        assert ordinal(13) == '13th'
        assert ordinal(21) == '21st'
        assert ordinal(22) == '22nd'
        assert ordinal(31) == '31st'
