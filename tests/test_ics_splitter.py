"""Unit tests for ICSEventSplitter."""
from unittest.mock import Mock

import pytest

from processor.event_parser import EventRecordParser
from processor.ics_splitter import DEFAULT_PRODUCT_ID, ICSEventSplitter

GENERATED_OUTPUT = (
    "BEGIN:VCALENDAR\\nVERSION:2.0\\nPRODID:-//Model//EN\\n"
    "BEGIN:VEVENT\\nUID:gym-1\\nDTSTART:20260122T070000\\nDTEND:20260122T080000\\n"
    "SUMMARY:Gym\\nEND:VEVENT\\n"
    "BEGIN:VEVENT\\nUID:lunch-1\\nDTSTART:20260122T123000\\nDTEND:20260122T133000\\n"
    "SUMMARY:Lunch with Sam\\nEND:VEVENT\\n"
    "END:VCALENDAR"
)


@pytest.fixture
def splitter():
    return ICSEventSplitter()


class TestICSEventSplitter:
    """Test cases for ICSEventSplitter class."""

    def test_split_escaped_newlines(self, splitter):
        events = splitter.split(GENERATED_OUTPUT)

        assert len(events) == 2
        assert events[0].uid == 'gym-1'
        assert events[0].summary == 'Gym'
        assert events[0].start_time == '07:00'
        assert events[0].end_time == '08:00'
        assert events[0].display_date == '22nd Jan'
        assert events[1].uid == 'lunch-1'
        assert events[1].summary == 'Lunch with Sam'
        assert events[1].start_time == '12:30'

    def test_each_document_is_standalone(self, splitter):
        events = splitter.split(GENERATED_OUTPUT)

        for event in events:
            document = event.calendar_document
            lines = document.split('\n')
            assert lines[0] == 'BEGIN:VCALENDAR'
            assert lines[1] == 'VERSION:2.0'
            assert lines[2] == f'PRODID:{DEFAULT_PRODUCT_ID}'
            assert lines[3] == 'CALSCALE:GREGORIAN'
            assert lines[-1] == 'END:VCALENDAR'
            assert document.count('BEGIN:VEVENT') == 1
            assert document.count('END:VEVENT') == 1
            assert event.passthrough is False

    def test_documents_reparse_to_the_same_event(self, splitter):
        parser = EventRecordParser()

        for event in splitter.split(GENERATED_OUTPUT):
            reparsed = parser.parse(event.calendar_document)
            assert reparsed.uid == event.uid
            assert reparsed.summary == event.summary
            assert reparsed.start_time == event.start_time

    def test_crlf_line_endings(self, splitter):
        text = "BEGIN:VEVENT\r\nUID:a\r\nSUMMARY:Call\r\nDTSTART:20260122T090000\r\nEND:VEVENT"

        events = splitter.split(text)

        assert len(events) == 1
        assert '\r' not in events[0].calendar_document
        assert events[0].summary == 'Call'

    def test_no_events_passes_content_through(self, splitter):
        text = "Sorry, I could not work out\\nwhen that event is.\r\n"

        events = splitter.split(text)

        assert len(events) == 1
        assert events[0].passthrough is True
        assert events[0].calendar_document == "Sorry, I could not work out\nwhen that event is.\n"

    def test_empty_input_passes_through(self, splitter):
        events = splitter.split('')

        assert len(events) == 1
        assert events[0].calendar_document == ''

    def test_missing_uids_are_generated_and_written(self, splitter):
        text = "\n".join([
            "BEGIN:VEVENT", "SUMMARY:One", "END:VEVENT",
            "BEGIN:VEVENT", "SUMMARY:Two", "END:VEVENT",
            "BEGIN:VEVENT", "SUMMARY:Three", "END:VEVENT",
        ])

        events = splitter.split(text)

        uids = [event.uid for event in events]
        assert len(set(uids)) == 3
        for event in events:
            assert event.uid.startswith('event-')
            assert f'UID:{event.uid}' in event.calendar_document

    def test_duplicate_uids_are_made_unique(self, splitter):
        block = "BEGIN:VEVENT\nUID:same\nSUMMARY:Repeat\nEND:VEVENT"

        events = splitter.split(f"{block}\n{block}")

        assert events[0].uid == 'same'
        assert events[1].uid != 'same'
        assert f'UID:{events[1].uid}' in events[1].calendar_document
        assert 'UID:same' not in events[1].calendar_document

    def test_missing_summary_defaults(self, splitter):
        events = splitter.split("BEGIN:VEVENT\nUID:x\nDTSTART;VALUE=DATE:20260301\nEND:VEVENT")

        assert events[0].summary == 'Untitled Event'
        assert events[0].start_time == ''
        assert events[0].display_date == '1st Mar'

    def test_failing_block_does_not_abort_batch(self):
        parser = EventRecordParser()
        good = parser.parse("BEGIN:VEVENT\nUID:good\nSUMMARY:Good\nEND:VEVENT")
        mock_parser = Mock()
        mock_parser.parse.side_effect = [ValueError('bad block'), good]
        mock_parser.generate_uid.side_effect = parser.generate_uid

        splitter = ICSEventSplitter(parser=mock_parser)
        events = splitter.split(
            "BEGIN:VEVENT\nSUMMARY:Bad\nEND:VEVENT\nBEGIN:VEVENT\nUID:good\nSUMMARY:Good\nEND:VEVENT"
        )

        assert len(events) == 2
        assert events[0].summary == 'Untitled Event'
        assert events[0].uid.startswith('event-')
        assert events[1].uid == 'good'

    def test_custom_product_id(self):
        splitter = ICSEventSplitter(product_id='-//Test//EN')

        events = splitter.split("BEGIN:VEVENT\nUID:a\nEND:VEVENT")

        assert 'PRODID:-//Test//EN' in events[0].calendar_document

    def test_to_dict(self, splitter):
        body = splitter.split(GENERATED_OUTPUT)[1].to_dict()

        assert body['uid'] == 'lunch-1'
        assert body['summary'] == 'Lunch with Sam'
        assert body['startTime'] == '12:30'
        assert body['endTime'] == '13:30'
        assert body['displayDate'] == '22nd Jan'
        assert body['calendarDocument'].startswith('BEGIN:VCALENDAR')
