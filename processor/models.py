"""Data models for calendar request processing."""
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, List, Optional


ACTION_ADD = 'add'
ACTION_QUERY = 'query'
ACTION_DELETE = 'delete'


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of whole days resolved from a request."""
    start_date: date
    end_date: date
    rule: Optional[str] = None


@dataclass(frozen=True)
class TemporalRule:
    """One entry of the ordered temporal rule table."""
    name: str
    pattern: re.Pattern
    resolve: Callable[[re.Match, date], Optional[DateRange]]


@dataclass(frozen=True)
class ActionClassification:
    """Action and extraction fields derived from request text."""
    action: str
    delete_all: bool
    search_term: str
    search_time: str


@dataclass(frozen=True)
class ClassificationResult:
    """Classified request with its resolved date range."""
    action: str
    start_date: date
    end_date: date
    search_term: str
    search_time: str
    delete_all: bool
    date_rule: Optional[str] = None

    def to_dict(self) -> dict:
        """Serialize to the wire shape used by callers."""
        return {
            'action': self.action,
            'startDate': self.start_date.isoformat(),
            'endDate': self.end_date.isoformat(),
            'searchTerm': self.search_term,
            'searchTime': self.search_time,
            'deleteAll': self.delete_all,
            'dateRule': self.date_rule
        }


@dataclass
class ParsedEvent:
    """Event extracted from a single VEVENT block."""
    uid: str
    summary: str
    start_time: str
    end_time: str
    display_time: str
    display_date: str
    event_date: str
    raw_block: str
    href: str = ''

    def to_dict(self) -> dict:
        return {
            'uid': self.uid,
            'summary': self.summary,
            'startTime': self.start_time,
            'endTime': self.end_time,
            'displayTime': self.display_time,
            'displayDate': self.display_date,
            'eventDate': self.event_date,
            'href': self.href,
            'icsData': self.raw_block
        }


@dataclass(frozen=True)
class MatchCriteria:
    """Search fields used to pick deletion candidates."""
    search_term: str = ''
    search_time: str = ''

    @classmethod
    def from_classification(cls, result: ClassificationResult) -> 'MatchCriteria':
        return cls(search_term=result.search_term, search_time=result.search_time)


@dataclass
class MatchResult:
    """Events matched for a day plus bookkeeping counts."""
    matches: List[ParsedEvent]
    match_count: int
    all_events_on_day: int
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'matches': [event.to_dict() for event in self.matches],
            'matchCount': self.match_count,
            'allEventsOnDay': self.all_events_on_day,
            'error': self.error
        }


@dataclass
class SplitEvent:
    """Standalone calendar document for one event."""
    uid: str
    calendar_document: str
    summary: str
    start_time: str
    end_time: str
    display_date: str
    passthrough: bool = False

    def to_dict(self) -> dict:
        return {
            'uid': self.uid,
            'calendarDocument': self.calendar_document,
            'summary': self.summary,
            'startTime': self.start_time,
            'endTime': self.end_time,
            'displayDate': self.display_date,
            'passthrough': self.passthrough
        }


@dataclass
class CalendarObject:
    """Calendar resource returned by a CalDAV REPORT."""
    href: str
    etag: str
    calendar_data: str


@dataclass
class StoreResult:
    """Result of a store operation."""
    saved: int
    deleted: int
    errors: list[str] = field(default_factory=list)
