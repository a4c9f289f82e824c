"""Event matcher for selecting deletion candidates."""
import logging
from typing import List

from processor.models import MatchCriteria, MatchResult, ParsedEvent

logger = logging.getLogger(__name__)


class EventMatcher:
    """Filters a day's events by search term and/or start time."""

    def match(self, events: List[ParsedEvent], criteria: MatchCriteria) -> MatchResult:
        """
        Find the events a delete request refers to.

        Args:
            events: Candidate events, usually every event on one day
            criteria: Search term and 24-hour search time (either may be empty)

        Returns:
            MatchResult with matches in input order
        """
        search_term = criteria.search_term or ''
        search_time = criteria.search_time or ''

        # Without a term every event on the day is a candidate, time or not
        if not search_term:
            matches = list(events)
        else:
            matches = [
                event for event in events
                if self._is_match(event, search_term, search_time)
            ]

        logger.info(
            f"Matched {len(matches)} of {len(events)} events "
            f"(term='{search_term}', time='{search_time}')"
        )
        return MatchResult(
            matches=matches,
            match_count=len(matches),
            all_events_on_day=len(events)
        )

    def _is_match(self, event: ParsedEvent, search_term: str, search_time: str) -> bool:
        if not search_term:
            return True
        if search_time:
            return (
                self.term_matches(event.summary, search_term) and
                self.time_matches(event.start_time, search_time)
            )
        return self.term_matches(event.summary, search_term)

    def term_matches(self, summary: str, search_term: str) -> bool:
        """
        Bidirectional containment: "test" matches "Test Event" and
        "delete test event meeting" matches it too.
        """
        summary_lower = summary.lower()
        search_lower = search_term.lower()
        if not summary_lower:
            return False
        return search_lower in summary_lower or summary_lower in search_lower

    def time_matches(self, start_time: str, search_time: str) -> bool:
        return start_time == search_time
