"""Action classification and search field extraction for calendar requests."""
import logging
import re
from typing import Tuple

from processor.models import (
    ACTION_ADD,
    ACTION_DELETE,
    ACTION_QUERY,
    ActionClassification,
)
from processor.temporal_resolver import DAY_FIRST_DATE, MONTH_FIRST_DATE

logger = logging.getLogger(__name__)

# Checked before query keywords: "cancel" wins over "what" or "calendar"
DELETE_KEYWORDS = ('cancel', 'delete', 'remove', 'drop', 'clear', 'wipe')

QUERY_KEYWORDS = (
    'what', 'show', 'list', 'schedule', 'calendar', 'busy', 'free',
    'do i have', 'am i', 'check', 'summary', 'tell me',
    "what's on", 'whats on'
)

DELETE_ALL_PATTERNS = tuple(re.compile(pattern) for pattern in (
    r'\b(all|every|each)\s*(my\s*)?(events?|appointments?|meetings?|calendar)?\b',
    r'\b(everything)\b',
    r'\b(clear|wipe)\s*(my\s*)?(calendar|schedule|day)?\b',
    r'\b(the\s*)?(whole|entire)\s*(day|calendar|schedule)?\b',
    r'\b(delete|cancel|remove|drop)\s+all\b',
))

# Applied in order; compound phrases go before the single words they contain
SEARCH_TERM_STRIP_PATTERNS: Tuple[re.Pattern, ...] = tuple(re.compile(pattern) for pattern in (
    r'\b(cancel|delete|remove|drop|clear|wipe)\b',
    r'\b(my|the|a|an)\b',
    r'\b(day before yesterday|day after tomorrow)\b',
    r'\b(tomorrow|today|tonight|yesterday)\b',
    r'\b\d+\s*days?\s*ago\b',
    r'\bin\s*\d+\s*days?\b',
    r'\b(on|at|for)\b',
    DAY_FIRST_DATE,
    MONTH_FIRST_DATE,
    r'\b\d{1,2}(:\d{2})?\s*(am|pm)?\b',
))

TIME_PATTERN = re.compile(r'\b(1[0-2]|0?[1-9])(?::([0-5]\d))?\s*(am|pm)\b')


class ActionClassifier:
    """Classifies request text as an add, query or delete action."""

    def classify(self, text: str) -> ActionClassification:
        """
        Classify a request and extract its search fields.

        Args:
            text: Request text (matched case-insensitively)

        Returns:
            ActionClassification; search_term is only filled for deletes that
            target specific events, search_time whenever a time is given
        """
        text = text.lower()
        action = self.detect_action(text)

        delete_all = action == ACTION_DELETE and self.is_delete_all(text)

        search_term = ''
        if action == ACTION_DELETE and not delete_all:
            search_term = self.extract_search_term(text)

        search_time = self.extract_search_time(text)

        logger.debug(
            f"Classified request as {action} "
            f"(delete_all={delete_all}, term='{search_term}', time='{search_time}')"
        )
        return ActionClassification(
            action=action,
            delete_all=delete_all,
            search_term=search_term,
            search_time=search_time
        )

    def detect_action(self, text: str) -> str:
        """
        Pick the request action from keywords; delete wins over query.

        Args:
            text: Lowercased request text

        Returns:
            'delete', 'query' or 'add' when no keyword is present
        """
        if any(keyword in text for keyword in DELETE_KEYWORDS):
            return ACTION_DELETE
        if any(keyword in text for keyword in QUERY_KEYWORDS):
            return ACTION_QUERY
        return ACTION_ADD

    def is_delete_all(self, text: str) -> bool:
        """
        Check whether a delete request targets every event on the day.

        Args:
            text: Lowercased request text

        Returns:
            True if any delete-all phrase ("everything", "whole day") matches
        """
        return any(pattern.search(text) for pattern in DELETE_ALL_PATTERNS)

    def extract_search_term(self, text: str) -> str:
        """
        Strip action, date and time words so the event title remains.

        An empty result means "any event on the resolved day".
        """
        for pattern in SEARCH_TERM_STRIP_PATTERNS:
            text = pattern.sub('', text)
        return re.sub(r'\s+', ' ', text).strip()

    def extract_search_time(self, text: str) -> str:
        """
        Extract an explicit 12-hour time as 24-hour HH:MM.

        Returns:
            "HH:MM" string, or "" when the text names no am/pm time
        """
        match = TIME_PATTERN.search(text)
        if not match:
            return ''

        hour = int(match.group(1))
        minutes = match.group(2) or '00'
        meridiem = match.group(3)

        if meridiem == 'pm' and hour != 12:
            hour += 12
        if meridiem == 'am' and hour == 12:
            hour = 0

        return f"{hour:02d}:{minutes}"
