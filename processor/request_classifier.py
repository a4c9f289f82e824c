"""Top-level request classification combining action and date resolution."""
import logging
import re
from datetime import date, datetime
from typing import Optional, Union

from processor.action_classifier import ActionClassifier
from processor.models import ClassificationResult
from processor.temporal_resolver import TemporalPhraseResolver

logger = logging.getLogger(__name__)

# Added by the chat bridge in front of every message
BRIDGE_METADATA_PATTERN = re.compile(r'\[current local time:.*?\]', re.IGNORECASE)


class RequestClassifier:
    """Single entry point for understanding a calendar request."""

    def __init__(
        self,
        action_classifier: Optional[ActionClassifier] = None,
        resolver: Optional[TemporalPhraseResolver] = None
    ):
        self.action_classifier = action_classifier or ActionClassifier()
        self.resolver = resolver or TemporalPhraseResolver()

    def classify(
        self,
        text: str,
        reference_date: Union[date, str]
    ) -> ClassificationResult:
        """
        Classify a free-text calendar request.

        Args:
            text: Raw request text, possibly prefixed with bridge metadata
            reference_date: Date treated as "today", as a date or YYYY-MM-DD

        Returns:
            ClassificationResult with action, date range and search fields

        Raises:
            ValueError: If reference_date is a string that is not YYYY-MM-DD
        """
        reference = self._parse_reference_date(reference_date)
        request = self.clean_request(text)

        classification = self.action_classifier.classify(request)
        date_range = self.resolver.resolve(request, reference)

        result = ClassificationResult(
            action=classification.action,
            start_date=date_range.start_date,
            end_date=date_range.end_date,
            search_term=classification.search_term,
            search_time=classification.search_time,
            delete_all=classification.delete_all,
            date_rule=date_range.rule
        )

        logger.info(
            f"Classified request as {result.action} for "
            f"{result.start_date}..{result.end_date}",
            extra={'date_rule': result.date_rule, 'delete_all': result.delete_all}
        )
        return result

    def clean_request(self, text: str) -> str:
        return BRIDGE_METADATA_PATTERN.sub('', text or '').lower()

    def _parse_reference_date(self, reference_date: Union[date, str]) -> date:
        if isinstance(reference_date, datetime):
            return reference_date.date()
        if isinstance(reference_date, date):
            return reference_date
        return datetime.strptime(reference_date.strip(), '%Y-%m-%d').date()
