"""
Validation service for user input.

Everything a user types (app ids, questions, filters) is validated here
before any backend call is made. Backend payloads are never validated
this way; they go through the record normalizer instead.
"""

import re
from typing import Iterable

from review_intel.models.schemas import TimelineView
from review_intel.utils.errors import ValidationError
from review_intel.utils.logger import get_logger

logger = get_logger(__name__)


class ValidationService:
    """Service for validating and cleaning user input."""

    NON_DIGITS = re.compile(r"[^0-9]")
    MAX_QUERY_LENGTH = 2000
    ISSUE_FILTERS = ("all", "active", "resolved", "critical", "high", "medium", "low")
    REQUEST_FILTERS = ("all", "competitive", "high", "medium", "low")

    def clean_app_id(self, raw: str) -> str:
        """
        Strip every non-digit, so pasted App Store URLs and "id123" work.

        Example:
            >>> ValidationService().clean_app_id("https://apps.apple.com/app/id389801252")
            '389801252'
        """
        return self.NON_DIGITS.sub("", str(raw or ""))

    def validate_app_id(self, raw: str) -> str:
        """Return the cleaned app id or raise if nothing numeric is left."""
        cleaned = self.clean_app_id(raw)
        if not cleaned:
            logger.warning("Rejected app id", raw=raw)
            raise ValidationError(
                code="INVALID_APP_ID",
                message="Please enter a valid App Store ID",
            )
        return cleaned

    def validate_competitor_ids(self, raw_ids: Iterable[str]) -> list[str]:
        """Clean competitor ids, dropping blanks and duplicates but keeping order."""
        cleaned: list[str] = []
        for raw in raw_ids:
            app_id = self.clean_app_id(raw)
            if app_id and app_id not in cleaned:
                cleaned.append(app_id)
        if not cleaned:
            raise ValidationError(
                code="INVALID_COMPETITOR_IDS",
                message="At least one competitor App Store ID is required",
            )
        return cleaned

    def validate_query(self, query: str) -> str:
        """Sanitize a natural-language question; empty questions are rejected."""
        sanitized = self.sanitize_text(query or "", max_length=self.MAX_QUERY_LENGTH)
        if not sanitized:
            raise ValidationError(code="EMPTY_QUERY", message="Please enter a question")
        return sanitized

    def validate_view(self, view: str) -> str:
        try:
            return TimelineView((view or "").lower()).value
        except ValueError:
            valid = ", ".join(v.value for v in TimelineView)
            raise ValidationError(
                code="INVALID_VIEW",
                message=f"Invalid timeline view '{view}'. Valid: {valid}",
            )

    def sanitize_text(self, text: str, max_length: int = 1000) -> str:
        """Sanitize and truncate text content."""
        sanitized = re.sub(r"<[^>]+>", "", text)
        sanitized = re.sub(r"\s+", " ", sanitized).strip()
        return sanitized[:max_length] if len(sanitized) > max_length else sanitized
