"""
Report content filtering

Keeps reports that carry a recent, explicit calendar date and, optionally,
mention one of a list of keywords (usually river names).
"""

import re
from datetime import datetime
from typing import List, Optional, Iterable

import dateparser

from fishtales.core.base import Report
from fishtales.core.logging import get_logger
from fishtales.core.url_manager import includes_any


_MONTH = (
    r'(?:jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|aug(?:ust)?'
    r'|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)'
)
_DAY = r'\d{1,2}(?:st|nd|rd|th)?'

DATE_PATTERNS = [
    # June 19, 2025 / Jun 19th 2025
    re.compile(rf'\b{_MONTH}\.?\s+{_DAY},?\s+\d{{4}}\b', re.IGNORECASE),
    # 19 June 2025 / 19th of June, 2025
    re.compile(rf'\b{_DAY}\s+(?:of\s+)?{_MONTH}\.?,?\s+\d{{4}}\b', re.IGNORECASE),
    # June 2025
    re.compile(rf'\b{_MONTH}\.?,?\s+\d{{4}}\b', re.IGNORECASE),
    # 2025-06-19 / 2025/06/19
    re.compile(r'\b\d{4}[-/.]\d{1,2}[-/.]\d{1,2}\b'),
    # 6/19/2025 / 06-19-2025
    re.compile(r'\b\d{1,2}[-/.]\d{1,2}[-/.]\d{4}\b'),
]

_ORDINAL = re.compile(r'(\d)(?:st|nd|rd|th)\b', re.IGNORECASE)


class DateExtractor:
    """
    Finds the most recent explicit calendar date in a block of text.

    Only dates written with a four-digit year count, and only years within
    the last `max_years_back` years up to the current year are accepted.
    """

    def __init__(self, max_years_back: int = 5):
        self.max_years_back = max_years_back
        self.dateparser_settings = {
            'PREFER_DAY_OF_MONTH': 'first',
            'PREFER_DATES_FROM': 'past',
            'RETURN_AS_TIMEZONE_AWARE': False,
            'DATE_ORDER': 'MDY',
        }

    def candidates(self, text: str) -> List[str]:
        """Date-like substrings with an explicit year"""
        found = []
        for pattern in DATE_PATTERNS:
            found.extend(match.group(0) for match in pattern.finditer(text))
        return found

    def parse(self, candidate: str) -> Optional[datetime]:
        cleaned = _ORDINAL.sub(r'\1', candidate)
        cleaned = re.sub(r'\bof\s+', '', cleaned, flags=re.IGNORECASE)
        settings = dict(self.dateparser_settings)
        if re.match(r'^\d{4}', cleaned):
            settings['DATE_ORDER'] = 'YMD'
        return dateparser.parse(cleaned, settings=settings)

    def extract(self, text: str, now: Optional[datetime] = None) -> Optional[datetime]:
        if not text:
            return None

        current_year = (now or datetime.now()).year
        valid = []
        for candidate in self.candidates(text):
            parsed = self.parse(candidate)
            if parsed is None:
                continue
            if current_year - self.max_years_back <= parsed.year <= current_year:
                valid.append(parsed)

        return max(valid) if valid else None


class ContentFilter:
    """
    Drops reports that are undated, older than `max_age_days`, or (when
    keyword filtering is on) mention none of the keywords. Input order is
    preserved.
    """

    def __init__(self, date_extractor: Optional[DateExtractor] = None):
        self.date_extractor = date_extractor or DateExtractor()
        self.logger = get_logger('content_filter')

    def filter(self, reports: Iterable[Report], max_age_days: int,
               filter_by_keywords: bool = False, keyword_list: Optional[List[str]] = None,
               now: Optional[datetime] = None) -> List[Report]:
        now = now or datetime.now()
        keyword_list = keyword_list or []
        kept = []
        dropped = {'undated': 0, 'stale': 0, 'keyword': 0}

        for report in reports:
            text = str(report)
            report_date = self.date_extractor.extract(text, now=now)

            if report_date is None:
                dropped['undated'] += 1
                continue
            if (now.date() - report_date.date()).days > max_age_days:
                dropped['stale'] += 1
                continue
            if filter_by_keywords and not includes_any(text, keyword_list):
                dropped['keyword'] += 1
                continue
            kept.append(report)

        self.logger.info(
            f"Kept {len(kept)} reports (dropped {dropped['undated']} undated, "
            f"{dropped['stale']} older than {max_age_days} days, {dropped['keyword']} without keywords)"
        )
        return kept
