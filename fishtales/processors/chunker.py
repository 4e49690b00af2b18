"""
Token-bounded chunking of compiled report text.
"""

import math
from typing import List

from fishtales.core.base import REPORT_DIVIDER


def estimate_token_count(text: str) -> int:
    """Rough token estimate: 1.3 tokens per whitespace-separated word"""
    if not text:
        return 0
    return math.ceil(len(text.split()) * 1.3)


class Chunker:
    """
    Splits text on a section divider and packs whole sections into chunks
    whose estimated token count stays within a limit.

    A section is never split: one that exceeds the limit on its own becomes
    its own oversized chunk. The divider is re-appended to every section.
    """

    def __init__(self, divider: str = REPORT_DIVIDER):
        self.divider = divider

    def split_sections(self, text: str) -> List[str]:
        return text.split(self.divider)

    def chunk(self, text: str, token_limit: int) -> List[str]:
        chunks = []
        current_chunk = ""
        current_tokens = 0

        for section in self.split_sections(text):
            if not section.strip():
                continue
            section = section + self.divider
            tokens = estimate_token_count(section)

            if current_chunk and current_tokens + tokens > token_limit:
                chunks.append(current_chunk.rstrip())
                current_chunk = section
                current_tokens = tokens
            else:
                current_chunk += section
                current_tokens += tokens

        if current_chunk:
            chunks.append(current_chunk.rstrip())

        return chunks
