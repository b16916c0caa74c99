"""Period of insurance on the title slide."""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from models import PeriodOfInsurance
from slide_markup import Edit, ParagraphNode, apply_edits, collapse_paragraph_edits, parse_slide, replace_text_edit

from .base import BaseSectionMapper, MapperResult

logger = logging.getLogger(__name__)

FIELD_NAME = "Period of Insurance"

_MONTHS = (
    "January|February|March|April|May|June|July|August|September|October|November|December"
    "|Jan|Feb|Mar|Apr|Jun|Jul|Aug|Sep|Sept|Oct|Nov|Dec"
)
_DATE = rf"\d{{1,2}}\s+(?:{_MONTHS})\.?,?\s+\d{{4}}"
DATE_RANGE_RE = re.compile(rf"{_DATE}\s+(?:to|until|-|–)\s+{_DATE}", re.IGNORECASE)
_LABEL_RE = re.compile(r"period\s+of\s+insurance", re.IGNORECASE)


class PeriodOfInsuranceMapper(BaseSectionMapper):
    """Swap the date range, keeping any "Period of Insurance:" prefix in the same fragment."""

    name = "period"

    def apply(self, markup: str, data: Optional[PeriodOfInsurance]) -> MapperResult:
        result = MapperResult(markup)
        value = data.display() if data else None
        if not value:
            return result

        logger.info(f"📝 Updating Period of Insurance to: {value}")
        tree = parse_slide(markup)

        edits: List[Edit] = []
        for node in tree.texts:
            if DATE_RANGE_RE.search(node.text):
                edits.append(replace_text_edit(node, DATE_RANGE_RE.sub(lambda _match: value, node.text)))
        if edits:
            result.record(FIELD_NAME, value, apply_edits(markup, edits))
            return result

        # Range split across several runs of the labelled paragraph
        paragraph = self._split_range_paragraph(tree.paragraphs)
        if paragraph is not None:
            new_text = DATE_RANGE_RE.sub(lambda _match: value, paragraph.text, count=1)
            result.record(FIELD_NAME, value, apply_edits(markup, collapse_paragraph_edits(paragraph, new_text)))
            return result

        result.fail(FIELD_NAME, "Date range pattern not found on slide", "Expected text like '1 July 2024 to 30 June 2025'")
        return result

    @staticmethod
    def _split_range_paragraph(paragraphs) -> Optional[ParagraphNode]:
        candidates = [p for p in paragraphs if DATE_RANGE_RE.search(p.text)]
        for paragraph in candidates:
            if _LABEL_RE.search(paragraph.text):
                return paragraph
        return candidates[0] if candidates else None
