"""Dental schedule slides: overall limit."""

from __future__ import annotations

import logging
import re

from models import SectionData
from slide_markup import apply_edits, parse_slide, replace_cell_value, replace_text_edit

from .base import BaseSectionMapper, MapperResult, labels_hint

logger = logging.getLogger(__name__)

OVERALL_LIMIT_LABELS = ("Overall Limit", "Overall Annual Limit")
_MONEY_RE = re.compile(r"S?\$\s?\d[\d,]*(?:\.\d+)?")
_LABEL_RE = re.compile(r"overall\s+(?:annual\s+)?limit", re.IGNORECASE)


class OverallLimitMapper(BaseSectionMapper):
    name = "overall_limit"

    def apply(self, markup: str, data: SectionData) -> MapperResult:
        result = MapperResult(markup)
        value = data.overall_limit if data else None
        if not value or not value.strip():
            return result

        field_name = "Overall Limit"
        labelled = replace_cell_value(markup, OVERALL_LIMIT_LABELS, value)
        if labelled.success:
            result.record(field_name, value, labelled.markup)
            return result

        # Inline form: "Overall Limit: $1,000 per policy year"
        tree = parse_slide(markup)
        for paragraph in tree.paragraphs:
            if not _LABEL_RE.search(paragraph.text):
                continue
            for node in paragraph.texts:
                if _MONEY_RE.search(node.text):
                    new_text = _MONEY_RE.sub(lambda _m: value, node.text, count=1)
                    result.record(field_name, value, apply_edits(markup, [replace_text_edit(node, new_text)]))
                    return result

        result.fail(field_name, "Overall limit not found on slide", labels_hint(tree))
        return result
