"""GHS slides beyond the overview and schedule: qualification period and room & board entitlements."""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple

from models import RoomAndBoardSection, SectionData
from slide_markup import (
    Edit,
    RowNode,
    apply_edits,
    cell_text_edits,
    normalize_label,
    parse_slide,
    replace_cell_value,
    replace_text_edit,
)

from .base import BaseSectionMapper, MapperResult, labels_hint

logger = logging.getLogger(__name__)

QUALIFICATION_LABELS = ("Qualification Period",)
_DAYS_RE = re.compile(r"\b(\d+)(\s*)(days?)\b", re.IGNORECASE)
_DIGITS_RE = re.compile(r"\d+")


def qualification_display(value: str) -> str:
    """'14' -> '14 days'; values that already carry a unit are kept."""
    text = value.strip()
    return f"{text} days" if text.isdigit() else text


class QualificationPeriodMapper(BaseSectionMapper):
    name = "qualification_period"

    def apply(self, markup: str, data: SectionData) -> MapperResult:
        result = MapperResult(markup)
        value = data.qualification_period_days if data else None
        if not value or not value.strip():
            return result

        field_name = "Qualification Period"
        display = qualification_display(value)
        labelled = replace_cell_value(markup, QUALIFICATION_LABELS, display)
        if labelled.success:
            result.record(field_name, display, labelled.markup)
            return result

        tree = parse_slide(markup)
        nodes = [node for node in tree.texts if _DAYS_RE.search(node.text)]
        if not nodes:
            result.fail(field_name, "Day count not found on slide", labels_hint(tree))
            return result

        digits = _DIGITS_RE.search(value)
        node = nodes[0]
        if digits:
            new_text = _DAYS_RE.sub(lambda m: f"{digits.group(0)}{m.group(2)}{m.group(3)}", node.text, count=1)
        else:
            new_text = _DAYS_RE.sub(lambda _m: display, node.text, count=1)
        result.record(field_name, display, apply_edits(markup, [replace_text_edit(node, new_text)]))
        return result


class RoomAndBoardMapper(BaseSectionMapper):
    """
    Ward class rows grouped by bedded type. A row mentioning "Bedded" opens a
    new group, as does every table; data sections are matched to groups by
    bedded type first and by position otherwise.
    """

    name = "room_and_board"

    def apply(self, markup: str, data: SectionData) -> MapperResult:
        result = MapperResult(markup)
        sections = data.room_and_board_entitlements if data else []
        if not sections:
            return result

        tree = parse_slide(markup)
        groups = self._ward_groups(tree)
        if not groups:
            result.fail("Room & Board", "Ward table not found", labels_hint(tree))
            return result

        used = set()
        edits: List[Edit] = []
        updates = []
        for section in sections:
            index = self._pick_group(groups, section, used)
            label = section.bedded_type or section.title or "Room & Board"
            if index is None:
                result.fail(f"Room & Board ({label})", "No ward table left for section")
                continue
            used.add(index)
            heading, rows = groups[index]
            for ward in section.wards:
                field_name = f"Room & Board ({label}) {ward.class_of_ward}"
                row = self._ward_row(rows, ward.class_of_ward)
                if row is None:
                    hint = "Ward rows: " + ", ".join(f'"{r.label}"' for r in rows if r.label)
                    result.fail(field_name, "Ward class row not found", hint)
                    continue
                if not ward.benefit:
                    continue
                edits.extend(cell_text_edits(row.cells[1], ward.benefit))
                updates.append((field_name, ward.benefit))

        if edits:
            result.markup = apply_edits(markup, edits)
        for field_name, value in updates:
            result.record(field_name, value)
        return result

    @staticmethod
    def _ward_groups(tree) -> List[Tuple[str, List[RowNode]]]:
        groups: List[Tuple[str, List[RowNode]]] = []
        for table in tree.tables:
            heading, rows = "", []
            for row in table.rows:
                text = normalize_label(" ".join(cell.plain_text for cell in row.cells))
                if "bedded" in text:
                    if rows:
                        groups.append((heading, rows))
                    heading, rows = text, []
                    continue
                if len(row.cells) >= 2 and row.label.strip():
                    rows.append(row)
            if rows:
                groups.append((heading, rows))
        return groups

    @staticmethod
    def _pick_group(groups, section: RoomAndBoardSection, used) -> Optional[int]:
        wanted = normalize_label(section.bedded_type or "").replace("&", "and")
        if wanted and wanted != "unknown":
            for index, (heading, _rows) in enumerate(groups):
                if index not in used and wanted in heading.replace("&", "and"):
                    return index
        for index, (heading, _rows) in enumerate(groups):
            if index not in used:
                return index
        return None

    @staticmethod
    def _ward_row(rows: List[RowNode], class_of_ward: str) -> Optional[RowNode]:
        wanted = normalize_label(class_of_ward)
        for row in rows:
            if normalize_label(row.label) == wanted:
                return row
        for row in rows:
            label = normalize_label(row.label)
            if label.startswith(wanted + " ") or label.startswith(wanted + "("):
                return row
        return None
