"""Schedule of benefits tables: numbered benefit rows, sub-item rows, one column per plan."""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional

from models import Benefit, SectionData, SubItem
from slide_markup import CellNode, Edit, RowNode, TableNode, apply_edits, cell_text_edits, normalize_label, parse_slide

from .base import BaseSectionMapper, MapperResult, labels_hint
from .category_matching import category_tokens, normalize_category

logger = logging.getLogger(__name__)

FIELD_NAME = "Schedule of Benefits"

_BENEFIT_NUMBER_RE = re.compile(r"^(\d+)(?:\.|\b)")
_IDENTIFIER_RE = re.compile(r"^\(?([a-z]|[ivx]{1,4})[\).]", re.IGNORECASE)
_AMOUNT_RE = re.compile(r"^(S?\$\s?)?(\d{1,3}(?:,\d{3})+|\d+)(\.\d+)?$")


def format_amount(value: str) -> str:
    """'50000' -> '50,000', 'S$1500.50' -> 'S$1,500.50'; anything non-numeric is returned unchanged."""
    text = (value or "").strip()
    match = _AMOUNT_RE.match(text)
    if not match:
        return text
    prefix, digits, decimals = match.group(1) or "", match.group(2), match.group(3) or ""
    return f"{prefix}{int(digits.replace(',', '')):,}{decimals}"


def _identifier(text: str) -> Optional[str]:
    match = _IDENTIFIER_RE.match((text or "").strip())
    return match.group(1).lower() if match else None


def _header_match_kind(cell_text: str, header: str) -> Optional[str]:
    """'exact', 'contains' for whole-word containment either way, or None."""
    cell = normalize_label(cell_text)
    wanted = normalize_label(header)
    if not cell or not wanted:
        return None
    if cell == wanted:
        return "exact"
    if _contains_words(cell, wanted):
        return "contains"
    # A bare "Plan" cell must not claim "Plan 1"
    if not wanted.startswith(cell) and _contains_words(wanted, cell):
        return "contains"
    return None


def _contains_words(text: str, part: str) -> bool:
    return re.search(rf"(?<!\w){re.escape(part)}(?!\w)", text) is not None


def map_plan_columns(table: TableNode, plan_headers: List[str]) -> Dict[str, int]:
    """
    Plan header -> cell index, read from the first row naming a plan; else the
    rightmost columns. Exact header cells are claimed before partial ones so
    "Plan 1" never takes the "Plan 10" column.
    """
    for row in table.rows:
        columns: Dict[str, int] = {}
        for kind in ("exact", "contains"):
            for header in plan_headers:
                if header in columns:
                    continue
                for index, cell in enumerate(row.cells[1:], start=1):
                    if index not in columns.values() and _header_match_kind(cell.plain_text, header) == kind:
                        columns[header] = index
                        break
        if columns:
            return {header: columns[header] for header in plan_headers if header in columns}

    width = max((len(row.cells) for row in table.rows), default=0)
    first = width - len(plan_headers)
    if first < 1:
        return {}
    return {header: first + offset for offset, header in enumerate(plan_headers)}


def _names_match(template_text: str, name: str) -> bool:
    template = normalize_category(template_text)
    wanted = normalize_category(name)
    if not template or not wanted:
        return False
    if template in wanted or wanted in template:
        return True
    template_tokens, wanted_tokens = category_tokens(template), category_tokens(wanted)
    if not template_tokens or not wanted_tokens:
        return False
    overlap = len(template_tokens & wanted_tokens) / min(len(template_tokens), len(wanted_tokens))
    return overlap >= 0.6


class ScheduleMapper(BaseSectionMapper):
    name = "schedule"

    def apply(self, markup: str, data: SectionData) -> MapperResult:
        result = MapperResult(markup)
        schedule = data.schedule_of_benefits if data else None
        if schedule is None or not schedule.benefits:
            return result

        tree = parse_slide(markup)
        edits: List[Edit] = []
        updates = []
        for table in tree.tables:
            columns = map_plan_columns(table, schedule.plan_headers)
            if not columns:
                continue
            table_edits, table_updates = self._table_edits(table, schedule.benefits, columns)
            edits.extend(table_edits)
            updates.extend(table_updates)

        if not updates:
            result.fail(FIELD_NAME, "No benefit rows matched", labels_hint(tree))
            return result

        result.markup = apply_edits(markup, edits)
        for field_name, value in updates:
            result.record(field_name, value)
        logger.info(f"  📋 Schedule updated: {len(updates)} rows across {len(tree.tables)} table(s)")
        return result

    def _table_edits(self, table: TableNode, benefits: List[Benefit], columns: Dict[str, int]):
        edits: List[Edit] = []
        updates = []
        current: Optional[Benefit] = None
        for row in table.rows:
            if len(row.cells) < 2:
                continue
            first = row.cells[0].plain_text.strip()
            second = row.cells[1].plain_text.strip()

            number = _BENEFIT_NUMBER_RE.match(first)
            if number:
                current = self._find_benefit(benefits, int(number.group(1)), second)
                if current is None:
                    logger.debug(f"    No benefit data for row \"{first} {second}\"")
                    continue
                row_edits = self._value_edits(row, current.values, columns)
                if row_edits:
                    edits.extend(row_edits)
                    updates.append((f"Benefit {current.number}: {current.name}", self._summary(current.values)))
                continue

            is_sub_row = (not first or _identifier(first)) and second
            if not is_sub_row or current is None:
                continue
            sub_item = self._find_sub_item(current, _identifier(first) or _identifier(second), second)
            if sub_item is None:
                continue
            row_edits = self._value_edits(row, sub_item.values, columns)
            if row_edits:
                edits.extend(row_edits)
                updates.append((f"Benefit {current.number}: {sub_item.name}", self._summary(sub_item.values)))
        return edits, updates

    @staticmethod
    def _find_benefit(benefits: List[Benefit], number: int, name: str) -> Optional[Benefit]:
        for benefit in benefits:
            if benefit.number == number:
                return benefit
        for benefit in benefits:
            if _names_match(name, benefit.raw_name or benefit.name):
                return benefit
        return None

    @staticmethod
    def _find_sub_item(benefit: Benefit, identifier: Optional[str], text: str) -> Optional[SubItem]:
        if identifier:
            for sub_item in benefit.sub_items:
                if _identifier(sub_item.identifier or "") == identifier or _identifier(sub_item.name) == identifier:
                    return sub_item
        for sub_item in benefit.sub_items:
            if _names_match(text, sub_item.name):
                return sub_item
        return None

    @staticmethod
    def _value_edits(row: RowNode, values: Dict[str, Optional[str]], columns: Dict[str, int]) -> List[Edit]:
        edits = []
        for header, index in columns.items():
            value = values.get(header)
            if value is None or not value.strip() or index >= len(row.cells):
                continue
            cell: CellNode = row.cells[index]
            edits.extend(cell_text_edits(cell, format_amount(value)))
        return edits

    @staticmethod
    def _summary(values: Dict[str, Optional[str]]) -> str:
        return "; ".join(f"{header}: {format_amount(value)}" for header, value in values.items() if value and value.strip())
