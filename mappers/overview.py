"""
Overview slides: eligibility, last entry age, basis of cover, non-evidence
limit and category-to-plan tables (GTL, GDD, GPA, GHS, GMM, GP, SP, dental).
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Sequence, Tuple

from models import BasisOfCoverItem, SectionData
from ooxml_templates import render_basis_of_cover
from slide_markup import (
    Edit,
    ParagraphNode,
    RowNode,
    SlideTree,
    TextNode,
    apply_edits,
    cell_text_edits,
    find_row_by_label,
    is_substantial,
    label_match_kind,
    normalize_label,
    parse_slide,
    replace_cell_value,
    replace_text_edit,
)

from .base import BaseSectionMapper, MapperResult, labels_hint
from .category_matching import find_matching_category

logger = logging.getLogger(__name__)

ELIGIBILITY_LABELS = ("Eligibility",)
LAST_ENTRY_AGE_LABELS = ("Last Entry Age",)
NON_EVIDENCE_LABELS = ("Non-evidence Limit", "Non Evidence Limit")
BASIS_OF_COVER_LABELS = ("Basis of Cover",)

# ": Age 65 next birthday", ": ANB 70", ": 65"
_AGE_FRAGMENT_RE = re.compile(r"^(\s*:\s*)(?:age\b|anb\b|alb\b|\d{2,3}\b)", re.IGNORECASE)
_CATEGORY_HEADER_RE = re.compile(r"^categor(?:y|ies)\s*:?$", re.IGNORECASE)
_FIELD_LABELS = ELIGIBILITY_LABELS + LAST_ENTRY_AGE_LABELS + NON_EVIDENCE_LABELS + BASIS_OF_COVER_LABELS


class OverviewMapper(BaseSectionMapper):
    name = "overview"

    def apply(self, markup: str, data: SectionData) -> MapperResult:
        result = MapperResult(markup)
        if data is None:
            return result

        if data.eligibility or data.last_entry_age:
            self._update_eligibility_and_age(result, data.eligibility, data.last_entry_age)
        if data.basis_of_cover:
            self._update_basis_of_cover(result, data.basis_of_cover)
        if data.non_evidence_limit:
            self._update_label(result, NON_EVIDENCE_LABELS, "Non-evidence Limit", data.non_evidence_limit)
        if data.category_plans:
            self._update_category_plans(result, data)
        return result

    # ------------------------------------------------------------------
    # Label rows
    # ------------------------------------------------------------------

    def _update_label(self, result: MapperResult, labels: Sequence[str], field_name: str, value: str) -> None:
        updated = replace_cell_value(result.markup, labels, value)
        if updated.success:
            result.record(field_name, value, updated.markup)
        else:
            result.fail(field_name, "Row not found in table", labels_hint(parse_slide(result.markup)))

    def _update_eligibility_and_age(self, result: MapperResult, eligibility: Optional[str], age: Optional[str]) -> None:
        tree = parse_slide(result.markup)
        shared = find_row_by_label(tree, ELIGIBILITY_LABELS)
        own_age_row = find_row_by_label(tree, LAST_ENTRY_AGE_LABELS)
        if shared is None or own_age_row is not None or "last entry age" not in normalize_label(shared.label):
            if eligibility:
                self._update_label(result, ELIGIBILITY_LABELS, "Eligibility", eligibility)
            if age:
                self._update_label(result, LAST_ENTRY_AGE_LABELS, "Last Entry Age", age)
            return
        self._update_shared_row(result, shared, eligibility, age)

    def _update_shared_row(self, result: MapperResult, row: RowNode, eligibility: Optional[str], age: Optional[str]) -> None:
        """Eligibility and last entry age live in one value cell as separate fragments."""
        texts = row.cells[1].texts
        age_node = next((node for node in texts if _AGE_FRAGMENT_RE.match(node.text)), None)
        eligibility_node = next(
            (node for node in texts if node is not age_node and is_substantial(node.text)), None
        )

        edits: List[Edit] = []
        updates: List[Tuple[str, str]] = []
        if eligibility:
            if eligibility_node is None:
                result.fail("Eligibility", "Eligibility text not found in shared row", f'Row label: "{row.label}"')
            else:
                edits.append(replace_text_edit(eligibility_node, eligibility))
                updates.append(("Eligibility", eligibility))
        if age:
            if age_node is None:
                result.fail("Last Entry Age", "Age fragment not found in shared row", f'Row label: "{row.label}"')
            else:
                prefix = _AGE_FRAGMENT_RE.match(age_node.text).group(1)
                edits.append(replace_text_edit(age_node, prefix + age.lstrip(": ")))
                updates.append(("Last Entry Age", age))

        if edits:
            result.markup = apply_edits(result.markup, edits)
        for field_name, value in updates:
            result.record(field_name, value)

    # ------------------------------------------------------------------
    # Basis of cover
    # ------------------------------------------------------------------

    def _update_basis_of_cover(self, result: MapperResult, items: List[BasisOfCoverItem]) -> None:
        field_name = "Basis of Cover"
        logger.info(f"  🔄 Updating Basis of Cover with {len(items)} entries...")
        markup = result.markup
        tree = parse_slide(markup)
        row = find_row_by_label(tree, BASIS_OF_COVER_LABELS)
        scope = row.cells[1].paragraphs if row is not None else tree.paragraphs
        bullets = []
        for paragraph in scope:
            parts = _bullet_parts(paragraph) if paragraph.is_bullet else None
            if parts:
                bullets.append((paragraph, parts))
        logger.info(f"  📊 Found {len(bullets)} bullet points in template")

        if bullets:
            edits: List[Edit] = []
            for (paragraph, parts), item in zip(bullets, items):
                edits.extend(_bullet_edits(paragraph, parts, item))
            extra = items[len(bullets):]
            if extra:
                last_paragraph, _ = bullets[-1]
                clones = "".join(_clone_bullet(markup[last_paragraph.start:last_paragraph.end], item) for item in extra)
                edits.append(Edit(last_paragraph.end, last_paragraph.end, clones))
            result.record(field_name, f"{len(items)} categories", apply_edits(markup, edits))
            return

        if row is not None and row.cells[1].paragraphs:
            paragraphs = row.cells[1].paragraphs
            new_content = render_basis_of_cover({"category": i.category, "basis": i.basis} for i in items)
            edit = Edit(paragraphs[0].start, paragraphs[-1].end, new_content)
            result.record(field_name, f"{len(items)} categories (regenerated)", apply_edits(markup, [edit]))
            return

        result.fail(field_name, "Pattern not found in template", labels_hint(tree))

    # ------------------------------------------------------------------
    # Category -> plan tables
    # ------------------------------------------------------------------

    def _update_category_plans(self, result: MapperResult, data: SectionData) -> None:
        tree = parse_slide(result.markup)
        rows = _category_rows(tree)
        if not rows:
            result.fail("Category Plans", "Category table not found", labels_hint(tree))
            return

        edits: List[Edit] = []
        matched = set()
        updates = []
        for row in rows:
            label = row.label
            if not is_substantial(label) or len(row.cells) < 2:
                continue
            found = find_matching_category(label, data.category_plans, key=lambda plan: plan.category)
            if found is None:
                logger.debug(f"    No category data for template row \"{label}\"")
                continue
            plan, match = found
            matched.add(id(plan))
            edits.extend(cell_text_edits(row.cells[-1], plan.plan))
            updates.append((f"Plan ({label})", plan.plan))
            logger.debug(f"    📍 \"{label}\" ← \"{plan.category}\" ({match.method}, {match.score:.2f})")

        if edits:
            result.markup = apply_edits(result.markup, edits)
        for field_name, value in updates:
            result.record(field_name, value)
        hint = "Template categories: " + ", ".join(f'"{row.label}"' for row in rows if row.label)
        for plan in data.category_plans:
            if id(plan) not in matched:
                result.fail(f"Plan ({plan.category})", "No matching category row in template", hint)


def _category_rows(tree: SlideTree) -> List[RowNode]:
    """
    Rows below a "Category" header row, in the first table that has one.
    Without a header, every labelled row that is not one of the scalar fields.
    """
    for table in tree.tables:
        for index, row in enumerate(table.rows):
            if _CATEGORY_HEADER_RE.match(row.label.strip()):
                return list(table.rows[index + 1:])
    return [
        row
        for row in tree.rows
        if len(row.cells) >= 2
        and is_substantial(row.label)
        and not any(label_match_kind(row.label, label) for label in _FIELD_LABELS)
    ]


def _bullet_parts(paragraph: ParagraphNode) -> Optional[Tuple[TextNode, Optional[TextNode]]]:
    """(category fragment, ': basis' fragment) or (single 'category: basis' fragment, None)."""
    texts = [node for node in paragraph.texts if node.text.strip()]
    if len(texts) >= 2 and texts[1].text.lstrip().startswith(":"):
        return texts[0], texts[1]
    if len(texts) == 1 and ":" in texts[0].text:
        return texts[0], None
    return None


def _bullet_edits(paragraph: ParagraphNode, parts: Tuple[TextNode, Optional[TextNode]], item: BasisOfCoverItem) -> List[Edit]:
    category_node, basis_node = parts
    if basis_node is None:
        return [replace_text_edit(category_node, f"{item.category}: {item.basis}")]
    edits = [
        replace_text_edit(category_node, item.category),
        replace_text_edit(basis_node, f": {item.basis}"),
    ]
    # Basis text continued in later fragments of the same bullet
    for node in paragraph.texts:
        if node.start > basis_node.start:
            edits.append(replace_text_edit(node, ""))
    return edits


def _clone_bullet(paragraph_markup: str, item: BasisOfCoverItem) -> str:
    tree = parse_slide(paragraph_markup)
    paragraph = tree.paragraphs[0]
    parts = _bullet_parts(paragraph)
    if parts is None:
        return ""
    return apply_edits(paragraph_markup, _bullet_edits(paragraph, parts, item))

