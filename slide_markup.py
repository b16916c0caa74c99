"""
Slide markup tokenizer and text-fragment editor.

A slide is treated as flat DrawingML text. One parse pass yields typed nodes
(tables, rows, cells, paragraphs, runs, text fragments) carrying absolute
offsets into the markup. Editing never mutates: helpers compute `Edit`
spans against one parse and `apply_edits` returns a new markup string, so a
replacement can never be re-matched by a later pattern in the same pass.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass, field
from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple, Union
from xml.sax.saxutils import escape

_TEXT_RE = re.compile(r"<a:t(?=[\s>/])([^>]*?)(?:/>|>(.*?)</a:t>)", re.S)
_RUN_RE = re.compile(r"<a:r(?=[\s>/])[^>]*?(?:/>|>(.*?)</a:r>)", re.S)
_RUN_PROPS_RE = re.compile(r"<a:rPr(?=[\s>/])[^>]*?(?:/>|>.*?</a:rPr>)", re.S)
_PARAGRAPH_RE = re.compile(r"<a:p(?=[\s>/])[^>]*?(?:/>|>(.*?)</a:p>)", re.S)
_PARAGRAPH_PROPS_RE = re.compile(r"<a:pPr(?=[\s>/])[^>]*?(?:/>|>.*?</a:pPr>)", re.S)
_BREAK_RE = re.compile(r"<a:br(?=[\s>/])[^>]*?(?:/>|>.*?</a:br>)", re.S)
_END_MARKER_RE = re.compile(r"<a:endParaRPr(?=[\s>/])[^>]*?(?:/>|>.*?</a:endParaRPr>)", re.S)
_TABLE_RE = re.compile(r"<a:tbl(?=[\s>/])[^>]*?>(.*?)</a:tbl>", re.S)
_ROW_RE = re.compile(r"<a:tr(?=[\s>/])[^>]*?>(.*?)</a:tr>", re.S)
_CELL_RE = re.compile(r"<a:tc(?=[\s>/])[^>]*?(?:/>|>(.*?)</a:tc>)", re.S)
_BOLD_RE = re.compile(r'^<a:rPr\b[^>]*\sb="(?:1|true)"')

# Fragments that only hold separators, e.g. a bare ":" placeholder
_PLACEHOLDER_RE = re.compile(r"^[\s:\-–—.,;|]*$")


def escape_text(value: object) -> str:
    """Escape the five reserved XML characters."""
    if value is None:
        return ""
    return escape(str(value), {'"': "&quot;", "'": "&apos;"})


def unescape_text(raw: str) -> str:
    return html.unescape(raw or "")


def is_substantial(text: str) -> bool:
    return not _PLACEHOLDER_RE.match(text or "")


def normalize_label(text: str) -> str:
    return " ".join((text or "").lower().split())


# ============================================================================
# Nodes
# ============================================================================


@dataclass(frozen=True)
class TextNode:
    """One <a:t> fragment."""

    start: int
    end: int
    open_tag: str
    raw: str

    @property
    def text(self) -> str:
        return unescape_text(self.raw)


@dataclass(frozen=True)
class RunNode:
    start: int
    end: int
    properties: str
    text_node: Optional[TextNode]

    @property
    def text(self) -> str:
        return self.text_node.text if self.text_node else ""

    @property
    def bold(self) -> bool:
        return bool(_BOLD_RE.match(self.properties))


@dataclass(frozen=True)
class ParagraphNode:
    start: int
    end: int
    content_start: Optional[int]
    content_end: Optional[int]
    properties: str
    runs: Tuple[RunNode, ...]
    texts: Tuple[TextNode, ...]
    breaks: Tuple[Tuple[int, int], ...]
    end_marker: Optional[Tuple[int, int, str]]

    @property
    def self_closing(self) -> bool:
        return self.content_start is None

    @property
    def text(self) -> str:
        return "".join(node.text for node in self.texts)

    @property
    def is_bullet(self) -> bool:
        return "<a:buChar" in self.properties or "<a:buAutoNum" in self.properties


@dataclass(frozen=True)
class CellNode:
    start: int
    end: int
    content_start: Optional[int]
    content_end: Optional[int]
    paragraphs: Tuple[ParagraphNode, ...]
    source: str = field(repr=False, compare=False)

    @property
    def full_text(self) -> str:
        return self.source[self.start:self.end]

    @property
    def inner_text(self) -> str:
        if self.content_start is None:
            return ""
        return self.source[self.content_start:self.content_end]

    @property
    def texts(self) -> Tuple[TextNode, ...]:
        return tuple(node for paragraph in self.paragraphs for node in paragraph.texts)

    @property
    def plain_text(self) -> str:
        return " ".join(p.text.strip() for p in self.paragraphs if p.text.strip())


@dataclass(frozen=True)
class RowNode:
    start: int
    end: int
    cells: Tuple[CellNode, ...]
    source: str = field(repr=False, compare=False)

    @property
    def full_text(self) -> str:
        return self.source[self.start:self.end]

    @property
    def label(self) -> str:
        return self.cells[0].plain_text if self.cells else ""


@dataclass(frozen=True)
class TableNode:
    start: int
    end: int
    rows: Tuple[RowNode, ...]
    source: str = field(repr=False, compare=False)

    @property
    def plain_text(self) -> str:
        return " ".join(
            cell.plain_text for row in self.rows for cell in row.cells if cell.plain_text
        )


@dataclass(frozen=True)
class SlideTree:
    markup: str = field(repr=False)
    paragraphs: Tuple[ParagraphNode, ...]
    tables: Tuple[TableNode, ...]

    @property
    def rows(self) -> List[RowNode]:
        return [row for table in self.tables for row in table.rows]

    @property
    def texts(self) -> List[TextNode]:
        return [node for paragraph in self.paragraphs for node in paragraph.texts]

    @property
    def text_fragments(self) -> List[str]:
        return [node.text.strip() for node in self.texts if node.text.strip()]

    @property
    def plain_text(self) -> str:
        return " ".join(self.text_fragments)


# ============================================================================
# Parsing
# ============================================================================


def _parse_texts(markup: str, start: int, end: int) -> Tuple[TextNode, ...]:
    nodes = []
    for match in _TEXT_RE.finditer(markup, start, end):
        open_tag = f"<a:t{match.group(1)}>"
        nodes.append(TextNode(match.start(), match.end(), open_tag, match.group(2) or ""))
    return tuple(nodes)


def _parse_runs(markup: str, start: int, end: int) -> Tuple[RunNode, ...]:
    runs = []
    for match in _RUN_RE.finditer(markup, start, end):
        if match.group(1) is None:
            runs.append(RunNode(match.start(), match.end(), "", None))
            continue
        props = _RUN_PROPS_RE.search(markup, match.start(1), match.end(1))
        texts = _parse_texts(markup, match.start(1), match.end(1))
        runs.append(
            RunNode(match.start(), match.end(), props.group(0) if props else "", texts[0] if texts else None)
        )
    return tuple(runs)


def _parse_paragraphs(markup: str, start: int, end: int) -> Tuple[ParagraphNode, ...]:
    paragraphs = []
    for match in _PARAGRAPH_RE.finditer(markup, start, end):
        if match.group(1) is None:
            paragraphs.append(ParagraphNode(match.start(), match.end(), None, None, "", (), (), (), None))
            continue
        c_start, c_end = match.start(1), match.end(1)
        props = _PARAGRAPH_PROPS_RE.search(markup, c_start, c_end)
        marker = _END_MARKER_RE.search(markup, c_start, c_end)
        paragraphs.append(
            ParagraphNode(
                start=match.start(),
                end=match.end(),
                content_start=c_start,
                content_end=c_end,
                properties=props.group(0) if props else "",
                runs=_parse_runs(markup, c_start, c_end),
                texts=_parse_texts(markup, c_start, c_end),
                breaks=tuple((b.start(), b.end()) for b in _BREAK_RE.finditer(markup, c_start, c_end)),
                end_marker=(marker.start(), marker.end(), marker.group(0)) if marker else None,
            )
        )
    return tuple(paragraphs)


def _parse_cells(markup: str, start: int, end: int) -> Tuple[CellNode, ...]:
    cells = []
    for match in _CELL_RE.finditer(markup, start, end):
        if match.group(1) is None:
            cells.append(CellNode(match.start(), match.end(), None, None, (), markup))
            continue
        cells.append(
            CellNode(
                start=match.start(),
                end=match.end(),
                content_start=match.start(1),
                content_end=match.end(1),
                paragraphs=_parse_paragraphs(markup, match.start(1), match.end(1)),
                source=markup,
            )
        )
    return tuple(cells)


def _parse_rows(markup: str, start: int, end: int) -> Tuple[RowNode, ...]:
    return tuple(
        RowNode(match.start(), match.end(), _parse_cells(markup, match.start(1), match.end(1)), markup)
        for match in _ROW_RE.finditer(markup, start, end)
    )


def parse_slide(markup: str) -> SlideTree:
    tables = tuple(
        TableNode(match.start(), match.end(), _parse_rows(markup, match.start(1), match.end(1)), markup)
        for match in _TABLE_RE.finditer(markup)
    )
    return SlideTree(markup=markup, paragraphs=_parse_paragraphs(markup, 0, len(markup)), tables=tables)


def _tree(markup_or_tree: Union[str, SlideTree]) -> SlideTree:
    if isinstance(markup_or_tree, SlideTree):
        return markup_or_tree
    return parse_slide(markup_or_tree)


def extract_text_fragments(markup: str) -> List[str]:
    return parse_slide(markup).text_fragments


def slide_plain_text(markup: str) -> str:
    return parse_slide(markup).plain_text


def find_rows(markup: str) -> List[RowNode]:
    return parse_slide(markup).rows


# ============================================================================
# Edits
# ============================================================================


class Edit(NamedTuple):
    start: int
    end: int
    replacement: str


class EditResult(NamedTuple):
    markup: str
    success: bool


def apply_edits(markup: str, edits: Iterable[Edit]) -> str:
    ordered = sorted(edits, key=lambda edit: (edit.start, edit.end))
    if not ordered:
        return markup
    pieces = []
    cursor = 0
    for edit in ordered:
        if edit.start < cursor:
            raise ValueError(f"Overlapping edits at offset {edit.start}")
        pieces.append(markup[cursor:edit.start])
        pieces.append(edit.replacement)
        cursor = edit.end
    pieces.append(markup[cursor:])
    return "".join(pieces)


def replace_text_edit(node: TextNode, new_text: str) -> Edit:
    """Swap a fragment's payload; the <a:t> tag and surrounding run stay as they are."""
    return Edit(node.start, node.end, f"{node.open_tag}{escape_text(new_text)}</a:t>")


def first_substantial_text(cell: CellNode) -> Optional[TextNode]:
    for node in cell.texts:
        if is_substantial(node.text):
            return node
    return None


def _run_props_from_end_marker(marker_markup: str) -> str:
    props = re.sub(r"^<a:endParaRPr", "<a:rPr", marker_markup)
    return re.sub(r"</a:endParaRPr>$", "</a:rPr>", props)


def _run_containing(paragraph: ParagraphNode, node: TextNode) -> Optional[RunNode]:
    for run in paragraph.runs:
        if run.start <= node.start and node.end <= run.end:
            return run
    return None


def collapse_paragraph_edits(paragraph: ParagraphNode, value: str) -> List[Edit]:
    """Write `value` into the paragraph's first fragment and drop the runs and breaks after it."""
    if not paragraph.texts:
        return []
    first = paragraph.texts[0]
    edits = [replace_text_edit(first, value)]
    keep = _run_containing(paragraph, first)
    if keep is None:
        edits.extend(replace_text_edit(node, "") for node in paragraph.texts[1:])
        return edits
    for run in paragraph.runs:
        if run.start >= keep.end and run.text_node is not None:
            edits.append(Edit(run.start, run.end, ""))
    for b_start, b_end in paragraph.breaks:
        if b_start >= keep.end:
            edits.append(Edit(b_start, b_end, ""))
    for node in paragraph.texts[1:]:
        if _run_containing(paragraph, node) is None:
            edits.append(replace_text_edit(node, ""))
    return edits


def cell_text_edits(cell: CellNode, value: str) -> List[Edit]:
    """
    Edits that leave `value` as the cell's only text.

    One fragment is rewritten in place. Fragments split across several runs
    are consolidated into the first run. A cell without any run gets a
    minimal run built from the paragraph's end-marker properties.
    """
    texts = cell.texts
    if len(texts) == 1:
        return [replace_text_edit(texts[0], value)]

    if texts:
        first_paragraph = next(p for p in cell.paragraphs if p.texts)
        edits = collapse_paragraph_edits(first_paragraph, value)
        for paragraph in cell.paragraphs:
            if paragraph.start > first_paragraph.start and paragraph.texts:
                edits.append(Edit(paragraph.start, paragraph.end, ""))
        return edits

    if not cell.paragraphs:
        return []

    from ooxml_templates import render_run

    paragraph = cell.paragraphs[0]
    if paragraph.self_closing:
        return [Edit(paragraph.start, paragraph.end, f"<a:p>{render_run(value)}</a:p>")]
    if paragraph.end_marker is not None:
        marker_start, _, marker_markup = paragraph.end_marker
        run = render_run(value, _run_props_from_end_marker(marker_markup))
        return [Edit(marker_start, marker_start, run)]
    return [Edit(paragraph.content_end, paragraph.content_end, render_run(value))]


# ============================================================================
# Label-based lookups
# ============================================================================

LabelSpec = Union[str, Sequence[str]]


def label_match_kind(cell_text: str, label: str) -> Optional[str]:
    """
    'exact' for "Label" / "Label:", 'prefix' for "Label ..." / "Label: ...",
    None otherwise.
    """
    text = normalize_label(cell_text)
    wanted = normalize_label(label)
    if not text or not wanted:
        return None
    if text == wanted or text == wanted + ":" or text == wanted + " :":
        return "exact"
    if text.startswith(wanted + " ") or text.startswith(wanted + ":"):
        return "prefix"
    return None


def find_row_by_label(
    markup_or_tree: Union[str, SlideTree],
    labels: LabelSpec,
    min_cells: int = 2,
) -> Optional[RowNode]:
    """First row whose label cell matches; exact matches anywhere win over prefix matches."""
    tree = _tree(markup_or_tree)
    wanted = [labels] if isinstance(labels, str) else list(labels)
    prefix_match = None
    for row in tree.rows:
        if len(row.cells) < min_cells:
            continue
        for label in wanted:
            kind = label_match_kind(row.label, label)
            if kind == "exact":
                return row
            if kind == "prefix" and prefix_match is None:
                prefix_match = row
    return prefix_match


def row_labels(markup_or_tree: Union[str, SlideTree]) -> List[str]:
    return [row.label for row in _tree(markup_or_tree).rows if row.label]


def replace_cell_value(markup: str, labels: LabelSpec, new_value: str) -> EditResult:
    """
    Replace the first substantial fragment of the value cell next to a label.

    Separator-only fragments such as a bare ":" are skipped so the
    placeholder punctuation of the template survives.
    """
    row = find_row_by_label(markup, labels)
    if row is None:
        return EditResult(markup, False)
    target = first_substantial_text(row.cells[1])
    if target is None:
        return EditResult(markup, False)
    return EditResult(apply_edits(markup, [replace_text_edit(target, new_value)]), True)


def replace_run_text(markup: str, old_fragment: str, new_fragment: str) -> str:
    """Substitute inside the first text fragment containing `old_fragment`; attributes are never touched."""
    return find_and_replace_text(markup, old_fragment, new_fragment).markup


def find_and_replace_text(markup: str, old_fragment: str, new_fragment: str) -> EditResult:
    if not old_fragment:
        return EditResult(markup, False)
    for node in parse_slide(markup).texts:
        if old_fragment in node.text:
            new_text = node.text.replace(old_fragment, new_fragment, 1)
            return EditResult(apply_edits(markup, [replace_text_edit(node, new_text)]), True)
    return EditResult(markup, False)


def insert_or_replace_cell_text(markup: str, cell_index: int, value: str, row_index: int = 0) -> EditResult:
    """Set the text of one cell, addressed by row and cell position within `markup`."""
    rows = parse_slide(markup).rows
    if row_index >= len(rows) or cell_index >= len(rows[row_index].cells):
        return EditResult(markup, False)
    return set_cell_text(markup, rows[row_index].cells[cell_index], value)


def set_cell_text(markup: str, cell: CellNode, value: str) -> EditResult:
    edits = cell_text_edits(cell, value)
    if not edits:
        return EditResult(markup, False)
    return EditResult(apply_edits(markup, edits), True)


def find_text_in_slide(markup: str, search_text: str, context_chars: int = 50) -> List[dict]:
    results = []
    if not search_text:
        return results
    index = 0
    while True:
        position = markup.find(search_text, index)
        if position == -1:
            break
        start = max(0, position - context_chars)
        end = min(len(markup), position + len(search_text) + context_chars)
        results.append({
            "position": position,
            "context": markup[start:end],
            "searchText": search_text,
        })
        index = position + 1
    return results
