"""Tests for the slide markup tokenizer and text-fragment editor."""

import pytest

from deck_builder import (
    END_PARA,
    HIGHLIGHT_PROPS,
    cell,
    label_row,
    paragraph,
    row,
    run,
    slide,
    table,
    text_cell,
    text_shape,
)
from slide_markup import (
    Edit,
    apply_edits,
    escape_text,
    extract_text_fragments,
    find_rows,
    find_text_in_slide,
    insert_or_replace_cell_text,
    parse_slide,
    replace_cell_value,
    replace_run_text,
    slide_plain_text,
)


def test_escape_text_covers_reserved_characters():
    assert escape_text("A & B <c> \"d\" 'e'") == "A &amp; B &lt;c&gt; &quot;d&quot; &apos;e&apos;"
    assert escape_text(None) == ""


def test_find_rows_reads_cells_and_plain_text():
    markup = slide(table(label_row("Eligibility", "All employees"), label_row("Last Entry Age", "Age 65")))
    rows = find_rows(markup)

    assert len(rows) == 2
    assert [c.plain_text for c in rows[0].cells] == ["Eligibility", "All employees"]
    assert rows[1].label == "Last Entry Age"
    assert rows[0].cells[1].full_text.startswith("<a:tc>")
    assert "<a:t>All employees</a:t>" in rows[0].cells[1].inner_text


def test_tokenizer_ignores_similarly_named_tags():
    markup = slide(table(row(text_cell("Label"), cell(paragraph(run("Value"), end=END_PARA)))))
    tree = parse_slide(markup)

    assert len(tree.tables) == 1
    assert [node.text for node in tree.texts] == ["Label", "Value"]
    assert tree.paragraphs[1].end_marker is not None


def test_replace_cell_value_preserves_formatting():
    value_cell = cell(paragraph(run(":"), run("All employees")))
    markup = slide(table(row(text_cell("Eligibility"), value_cell)))

    result = replace_cell_value(markup, "Eligibility", "All full-time staff")

    assert result.success is True
    assert result.markup == markup.replace("<a:t>All employees</a:t>", "<a:t>All full-time staff</a:t>")
    assert f"{HIGHLIGHT_PROPS}<a:t>All full-time staff</a:t>" in result.markup
    assert "<a:t>:</a:t>" in result.markup


def test_replace_cell_value_prefers_exact_label_over_prefix():
    markup = slide(table(label_row("Eligibility Date", "1 Jan 2025"), label_row("Eligibility:", "Everyone")))

    result = replace_cell_value(markup, "Eligibility", "New value")

    assert result.success is True
    assert result.markup == markup.replace("<a:t>Everyone</a:t>", "<a:t>New value</a:t>")


def test_replace_cell_value_accepts_prefix_label():
    markup = slide(table(label_row("Eligibility (Full-time)", "Everyone")))
    result = replace_cell_value(markup, "Eligibility", "Staff")
    assert result.success is True
    assert "<a:t>Staff</a:t>" in result.markup


def test_replace_cell_value_rejects_partial_word_label():
    markup = slide(table(label_row("Eligibilityx", "Everyone")))
    result = replace_cell_value(markup, "Eligibility", "Staff")
    assert result.success is False
    assert result.markup == markup


def test_replace_cell_value_missing_row_leaves_markup_unchanged():
    markup = slide(table(label_row("Basis of Cover", "24 x salary")))
    result = replace_cell_value(markup, "Non-evidence Limit", "$50,000")
    assert result.success is False
    assert result.markup == markup


def test_replacement_is_escaped():
    markup = slide(table(label_row("Eligibility", "Everyone")))
    result = replace_cell_value(markup, "Eligibility", "Managers & <Directors>")
    assert "<a:t>Managers &amp; &lt;Directors&gt;</a:t>" in result.markup


def test_replace_run_text_never_touches_attributes():
    markup = slide(text_shape(paragraph(run("Language en-US"))))
    updated = replace_run_text(markup, "en-US", "fr-FR")

    assert 'lang="en-US"' in updated
    assert "<a:t>Language fr-FR</a:t>" in updated


def test_cell_with_one_fragment_is_replaced_in_place():
    markup = slide(table(label_row("Plan", "Plan 1")))
    result = insert_or_replace_cell_text(markup, 1, "Plan 2")
    assert result.success is True
    assert result.markup == markup.replace("<a:t>Plan 1</a:t>", "<a:t>Plan 2</a:t>")


def test_split_runs_are_consolidated_into_first_run():
    runs = run("Plan") + run(" A") + run(" (old)")
    markup = slide(table(row(text_cell("Category"), cell(paragraph(runs)))))

    result = insert_or_replace_cell_text(markup, 1, "Plan B")

    assert result.markup == markup.replace(runs, run("Plan B"))


def test_multi_paragraph_cell_keeps_only_first_paragraph():
    paragraphs = paragraph(run("Line 1")) + paragraph(run("Line 2"))
    markup = slide(table(row(text_cell("Category"), cell(paragraphs))))

    result = insert_or_replace_cell_text(markup, 1, "Single")

    assert result.markup == markup.replace(paragraphs, paragraph(run("Single")))


def test_cell_without_run_gets_synthesized_run_before_end_marker():
    markup = slide(table(row(text_cell("Category"), cell(paragraph(end=END_PARA)))))

    result = insert_or_replace_cell_text(markup, 1, "X & Y")

    assert result.success is True
    assert '<a:r><a:rPr lang="en-US" sz="1400" dirty="0"/><a:t>X &amp; Y</a:t></a:r><a:endParaRPr' in result.markup


def test_empty_self_closing_paragraph_is_filled():
    markup = slide(table(row(text_cell("Category"), cell())))
    result = insert_or_replace_cell_text(markup, 1, "Value")
    assert '<a:p><a:r><a:rPr lang="en-US" dirty="0"/><a:t>Value</a:t></a:r></a:p>' in result.markup


def test_insert_or_replace_cell_text_out_of_range():
    markup = slide(table(label_row("Only", "Row")))
    result = insert_or_replace_cell_text(markup, 5, "Value")
    assert result.success is False
    assert result.markup == markup


def test_apply_edits_rejects_overlaps():
    with pytest.raises(ValueError):
        apply_edits("abcdef", [Edit(0, 3, "x"), Edit(2, 4, "y")])
    assert apply_edits("abcdef", [Edit(4, 6, "Z"), Edit(0, 1, "A")]) == "AbcdZ"


def test_text_extraction():
    markup = slide(text_shape(paragraph(run("  Period of Insurance  ")), paragraph(run(" ")), paragraph(run("2025"))))
    assert extract_text_fragments(markup) == ["Period of Insurance", "2025"]
    assert slide_plain_text(markup) == "Period of Insurance 2025"


def test_find_text_in_slide_reports_each_occurrence():
    markup = slide(text_shape(paragraph(run("Plan A")), paragraph(run("Plan B"))))
    hits = find_text_in_slide(markup, "Plan")

    assert len(hits) == 2
    assert hits[0]["searchText"] == "Plan"
    assert "Plan A" in hits[0]["context"]
    assert hits[1]["position"] > hits[0]["position"]
