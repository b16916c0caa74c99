"""End-to-end tests for process_document."""

import pytest
from pydantic import ValidationError

import deck_updater
from deck_builder import build_deck, label_row, paragraph, read_entries, run, slide, table, text_shape, text_slide
from deck_updater import inspect_slide, process_document
from pptx_archive import CorruptArchiveError, PptxArchive
from slide_markup import slide_plain_text
from slide_signatures import default_catalog


def _template():
    return build_deck(
        {
            1: text_slide("Period of Insurance: 1 July 2024 to 30 June 2025"),
            2: slide(table(label_row("Eligibility", "All employees"), label_row("Non-evidence Limit", "$30,000"))),
        }
    )


PLACEMENT = {
    "periodOfInsurance": {"formatted": "1 August 2025 to 31 July 2026"},
    "slide8Data": {"eligibility": "All full-time staff", "nonEvidenceLimit": "$50,000"},
}


def test_end_to_end_two_slide_template():
    result = process_document(_template(), PLACEMENT, default_catalog())

    assert result.success is True
    assert result.total_slides == 2
    assert [(u.slide, u.field) for u in result.updated_slides] == [
        (1, "Period of Insurance"),
        (2, "Eligibility"),
        (2, "Non-evidence Limit"),
    ]
    assert result.errors == []

    archive = PptxArchive.open(result.buffer)
    first = slide_plain_text(archive.get_slide_markup(1))
    assert "1 August 2025 to 31 July 2026" in first
    assert "1 July 2024" not in first
    second = slide_plain_text(archive.get_slide_markup(2))
    assert "All full-time staff" in second
    assert "$50,000" in second

    assert result.detection_validation.valid is True
    assert result.detection_validation.message == "All required slides detected successfully"


def test_result_dictionary_shape():
    result = process_document(_template(), PLACEMENT, default_catalog())
    report = result.to_dict(include_buffer=False)

    assert report["success"] is True
    assert report["totalSlides"] == 2
    assert report["updatedSlides"][0] == {
        "slide": 1,
        "field": "Period of Insurance",
        "value": "1 August 2025 to 31 July 2026",
    }
    assert report["bufferSize"] == len(result.buffer)
    assert "buffer" not in report
    assert report["slideDetection"]["results"]["GTL_OVERVIEW"]["slideNum"] == 2
    assert report["detectionValidation"]["valid"] is True
    assert result.to_dict()["buffer"] == result.buffer


def test_missing_field_is_isolated_to_its_own_error():
    source = build_deck(
        {
            1: text_slide("Cover"),
            2: slide(text_shape(paragraph(run("Group Term Life"))), table(label_row("Eligibility", "All employees"))),
        }
    )
    placement = {"slide8Data": {"eligibility": "All staff", "nonEvidenceLimit": "$50,000"}}

    result = process_document(source, placement, default_catalog())

    assert [u.field for u in result.updated_slides] == ["Eligibility"]
    assert [e.to_dict() for e in result.errors] == [
        {
            "slide": 2,
            "field": "Non-evidence Limit",
            "error": "Row not found in table",
            "hint": 'Labels found: "Eligibility"',
        }
    ]
    before, after = read_entries(source), read_entries(result.buffer)
    assert [name for name in before if before[name] != after[name]] == ["ppt/slides/slide2.xml"]


def test_sections_without_data_are_skipped():
    source = _template()
    result = process_document(source, {"slide9Data": {}, "periodOfInsurance": None}, default_catalog())

    assert result.updated_slides == []
    assert result.errors == []
    assert result.detection_validation is None
    assert read_entries(result.buffer) == read_entries(source)


def test_unreadable_package_raises():
    with pytest.raises(CorruptArchiveError):
        process_document(b"not a presentation", PLACEMENT, default_catalog())


def test_fallback_beyond_deck_is_recorded_and_other_sections_still_apply():
    placement = dict(
        PLACEMENT,
        slide20Data={
            "scheduleOfBenefits": {"planHeaders": ["Plan A"], "benefits": [{"number": 1, "name": "Deductible"}]}
        },
    )

    result = process_document(_template(), placement, default_catalog())

    assert [(u.slide, u.field) for u in result.updated_slides] == [
        (1, "Period of Insurance"),
        (2, "Eligibility"),
        (2, "Non-evidence Limit"),
    ]
    assert [(e.slide, e.field, e.error) for e in result.errors] == [
        (20, "GMM Schedule of Benefits", "Slide not found"),
    ]
    assert "fallback position 20" in result.errors[0].hint
    assert result.detection_validation.message == "Low confidence detection for: GMM_SCHEDULE"
    assert "1 August 2025" in slide_plain_text(PptxArchive.open(result.buffer).get_slide_markup(1))


def test_malformed_placement_data_raises_validation_error():
    with pytest.raises(ValidationError):
        process_document(_template(), {"slide8Data": {"basisOfCover": "24 x salary"}}, default_catalog())


class _ExplodingMapper:
    name = "exploding"

    def apply(self, markup, data):
        raise RuntimeError("boom")


def test_mapper_exception_becomes_slide_error(monkeypatch):
    monkeypatch.setattr(deck_updater, "get_mapper", lambda name: _ExplodingMapper())

    result = process_document(_template(), PLACEMENT, default_catalog())

    assert result.updated_slides == []
    assert [(e.slide, e.field, e.error) for e in result.errors] == [
        (1, "Period of Insurance", "boom"),
        (2, "GTL Overview", "boom"),
    ]
    assert PptxArchive.open(result.buffer).slide_numbers() == [1, 2]


def test_inspect_slide():
    info = inspect_slide(_template(), 1)
    assert info["slideNumber"] == 1
    assert info["textElements"] == ["Period of Insurance: 1 July 2024 to 30 June 2025"]
    assert info["containsPeriodOfInsurance"] is True
    assert info["xmlLength"] > 0


def test_inspect_slide_period_check_ignores_case():
    deck = build_deck({1: text_slide("PERIOD OF INSURANCE: 1 July 2024 to 30 June 2025"), 2: text_slide("Notes")})
    assert inspect_slide(deck, 1)["containsPeriodOfInsurance"] is True
    assert inspect_slide(deck, 2)["containsPeriodOfInsurance"] is False
