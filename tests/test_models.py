"""Tests for placement data and signature file models."""

import pytest
from pydantic import ValidationError

from models import Benefit, PeriodOfInsurance, PlacementData, SectionData, SignatureFile


def test_placement_data_collects_slide_sections():
    data = PlacementData.model_validate(
        {
            "periodOfInsurance": {"formatted": " 1 August 2025 to 31 July 2026 "},
            "slide8Data": {"eligibility": "All staff"},
            "slide30Data": None,
            "rawSheets": {"GTL": [[1, 2]]},
        }
    )

    assert set(data.sections) == {"slide8Data"}
    assert data.get("slide8Data").eligibility == "All staff"
    assert data.get("periodOfInsurance").display() == "1 August 2025 to 31 July 2026"
    assert data.get("slide9Data") is None


def test_numbers_from_spreadsheets_become_text():
    section = SectionData.model_validate({"nonEvidenceLimit": 50000.0, "overallLimit": 1500.5, "qualificationPeriodDays": 30})
    assert section.non_evidence_limit == "50000"
    assert section.overall_limit == "1500.5"
    assert section.qualification_period_days == "30"


def test_benefit_number_and_values_are_coerced():
    benefit = Benefit.model_validate({"number": "3.", "name": "Surgical", "values": {"Plan A": 1500.0, "Plan B": None}})
    assert benefit.number == 3
    assert benefit.values == {"Plan A": "1500", "Plan B": None}


def test_has_content():
    assert SectionData().has_content() is False
    assert SectionData(eligibility="   ").has_content() is False
    assert SectionData(basis_of_cover=[{"category": "All", "basis": "24 x"}]).has_content() is True
    assert SectionData.model_validate({"scheduleOfBenefits": {"benefits": []}}).has_content() is False


def test_period_display_from_dates():
    assert PeriodOfInsurance(start_date="1 Aug 2025", end_date="31 Jul 2026").display() == "1 Aug 2025 to 31 Jul 2026"
    assert PeriodOfInsurance(start_date="1 Aug 2025").display() is None


def _signature_file(**overrides):
    data = {
        "version": 2,
        "groups": {"G": ["A"]},
        "signatures": {"A": {"primaryPatterns": ["Alpha"], "fallbackPosition": 1}},
    }
    data.update(overrides)
    return data


def test_signature_file_accepts_minimal_table():
    parsed = SignatureFile.model_validate(_signature_file())
    assert parsed.version == "2"
    assert parsed.confidence_thresholds.medium == 0.5
    assert parsed.signatures["A"].primary_patterns == ["Alpha"]


@pytest.mark.parametrize(
    "overrides",
    [
        {"groups": {"G": ["MISSING"]}},
        {"groups": {"G": ["A"], "H": ["A"]}},
        {"confidenceThresholds": {"medium": 0.9, "high": 0.6}},
        {"signatures": {"A": {"primaryPatterns": ["Alpha"], "fallbackPosition": 0}}},
    ],
)
def test_signature_file_rejects_inconsistent_tables(overrides):
    with pytest.raises(ValidationError):
        SignatureFile.model_validate(_signature_file(**overrides))
