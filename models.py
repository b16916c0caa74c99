from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

SECTION_KEY_PATTERN = re.compile(r"^slide\d+Data$")
PERIOD_OF_INSURANCE_KEY = "periodOfInsurance"


def _coerce_text(value: Any) -> Any:
    """Spreadsheet cells arrive as numbers as often as strings."""
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else str(value)
    if isinstance(value, int):
        return str(value)
    return value


class _InputModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class PeriodOfInsurance(_InputModel):
    formatted: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None

    @field_validator("formatted", "start_date", "end_date", mode="before")
    def coerce_text(cls, v: Any) -> Any:
        return _coerce_text(v)

    def display(self) -> Optional[str]:
        if self.formatted:
            return self.formatted.strip()
        if self.start_date and self.end_date:
            return f"{self.start_date.strip()} to {self.end_date.strip()}"
        return None


class BasisOfCoverItem(_InputModel):
    category: str
    basis: str

    @field_validator("category", "basis", mode="before")
    def coerce_text(cls, v: Any) -> Any:
        return _coerce_text(v)


class CategoryPlan(_InputModel):
    category: str
    plan: str

    @field_validator("category", "plan", mode="before")
    def coerce_text(cls, v: Any) -> Any:
        return _coerce_text(v)


class SubItem(_InputModel):
    name: str
    identifier: Optional[str] = None
    values: Dict[str, Optional[str]] = Field(default_factory=dict)

    @field_validator("values", mode="before")
    def coerce_values(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {key: _coerce_text(item) for key, item in v.items()}
        return v


class Benefit(_InputModel):
    number: Optional[int] = None
    name: str
    raw_name: Optional[str] = None
    values: Dict[str, Optional[str]] = Field(default_factory=dict)
    sub_items: List[SubItem] = Field(default_factory=list)

    @field_validator("number", mode="before")
    def coerce_number(cls, v: Any) -> Any:
        # "1." and " 2 " show up when the number column is typed by hand
        if isinstance(v, str):
            digits = re.match(r"\s*(\d+)", v)
            return int(digits.group(1)) if digits else None
        return v

    @field_validator("values", mode="before")
    def coerce_values(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {key: _coerce_text(item) for key, item in v.items()}
        return v


class ScheduleOfBenefits(_InputModel):
    plan_headers: List[str] = Field(default_factory=list)
    benefits: List[Benefit] = Field(default_factory=list)

    @field_validator("plan_headers", mode="before")
    def coerce_headers(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [_coerce_text(item) for item in v]
        return v


class Ward(_InputModel):
    class_of_ward: str
    benefit: Optional[str] = None

    @field_validator("class_of_ward", "benefit", mode="before")
    def coerce_text(cls, v: Any) -> Any:
        return _coerce_text(v)


class RoomAndBoardSection(_InputModel):
    title: Optional[str] = None
    bedded_type: Optional[str] = None
    wards: List[Ward] = Field(default_factory=list)


class SectionData(_InputModel):
    """One slide section of a placement slip. Every field is optional; mappers skip what is absent."""

    eligibility: Optional[str] = None
    last_entry_age: Optional[str] = None
    non_evidence_limit: Optional[str] = None
    basis_of_cover: List[BasisOfCoverItem] = Field(default_factory=list)
    category_plans: List[CategoryPlan] = Field(default_factory=list)
    schedule_of_benefits: Optional[ScheduleOfBenefits] = None
    qualification_period_days: Optional[str] = None
    room_and_board_entitlements: List[RoomAndBoardSection] = Field(default_factory=list)
    overall_limit: Optional[str] = None

    @field_validator(
        "eligibility",
        "last_entry_age",
        "non_evidence_limit",
        "qualification_period_days",
        "overall_limit",
        mode="before",
    )
    def coerce_text(cls, v: Any) -> Any:
        return _coerce_text(v)

    def has_content(self) -> bool:
        scalars = (
            self.eligibility,
            self.last_entry_age,
            self.non_evidence_limit,
            self.qualification_period_days,
            self.overall_limit,
        )
        if any(value and value.strip() for value in scalars):
            return True
        if self.basis_of_cover or self.category_plans or self.room_and_board_entitlements:
            return True
        return bool(self.schedule_of_benefits and self.schedule_of_benefits.benefits)


class PlacementData(_InputModel):
    """
    Structured placement slip as produced by the spreadsheet extraction step.

    Accepts the extractor's dictionary as-is: `periodOfInsurance` plus any
    number of `slide<N>Data` sections. Other keys (raw sheet dumps, metadata)
    are ignored.
    """

    period_of_insurance: Optional[PeriodOfInsurance] = None
    sections: Dict[str, SectionData] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def collect_sections(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "sections" in data:
            return data
        collected = dict(data)
        collected["sections"] = {
            key: value
            for key, value in data.items()
            if SECTION_KEY_PATTERN.match(key) and value is not None
        }
        return collected

    def section(self, data_key: str) -> Optional[SectionData]:
        return self.sections.get(data_key)

    def get(self, data_key: str) -> Any:
        """Section payload for a data key; `periodOfInsurance` resolves to the period."""
        if data_key == PERIOD_OF_INSURANCE_KEY:
            return self.period_of_insurance
        return self.section(data_key)


# ============================================================================
# Slide signature file
# ============================================================================


class SignatureDefinition(_InputModel):
    display_name: Optional[str] = None
    primary_patterns: List[str] = Field(default_factory=list)
    secondary_signals: List[str] = Field(default_factory=list)
    unique_signals: List[str] = Field(default_factory=list)
    exclude_patterns: List[str] = Field(default_factory=list)
    fallback_position: int = Field(ge=1)
    sequence_order: int = 0
    data_key: Optional[str] = None


class ConfidenceThresholds(_InputModel):
    high: float = Field(default=0.8, ge=0.0, le=1.0)
    medium: float = Field(default=0.5, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def validate_order(self) -> "ConfidenceThresholds":
        if self.medium > self.high:
            raise ValueError(f"medium threshold {self.medium} above high threshold {self.high}")
        return self


class SignatureFile(_InputModel):
    version: str = "1.0"
    confidence_thresholds: ConfidenceThresholds = Field(default_factory=ConfidenceThresholds)
    groups: Dict[str, List[str]] = Field(default_factory=dict)
    signatures: Dict[str, SignatureDefinition]

    @field_validator("version", mode="before")
    def coerce_version(cls, v: Any) -> Any:
        return str(v) if isinstance(v, (int, float)) else v

    @model_validator(mode="after")
    def validate_groups(self) -> "SignatureFile":
        seen = set()
        for group, slide_types in self.groups.items():
            for slide_type in slide_types:
                if slide_type not in self.signatures:
                    raise ValueError(f"Group '{group}' references unknown slide type: {slide_type}")
                if slide_type in seen:
                    raise ValueError(f"Slide type listed in more than one group: {slide_type}")
                seen.add(slide_type)
        return self
