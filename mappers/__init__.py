"""Section mapper registry and the declarative section table."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from .base import BaseSectionMapper


@dataclass(frozen=True)
class SectionBinding:
    """One placement data section and the slide type and mapper that consume it."""

    data_key: str
    slide_type: str
    mapper: str
    display_name: str


# Processing order is fixed so output is reproducible.
SECTION_MAPPINGS = (
    SectionBinding("periodOfInsurance", "PERIOD_OF_INSURANCE", "period", "Period of Insurance"),
    SectionBinding("slide8Data", "GTL_OVERVIEW", "overview", "GTL Overview"),
    SectionBinding("slide9Data", "GDD_OVERVIEW", "overview", "GDD Overview"),
    SectionBinding("slide10Data", "GPA_OVERVIEW", "overview", "GPA Overview"),
    SectionBinding("slide12Data", "GHS_OVERVIEW", "overview", "GHS Overview"),
    SectionBinding("slide15Data", "GHS_SCHEDULE_PART1", "schedule", "GHS Schedule of Benefits (Part 1)"),
    SectionBinding("slide16Data", "GHS_SCHEDULE_PART2", "schedule", "GHS Schedule of Benefits (Part 2)"),
    SectionBinding("slide17Data", "GHS_QUALIFICATION_PERIOD", "qualification_period", "GHS Qualification Period"),
    SectionBinding("slide18Data", "GHS_ROOM_AND_BOARD", "room_and_board", "GHS Room & Board"),
    SectionBinding("slide19Data", "GMM_OVERVIEW", "overview", "GMM Overview"),
    SectionBinding("slide20Data", "GMM_SCHEDULE", "schedule", "GMM Schedule of Benefits"),
    SectionBinding("slide24Data", "GP_OVERVIEW", "overview", "GP Overview"),
    SectionBinding("slide25Data", "GP_SCHEDULE", "schedule", "GP Schedule of Benefits"),
    SectionBinding("slide26Data", "SP_OVERVIEW", "overview", "SP Overview"),
    SectionBinding("slide27Data", "SP_SCHEDULE", "schedule", "SP Schedule of Benefits"),
    SectionBinding("slide30Data", "DENTAL_OVERVIEW", "overview", "Dental Overview"),
    SectionBinding("slide31Data", "DENTAL_SCHEDULE_PART1", "overall_limit", "Dental Schedule (Part 1)"),
    SectionBinding("slide32Data", "DENTAL_SCHEDULE_PART2", "overall_limit", "Dental Schedule (Part 2)"),
)


def _normalized(name: str) -> str:
    return (name or "").strip().lower()


def get_mapper(name: str) -> BaseSectionMapper:
    normalized = _normalized(name)
    if normalized == "period":
        from .period import PeriodOfInsuranceMapper

        return PeriodOfInsuranceMapper()
    if normalized == "overview":
        from .overview import OverviewMapper

        return OverviewMapper()
    if normalized == "schedule":
        from .schedule import ScheduleMapper

        return ScheduleMapper()
    if normalized == "qualification_period":
        from .ghs import QualificationPeriodMapper

        return QualificationPeriodMapper()
    if normalized == "room_and_board":
        from .ghs import RoomAndBoardMapper

        return RoomAndBoardMapper()
    if normalized == "overall_limit":
        from .dental import OverallLimitMapper

        return OverallLimitMapper()
    raise ValueError(f"Unknown mapper '{name}'")


def available_mappers() -> List[str]:
    return ["period", "overview", "schedule", "qualification_period", "room_and_board", "overall_limit"]
