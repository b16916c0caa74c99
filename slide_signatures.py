"""
Slide Signature Catalog

Static, versioned table of slide types and the text patterns that recognise
them in a placement deck. The built-in table mirrors the standard employee
benefits template; a JSON file of the same shape can replace it through
DECK_SLIDE_SIGNATURES_PATH. Catalogs are built once and never mutated.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from config import DeckConfig
from models import SignatureFile

logger = logging.getLogger(__name__)

# Slide types that have no group are assigned after every declared group
UNGROUPED = "_UNGROUPED"


@dataclass(frozen=True)
class SlideSignature:
    slide_type: str
    display_name: str
    primary_patterns: Tuple[str, ...]
    secondary_signals: Tuple[str, ...]
    unique_signals: Tuple[str, ...]
    exclude_patterns: Tuple[str, ...]
    fallback_position: int
    group: str
    sequence_order: int = 0
    data_key: Optional[str] = None


@dataclass(frozen=True)
class SignatureCatalog:
    version: str
    signatures: Mapping[str, SlideSignature]
    groups: Mapping[str, Tuple[str, ...]]
    medium_threshold: float
    high_threshold: float

    def __contains__(self, slide_type: str) -> bool:
        return slide_type in self.signatures

    def get(self, slide_type: str) -> Optional[SlideSignature]:
        return self.signatures.get(slide_type)

    def group_types(self, group: str) -> List[str]:
        return list(self.groups.get(group, ()))

    def assignment_order(self) -> List[Tuple[str, List[SlideSignature]]]:
        """Groups in declared order, each group's members by ascending sequence order."""
        ordered = []
        for group, slide_types in self.groups.items():
            members = sorted((self.signatures[t] for t in slide_types), key=lambda s: s.sequence_order)
            ordered.append((group, members))
        return ordered

    def data_key(self, slide_type: str) -> Optional[str]:
        signature = self.signatures.get(slide_type)
        return signature.data_key if signature else None

    @classmethod
    def from_definition(cls, definition: SignatureFile) -> "SignatureCatalog":
        group_of: Dict[str, str] = {}
        groups: Dict[str, Tuple[str, ...]] = {}
        for group, slide_types in definition.groups.items():
            groups[group] = tuple(slide_types)
            for slide_type in slide_types:
                group_of[slide_type] = group

        ungrouped = tuple(t for t in definition.signatures if t not in group_of)
        if ungrouped:
            groups[UNGROUPED] = ungrouped

        signatures = {}
        for slide_type, entry in definition.signatures.items():
            signatures[slide_type] = SlideSignature(
                slide_type=slide_type,
                display_name=entry.display_name or slide_type,
                primary_patterns=tuple(entry.primary_patterns),
                secondary_signals=tuple(entry.secondary_signals),
                unique_signals=tuple(entry.unique_signals),
                exclude_patterns=tuple(entry.exclude_patterns),
                fallback_position=entry.fallback_position,
                group=group_of.get(slide_type, UNGROUPED),
                sequence_order=entry.sequence_order,
                data_key=entry.data_key,
            )

        return cls(
            version=definition.version,
            signatures=MappingProxyType(signatures),
            groups=MappingProxyType(groups),
            medium_threshold=definition.confidence_thresholds.medium,
            high_threshold=definition.confidence_thresholds.high,
        )


# ============================================================================
# Built-in catalog (standard employee benefits placement deck)
# ============================================================================

_OVERVIEW_SIGNALS = ["Eligibility", "Last Entry Age", "Basis of Cover", "Non-evidence Limit"]
_PLAN_OVERVIEW_SIGNALS = ["Eligibility", "Last Entry Age", "Category", "Plan"]

DEFAULT_SIGNATURES: Dict[str, Any] = {
    "version": "1.0",
    "groups": {
        "GENERAL": ["PERIOD_OF_INSURANCE"],
        "GTL": ["GTL_OVERVIEW"],
        "GDD": ["GDD_OVERVIEW"],
        "GPA": ["GPA_OVERVIEW"],
        "GHS": [
            "GHS_OVERVIEW",
            "GHS_SCHEDULE_PART1",
            "GHS_SCHEDULE_PART2",
            "GHS_QUALIFICATION_PERIOD",
            "GHS_ROOM_AND_BOARD",
        ],
        "GMM": ["GMM_OVERVIEW", "GMM_SCHEDULE"],
        "GP": ["GP_OVERVIEW", "GP_SCHEDULE"],
        "SP": ["SP_OVERVIEW", "SP_SCHEDULE"],
        "DENTAL": ["DENTAL_OVERVIEW", "DENTAL_SCHEDULE_PART1", "DENTAL_SCHEDULE_PART2"],
    },
    "signatures": {
        "PERIOD_OF_INSURANCE": {
            "displayName": "Period of Insurance",
            "primaryPatterns": ["Period of Insurance"],
            "excludePatterns": ["Schedule of Benefits", "Eligibility"],
            "fallbackPosition": 1,
            "sequenceOrder": 1,
            "dataKey": "periodOfInsurance",
        },
        "GTL_OVERVIEW": {
            "displayName": "Group Term Life Overview",
            "primaryPatterns": ["Group Term Life", "Non-evidence Limit", "Non Evidence Limit"],
            "secondarySignals": _OVERVIEW_SIGNALS,
            "uniqueSignals": ["Group Term Life", "Term Life", "GTL"],
            "excludePatterns": ["Dread Disease", "Critical Illness", "Personal Accident"],
            "fallbackPosition": 8,
            "sequenceOrder": 1,
            "dataKey": "slide8Data",
        },
        "GDD_OVERVIEW": {
            "displayName": "Group Dread Disease Overview",
            "primaryPatterns": ["Group Dread Disease", "Dread Disease", "Critical Illness"],
            "secondarySignals": _OVERVIEW_SIGNALS,
            "uniqueSignals": ["Dread Disease", "GDD"],
            "excludePatterns": ["Personal Accident"],
            "fallbackPosition": 9,
            "sequenceOrder": 1,
            "dataKey": "slide9Data",
        },
        "GPA_OVERVIEW": {
            "displayName": "Group Personal Accident Overview",
            "primaryPatterns": ["Group Personal Accident", "Personal Accident"],
            "secondarySignals": ["Eligibility", "Last Entry Age", "Basis of Cover"],
            "uniqueSignals": ["Personal Accident", "GPA"],
            "excludePatterns": ["Dread Disease", "Critical Illness"],
            "fallbackPosition": 10,
            "sequenceOrder": 1,
            "dataKey": "slide10Data",
        },
        "GHS_OVERVIEW": {
            "displayName": "Group Hospital & Surgical Overview",
            "primaryPatterns": ["Group Hospital & Surgical", "Group Hospital and Surgical", "Hospital & Surgical"],
            "secondarySignals": _PLAN_OVERVIEW_SIGNALS,
            "uniqueSignals": ["GHS", "Hospital & Surgical"],
            "excludePatterns": ["Schedule of Benefits", "Room & Board", "Qualification Period", "Major Medical"],
            "fallbackPosition": 12,
            "sequenceOrder": 1,
            "dataKey": "slide12Data",
        },
        "GHS_SCHEDULE_PART1": {
            "displayName": "GHS Schedule of Benefits (Part 1)",
            "primaryPatterns": ["Schedule of Benefits"],
            "secondarySignals": ["Hospital & Surgical", "Room & Board", "Intensive Care", "Surgical"],
            "uniqueSignals": ["Daily Room & Board", "Intensive Care", "In-hospital"],
            "excludePatterns": ["Major Medical", "Dental", "Specialist", "General Practitioner"],
            "fallbackPosition": 15,
            "sequenceOrder": 2,
            "dataKey": "slide15Data",
        },
        "GHS_SCHEDULE_PART2": {
            "displayName": "GHS Schedule of Benefits (Part 2)",
            "primaryPatterns": ["Schedule of Benefits"],
            "secondarySignals": ["Hospital & Surgical", "Hospitalisation", "Emergency", "Outpatient"],
            "uniqueSignals": ["Pre-hospitalisation", "Post-hospitalisation", "Emergency Accidental", "Kidney Dialysis"],
            "excludePatterns": ["Major Medical", "Dental", "Specialist", "General Practitioner"],
            "fallbackPosition": 16,
            "sequenceOrder": 3,
            "dataKey": "slide16Data",
        },
        "GHS_QUALIFICATION_PERIOD": {
            "displayName": "GHS Qualification Period",
            "primaryPatterns": ["Qualification Period"],
            "secondarySignals": ["days", "Hospital"],
            "excludePatterns": ["Room & Board Entitlement", "Schedule of Benefits"],
            "fallbackPosition": 17,
            "sequenceOrder": 4,
            "dataKey": "slide17Data",
        },
        "GHS_ROOM_AND_BOARD": {
            "displayName": "GHS Room & Board Entitlements",
            "primaryPatterns": ["Room & Board Entitlement", "Room and Board Entitlement", "Class of Ward"],
            "secondarySignals": ["Bedded", "Ward", "Entitlement"],
            "uniqueSignals": ["Bedded"],
            "excludePatterns": ["Schedule of Benefits"],
            "fallbackPosition": 18,
            "sequenceOrder": 5,
            "dataKey": "slide18Data",
        },
        "GMM_OVERVIEW": {
            "displayName": "Group Major Medical Overview",
            "primaryPatterns": ["Group Major Medical", "Major Medical"],
            "secondarySignals": _PLAN_OVERVIEW_SIGNALS,
            "uniqueSignals": ["GMM", "Major Medical"],
            "excludePatterns": ["Schedule of Benefits"],
            "fallbackPosition": 19,
            "sequenceOrder": 1,
            "dataKey": "slide19Data",
        },
        "GMM_SCHEDULE": {
            "displayName": "GMM Schedule of Benefits",
            "primaryPatterns": ["Schedule of Benefits"],
            "secondarySignals": ["Major Medical", "Deductible", "Co-insurance", "Maximum Limit"],
            "uniqueSignals": ["Major Medical", "Deductible"],
            "excludePatterns": ["Dental", "General Practitioner", "Specialist"],
            "fallbackPosition": 20,
            "sequenceOrder": 2,
            "dataKey": "slide20Data",
        },
        "GP_OVERVIEW": {
            "displayName": "General Practitioner Overview",
            "primaryPatterns": ["General Practitioner", "GP Clinical"],
            "secondarySignals": _PLAN_OVERVIEW_SIGNALS,
            "uniqueSignals": ["General Practitioner"],
            "excludePatterns": ["Schedule of Benefits", "Specialist"],
            "fallbackPosition": 24,
            "sequenceOrder": 1,
            "dataKey": "slide24Data",
        },
        "GP_SCHEDULE": {
            "displayName": "GP Schedule of Benefits",
            "primaryPatterns": ["Schedule of Benefits"],
            "secondarySignals": ["General Practitioner", "Consultation", "Panel", "Non-Panel"],
            "uniqueSignals": ["General Practitioner"],
            "excludePatterns": ["Specialist", "Dental", "Major Medical"],
            "fallbackPosition": 25,
            "sequenceOrder": 2,
            "dataKey": "slide25Data",
        },
        "SP_OVERVIEW": {
            "displayName": "Specialist Overview",
            "primaryPatterns": ["Specialist"],
            "secondarySignals": _PLAN_OVERVIEW_SIGNALS,
            "uniqueSignals": ["Specialist"],
            "excludePatterns": ["Schedule of Benefits", "General Practitioner"],
            "fallbackPosition": 26,
            "sequenceOrder": 1,
            "dataKey": "slide26Data",
        },
        "SP_SCHEDULE": {
            "displayName": "SP Schedule of Benefits",
            "primaryPatterns": ["Schedule of Benefits"],
            "secondarySignals": ["Specialist", "Consultation", "Diagnostic", "Panel"],
            "uniqueSignals": ["Specialist"],
            "excludePatterns": ["General Practitioner", "Dental", "Major Medical"],
            "fallbackPosition": 27,
            "sequenceOrder": 2,
            "dataKey": "slide27Data",
        },
        "DENTAL_OVERVIEW": {
            "displayName": "Dental Overview",
            "primaryPatterns": ["Dental"],
            "secondarySignals": ["Eligibility", "Last Entry Age"],
            "uniqueSignals": ["Dental"],
            "excludePatterns": ["Schedule of Benefits", "Overall Limit"],
            "fallbackPosition": 30,
            "sequenceOrder": 1,
            "dataKey": "slide30Data",
        },
        "DENTAL_SCHEDULE_PART1": {
            "displayName": "Dental Schedule of Benefits (Part 1)",
            "primaryPatterns": ["Schedule of Benefits"],
            "secondarySignals": ["Dental", "Overall Limit", "Scaling", "Extraction"],
            "uniqueSignals": ["Scaling", "Polishing", "Fillings"],
            "excludePatterns": ["Major Medical", "Specialist", "General Practitioner"],
            "fallbackPosition": 31,
            "sequenceOrder": 2,
            "dataKey": "slide31Data",
        },
        "DENTAL_SCHEDULE_PART2": {
            "displayName": "Dental Schedule of Benefits (Part 2)",
            "primaryPatterns": ["Schedule of Benefits"],
            "secondarySignals": ["Dental", "Overall Limit", "Crown", "Denture"],
            "uniqueSignals": ["Root Canal", "Crowns", "Dentures"],
            "excludePatterns": ["Major Medical", "Specialist", "General Practitioner"],
            "fallbackPosition": 32,
            "sequenceOrder": 3,
            "dataKey": "slide32Data",
        },
    },
}


def default_catalog() -> SignatureCatalog:
    definition = dict(DEFAULT_SIGNATURES)
    definition["confidenceThresholds"] = {
        "high": DeckConfig.CONFIDENCE_HIGH,
        "medium": DeckConfig.CONFIDENCE_MEDIUM,
    }
    return SignatureCatalog.from_definition(SignatureFile.model_validate(definition))


def load_signature_file(path: str) -> SignatureCatalog:
    """Read and validate a JSON signature table. Raises pydantic.ValidationError on a malformed table."""
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    catalog = SignatureCatalog.from_definition(SignatureFile.model_validate(raw))
    logger.info(f"📋 Loaded {len(catalog.signatures)} slide signatures from {path} (v{catalog.version})")
    return catalog


@lru_cache(maxsize=None)
def get_signature_catalog(path: Optional[str] = None) -> SignatureCatalog:
    """Catalog for this process: the file at `path` or DECK_SLIDE_SIGNATURES_PATH, else the built-in table."""
    source = path or DeckConfig.SLIDE_SIGNATURES_PATH
    if source:
        return load_signature_file(source)
    catalog = default_catalog()
    logger.debug(f"📋 Using built-in slide signatures ({len(catalog.signatures)} types)")
    return catalog
