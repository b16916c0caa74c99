"""
Slide Signature Detector

Locates slide types by content instead of fixed slide numbers. Every slide is
scored against every signature, then slide types claim slides group by group
in sequence order. Low-confidence types fall back to their configured
position so a document always receives a best-effort mapping.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Mapping, Optional

from config import DeckConfig
from pptx_archive import PptxArchive
from slide_markup import slide_plain_text
from slide_signatures import SignatureCatalog, SlideSignature, get_signature_catalog

logger = logging.getLogger(__name__)


@dataclass
class MatchDetails:
    primary_matches: List[str] = field(default_factory=list)
    secondary_matches: List[str] = field(default_factory=list)
    unique_matches: List[str] = field(default_factory=list)
    exclude_matches: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "primaryMatches": list(self.primary_matches),
            "secondaryMatches": list(self.secondary_matches),
            "uniqueMatches": list(self.unique_matches),
            "excludeMatches": list(self.exclude_matches),
        }


@dataclass
class SlideScore:
    score: int
    confidence: float
    details: MatchDetails
    max_score: int = 100


@dataclass
class DetectionResult:
    slide_type: str
    slide_number: int
    confidence: float
    used_fallback: bool
    details: Optional[MatchDetails] = None

    @property
    def detected(self) -> bool:
        return not self.used_fallback

    def to_dict(self) -> Dict[str, Any]:
        return {
            "detected": self.detected,
            "slideNum": self.slide_number,
            "confidence": self.confidence,
            "usedFallback": self.used_fallback,
            "details": self.details.to_dict() if self.details else None,
        }


@dataclass
class DetectionWarning:
    slide_type: str
    display_name: str
    message: str
    confidence: float
    fallback_position: Optional[int] = None
    detected_position: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "slideType": self.slide_type,
            "displayName": self.display_name,
            "message": self.message,
            "confidence": self.confidence,
        }
        if self.fallback_position is not None:
            data["fallbackPosition"] = self.fallback_position
        if self.detected_position is not None:
            data["detectedPosition"] = self.detected_position
        return data


@dataclass
class SlideDetection:
    slide_map: Dict[str, int]
    results: Dict[str, DetectionResult]
    warnings: List[DetectionWarning]
    total_slides: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "slideMap": dict(self.slide_map),
            "results": {slide_type: result.to_dict() for slide_type, result in self.results.items()},
            "warnings": [warning.to_dict() for warning in self.warnings],
            "totalSlides": self.total_slides,
        }


@dataclass
class DetectionValidation:
    valid: bool
    missing: List[str]
    low_confidence: List[Dict[str, Any]]
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "missing": list(self.missing),
            "lowConfidence": list(self.low_confidence),
            "message": self.message,
        }


# ============================================================================
# Scoring
# ============================================================================


@lru_cache(maxsize=512)
def _phrase_regex(pattern: str) -> "re.Pattern[str]":
    return re.compile(r"(?<!\w)" + re.escape(pattern) + r"(?!\w)", re.IGNORECASE)


def matches_pattern(text: str, pattern: str) -> bool:
    """Whole-phrase, case-insensitive match."""
    return bool(pattern) and bool(_phrase_regex(pattern).search(text))


def _points(matched: int, total: int, weight: int) -> int:
    # Half-up rounding keeps scores stable at .5 boundaries
    return int(matched / total * weight + 0.5)


def score_slide_match(text: str, signature: SlideSignature) -> SlideScore:
    details = MatchDetails()
    lowered = text.lower()
    score = 0

    details.primary_matches = [p for p in signature.primary_patterns if matches_pattern(text, p)]
    if details.primary_matches:
        score += DeckConfig.PRIMARY_POINTS

    details.secondary_matches = [s for s in signature.secondary_signals if s.lower() in lowered]
    if signature.secondary_signals:
        score += _points(len(details.secondary_matches), len(signature.secondary_signals), DeckConfig.SECONDARY_POINTS)

    details.unique_matches = [s for s in signature.unique_signals if s.lower() in lowered]
    if signature.unique_signals:
        score += _points(len(details.unique_matches), len(signature.unique_signals), DeckConfig.UNIQUE_POINTS)
    elif details.primary_matches:
        score += DeckConfig.UNIQUE_POINTS

    details.exclude_matches = [p for p in signature.exclude_patterns if matches_pattern(text, p)]
    if details.exclude_matches:
        score = max(0, score - DeckConfig.EXCLUDE_PENALTY)

    return SlideScore(score=score, confidence=score / 100, details=details)


# ============================================================================
# Detection
# ============================================================================


def extract_slide_texts(archive: PptxArchive) -> Dict[int, str]:
    texts = {number: slide_plain_text(archive.get_slide_markup(number)) for number in archive.slide_numbers()}
    logger.info(f"📊 Extracted text from {len(texts)} slides")
    return texts


def detect_from_texts(slide_texts: Mapping[int, str], catalog: Optional[SignatureCatalog] = None) -> SlideDetection:
    """Assign slide numbers from already-extracted per-slide text."""
    catalog = catalog or get_signature_catalog()
    slide_numbers = sorted(slide_texts)

    all_scores = {
        slide_type: {number: score_slide_match(slide_texts[number], signature) for number in slide_numbers}
        for slide_type, signature in catalog.signatures.items()
    }

    slide_map: Dict[str, int] = {}
    results: Dict[str, DetectionResult] = {}
    warnings: List[DetectionWarning] = []
    assigned = set()

    for _group, members in catalog.assignment_order():
        for signature in members:
            best_number = signature.fallback_position
            best_confidence = 0.0
            best_details = None
            used_fallback = True

            for number in slide_numbers:
                if number in assigned:
                    continue
                candidate = all_scores[signature.slide_type][number]
                if candidate.confidence > best_confidence:
                    best_number = number
                    best_confidence = candidate.confidence
                    best_details = candidate.details
                    used_fallback = False

            percent = round(best_confidence * 100)
            if best_confidence < catalog.medium_threshold:
                best_number = signature.fallback_position
                used_fallback = True
                warnings.append(DetectionWarning(
                    slide_type=signature.slide_type,
                    display_name=signature.display_name,
                    message=(
                        f"{signature.display_name} could not be detected (confidence: {percent}%). "
                        f"Using fallback position: Slide {signature.fallback_position}"
                    ),
                    confidence=best_confidence,
                    fallback_position=signature.fallback_position,
                ))
            elif best_confidence < catalog.high_threshold:
                warnings.append(DetectionWarning(
                    slide_type=signature.slide_type,
                    display_name=signature.display_name,
                    message=(
                        f"{signature.display_name} detected with medium confidence ({percent}%) "
                        f"at Slide {best_number}"
                    ),
                    confidence=best_confidence,
                    detected_position=best_number,
                ))

            if not used_fallback:
                assigned.add(best_number)

            slide_map[signature.slide_type] = best_number
            results[signature.slide_type] = DetectionResult(
                slide_type=signature.slide_type,
                slide_number=best_number,
                confidence=best_confidence,
                used_fallback=used_fallback,
                details=best_details,
            )

    logger.info("📍 Slide Detection Results:")
    for slide_type, result in results.items():
        status = "✅" if result.detected else "⚠️"
        note = " (fallback)" if result.used_fallback else ""
        logger.info(f"  {status} {slide_type}: Slide {result.slide_number} ({round(result.confidence * 100)}% confidence){note}")
    if warnings:
        logger.warning(f"⚠️ {len(warnings)} detection warning(s)")

    return SlideDetection(slide_map=slide_map, results=results, warnings=warnings, total_slides=len(slide_numbers))


def detect_slide_positions(archive: PptxArchive, catalog: Optional[SignatureCatalog] = None) -> SlideDetection:
    return detect_from_texts(extract_slide_texts(archive), catalog)


# ============================================================================
# Helpers
# ============================================================================


def get_slide_number(slide_map: Optional[Mapping[str, int]], slide_type: str, fallback_position: int) -> int:
    if slide_map and slide_type in slide_map:
        return slide_map[slide_type]
    logger.warning(f"⚠️ Slide type {slide_type} not found in map, using fallback: {fallback_position}")
    return fallback_position


def get_data_key(slide_type: str, catalog: Optional[SignatureCatalog] = None) -> Optional[str]:
    return (catalog or get_signature_catalog()).data_key(slide_type)


def get_group_slide_types(group: str, catalog: Optional[SignatureCatalog] = None) -> List[str]:
    return (catalog or get_signature_catalog()).group_types(group)


def validate_detection(results: Mapping[str, DetectionResult], required_types: Iterable[str]) -> DetectionValidation:
    missing = []
    low_confidence = []
    for slide_type in required_types:
        result = results.get(slide_type)
        if result is None:
            missing.append(slide_type)
        elif result.used_fallback:
            low_confidence.append({"slideType": slide_type, "confidence": result.confidence})

    if missing:
        message = f"Missing slide types: {', '.join(missing)}"
    elif low_confidence:
        message = f"Low confidence detection for: {', '.join(item['slideType'] for item in low_confidence)}"
    else:
        message = "All required slides detected successfully"

    return DetectionValidation(valid=not missing, missing=missing, low_confidence=low_confidence, message=message)
