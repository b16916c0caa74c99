"""
Placement Deck Updater

Drives one document through open -> detect -> per-section mapping ->
serialize. Structural problems (unreadable package, a detected slide that
cannot be read) abort the run. Everything else is recorded in the result so a
reviewer can judge the best-effort output.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from config import DeckConfig
from logging_utils import log_exception
from mappers import SECTION_MAPPINGS, SectionBinding, get_mapper
from models import PlacementData
from pptx_archive import PptxArchive
from slide_detector import (
    DetectionValidation,
    SlideDetection,
    detect_slide_positions,
    get_slide_number,
    validate_detection,
)
from slide_markup import extract_text_fragments
from slide_signatures import SignatureCatalog, get_signature_catalog

logger = logging.getLogger(__name__)


@dataclass
class SlideUpdate:
    slide: int
    field: str
    value: str

    def to_dict(self) -> Dict[str, Any]:
        return {"slide": self.slide, "field": self.field, "value": self.value}


@dataclass
class SlideError:
    slide: int
    field: str
    error: str
    hint: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"slide": self.slide, "field": self.field, "error": self.error}
        if self.hint:
            data["hint"] = self.hint
        return data


@dataclass
class UpdateResult:
    total_slides: int
    buffer: bytes
    slide_detection: SlideDetection
    updated_slides: List[SlideUpdate] = field(default_factory=list)
    errors: List[SlideError] = field(default_factory=list)
    detection_validation: Optional[DetectionValidation] = None

    @property
    def success(self) -> bool:
        # Structural failures raise instead of returning a result
        return True

    @property
    def buffer_size(self) -> int:
        return len(self.buffer)

    def to_dict(self, include_buffer: bool = True) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "success": self.success,
            "totalSlides": self.total_slides,
            "updatedSlides": [update.to_dict() for update in self.updated_slides],
            "errors": [error.to_dict() for error in self.errors],
            "slideDetection": {
                "results": {t: r.to_dict() for t, r in self.slide_detection.results.items()},
                "warnings": [w.to_dict() for w in self.slide_detection.warnings],
            },
            "bufferSize": self.buffer_size,
        }
        if include_buffer:
            data["buffer"] = self.buffer
        if self.detection_validation is not None:
            data["detectionValidation"] = self.detection_validation.to_dict()
        return data


def _has_data(payload: Any) -> bool:
    if payload is None:
        return False
    if hasattr(payload, "has_content"):
        return payload.has_content()
    if hasattr(payload, "display"):
        return bool(payload.display())
    return True


def process_document(
    source_bytes: bytes,
    placement_data: Union[PlacementData, Mapping[str, Any]],
    catalog: Optional[SignatureCatalog] = None,
) -> UpdateResult:
    """
    Apply placement data to a deck and return the rewritten package.

    Raises:
        pydantic.ValidationError: placement data has the wrong shape
        CorruptArchiveError: source bytes are not a readable package
        EntryNotFoundError: a detected slide entry cannot be read
    """
    if not isinstance(placement_data, PlacementData):
        placement_data = PlacementData.model_validate(placement_data)
    catalog = catalog or get_signature_catalog()

    logger.info("🔄 Processing PPTX with placement data...")
    archive = PptxArchive.open(source_bytes)
    detection = detect_slide_positions(archive, catalog)

    updated: List[SlideUpdate] = []
    errors: List[SlideError] = []
    required_types: List[str] = []

    for binding in SECTION_MAPPINGS:
        payload = placement_data.get(binding.data_key)
        if not _has_data(payload):
            logger.debug(f"⏭️ Skipping {binding.display_name}: no data")
            continue
        required_types.append(binding.slide_type)
        _apply_section(archive, detection, catalog, binding, payload, updated, errors)

    validation = validate_detection(detection.results, required_types)
    if not validation.valid or validation.low_confidence:
        logger.warning(f"⚠️ Detection validation: {validation.message}")

    output = archive.serialize()
    logger.info(
        f"📝 Update complete: {len(updated)} fields updated, {len(errors)} errors, {len(output)} bytes"
    )
    return UpdateResult(
        total_slides=detection.total_slides,
        buffer=output,
        slide_detection=detection,
        updated_slides=updated,
        errors=errors,
        detection_validation=validation if required_types else None,
    )


def _apply_section(
    archive: PptxArchive,
    detection: SlideDetection,
    catalog: SignatureCatalog,
    binding: SectionBinding,
    payload: Any,
    updated: List[SlideUpdate],
    errors: List[SlideError],
) -> None:
    signature = catalog.get(binding.slide_type)
    fallback = signature.fallback_position if signature else None
    if fallback is None and binding.slide_type not in detection.slide_map:
        errors.append(SlideError(0, binding.display_name, f"Unknown slide type {binding.slide_type}"))
        logger.error(f"❌ No signature for {binding.slide_type}; skipping {binding.display_name}")
        return

    slide_number = get_slide_number(detection.slide_map, binding.slide_type, fallback)
    detected = detection.results.get(binding.slide_type)
    used_fallback = detected is None or detected.used_fallback
    if used_fallback and not archive.has_entry(DeckConfig.slide_entry_name(slide_number)):
        hint = (
            f"No slide matched {binding.slide_type} and fallback position {slide_number} "
            f"is beyond the deck ({detection.total_slides} slides)"
        )
        errors.append(SlideError(slide_number, binding.display_name, "Slide not found", hint))
        logger.warning(f"⚠️ {binding.display_name}: {hint}")
        return

    logger.info(f"📝 Updating {binding.display_name} (Slide {slide_number})...")

    # A detected slide that cannot be read is structural and propagates
    markup = archive.get_slide_markup(slide_number)

    try:
        outcome = get_mapper(binding.mapper).apply(markup, payload)
    except Exception as exc:
        log_exception(logger, exc, context=f"{binding.display_name} mapper", slide=slide_number)
        errors.append(SlideError(slide_number, binding.display_name, str(exc)))
        return

    if outcome.markup != markup:
        archive.set_slide_markup(slide_number, outcome.markup)
    updated.extend(SlideUpdate(slide_number, u.field, u.value) for u in outcome.updated)
    errors.extend(SlideError(slide_number, e.field, e.error, e.hint) for e in outcome.errors)
    logger.info(
        f"  Slide {slide_number}: {len(outcome.updated)} updated, {len(outcome.errors)} errors"
    )


def inspect_slide(source_bytes: bytes, slide_number: int) -> Dict[str, Any]:
    """Text fragments of one slide, for template debugging."""
    archive = PptxArchive.open(source_bytes)
    markup = archive.get_slide_markup(slide_number)
    fragments = extract_text_fragments(markup)
    return {
        "slideNumber": slide_number,
        "textElements": fragments,
        "xmlLength": len(markup),
        "containsPeriodOfInsurance": "period of insurance" in markup.lower(),
        "preview": [DeckConfig.preview(text) for text in fragments[:20]],
    }
