"""Base classes for section mappers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from config import DeckConfig
from slide_markup import SlideTree, row_labels

logger = logging.getLogger(__name__)


@dataclass
class FieldUpdate:
    field: str
    value: str

    def to_dict(self) -> Dict[str, Any]:
        return {"field": self.field, "value": self.value}


@dataclass
class FieldError:
    field: str
    error: str
    hint: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"field": self.field, "error": self.error}
        if self.hint:
            data["hint"] = self.hint
        return data


@dataclass
class MapperResult:
    markup: str
    updated: List[FieldUpdate] = field(default_factory=list)
    errors: List[FieldError] = field(default_factory=list)

    def record(self, field_name: str, value: str, markup: Optional[str] = None) -> None:
        if markup is not None:
            self.markup = markup
        self.updated.append(FieldUpdate(field_name, value))
        logger.info(f"  ✅ Updated {field_name}: \"{DeckConfig.preview(value)}\"")

    def fail(self, field_name: str, error: str, hint: Optional[str] = None) -> None:
        self.errors.append(FieldError(field_name, error, hint))
        logger.warning(f"  ⚠️ {field_name}: {error}")


def labels_hint(tree: SlideTree) -> Optional[str]:
    """Hint listing the row labels a slide does have, for diagnosing template drift."""
    labels = row_labels(tree)
    if not labels:
        return "No table rows found on slide"
    return "Labels found: " + ", ".join(f'"{label}"' for label in labels[:12])


class BaseSectionMapper(ABC):
    """Shared interface for any slide section mapper."""

    name: str = "base"

    @abstractmethod
    def apply(self, markup: str, data: Any) -> MapperResult:
        """Return new slide markup plus per-field outcomes; never raises for a missing field."""
