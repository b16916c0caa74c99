"""
Deck Updater Configuration

Small configuration surface for the placement-slip to slide-deck workflow.
Values come from the environment (optionally a local .env file) and are read
once at import time; nothing here changes while a document is processed.
"""

import os
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


class DeckConfig:
    """Settings shared by the archive, detector, mappers and CLI."""

    # Document package
    REQUIRED_PACKAGE_ENTRIES: List[str] = [
        "[Content_Types].xml",
        "ppt/presentation.xml",
    ]
    SLIDE_ENTRY_PATTERN = r"^ppt/slides/slide(\d+)\.xml$"
    SLIDE_ENTRY_TEMPLATE = "ppt/slides/slide{number}.xml"
    ZIP_COMPRESSION_LEVEL = int(os.getenv("DECK_ZIP_COMPRESSION_LEVEL", "6"))

    # Slide detection
    SLIDE_SIGNATURES_PATH: Optional[str] = os.getenv("DECK_SLIDE_SIGNATURES_PATH") or None
    CONFIDENCE_HIGH = float(os.getenv("DECK_CONFIDENCE_HIGH", "0.8"))
    CONFIDENCE_MEDIUM = float(os.getenv("DECK_CONFIDENCE_MEDIUM", "0.5"))
    PRIMARY_POINTS = 50
    SECONDARY_POINTS = 30
    UNIQUE_POINTS = 20
    EXCLUDE_PENALTY = 40

    # Field mapping
    CATEGORY_MATCH_THRESHOLD = float(os.getenv("DECK_CATEGORY_MATCH_THRESHOLD", "0.6"))
    CATEGORY_PREFIX_CHARS = int(os.getenv("DECK_CATEGORY_PREFIX_CHARS", "15"))
    CATEGORY_ABBREVIATIONS = {
        "mgmt": "management",
        "mgt": "management",
        "mgr": "manager",
        "mgrs": "managers",
        "dept": "department",
        "exec": "executive",
        "execs": "executives",
        "asst": "assistant",
        "snr": "senior",
        "sr": "senior",
        "jr": "junior",
        "admin": "administration",
        "emp": "employees",
    }

    # Logging
    LOG_LEVEL = os.getenv("DECK_LOG_LEVEL", "INFO").upper()
    LOG_DIR = os.getenv("DECK_LOG_DIR", "deck_runs")
    MAX_LOGGED_VALUE_CHARS = 50

    @classmethod
    def slide_entry_name(cls, slide_number: int) -> str:
        return cls.SLIDE_ENTRY_TEMPLATE.format(number=int(slide_number))

    @classmethod
    def preview(cls, value: object) -> str:
        """Shorten a value for log output."""
        text = "" if value is None else str(value)
        limit = cls.MAX_LOGGED_VALUE_CHARS
        if len(text) <= limit:
            return text
        return text[:limit] + "..."
