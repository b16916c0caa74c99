"""
PPTX package access.

Opens a presentation byte buffer as a zip archive of named entries, exposes
text get/set per entry, and re-serializes the archive deterministically.
"""

from __future__ import annotations

import io
import logging
import re
import zipfile
import zlib
from typing import Any, Dict, List, Optional, Union

from config import DeckConfig

logger = logging.getLogger(__name__)

# Timestamp for entries that did not exist in the source package
_NEW_ENTRY_DATE_TIME = (1980, 1, 1, 0, 0, 0)


class DeckArchiveError(Exception):
    """Base class for structural problems with a document package."""


class CorruptArchiveError(DeckArchiveError):
    """The supplied bytes are not a readable zip package."""


class EntryNotFoundError(DeckArchiveError):
    """A named entry (usually a slide) is missing from the package."""

    def __init__(self, name: str):
        super().__init__(f"Entry not found in package: {name}")
        self.name = name


BytesLike = Union[bytes, bytearray, memoryview]


class PptxArchive:
    """In-memory view of a document package: entry name -> raw bytes."""

    def __init__(self, entries: Dict[str, bytes], infos: Optional[Dict[str, zipfile.ZipInfo]] = None):
        self._entries: Dict[str, bytes] = dict(entries)
        self._infos: Dict[str, zipfile.ZipInfo] = dict(infos or {})

    @classmethod
    def open(cls, data: BytesLike) -> "PptxArchive":
        if not isinstance(data, (bytes, bytearray, memoryview)):
            type_name = type(data).__name__
            raise CorruptArchiveError(f"Expected bytes but received {type_name}")
        if not data:
            raise CorruptArchiveError("No buffer provided")

        logger.debug(f"📦 Reading PPTX buffer: {len(data)} bytes")
        try:
            with zipfile.ZipFile(io.BytesIO(bytes(data))) as package:
                entries: Dict[str, bytes] = {}
                infos: Dict[str, zipfile.ZipInfo] = {}
                for info in package.infolist():
                    entries[info.filename] = package.read(info.filename)
                    infos[info.filename] = info
        except (zipfile.BadZipFile, zipfile.LargeZipFile, zlib.error, EOFError, ValueError, NotImplementedError) as exc:
            logger.error(f"❌ Error reading PPTX file: {exc}")
            raise CorruptArchiveError(f"Failed to read PPTX file: {exc}") from exc
        return cls(entries, infos)

    # ------------------------------------------------------------------
    # Entry access
    # ------------------------------------------------------------------

    def names(self) -> List[str]:
        return list(self._entries)

    def has_entry(self, name: str) -> bool:
        return name in self._entries

    def get_entry_bytes(self, name: str) -> bytes:
        try:
            return self._entries[name]
        except KeyError:
            raise EntryNotFoundError(name) from None

    def get_entry_text(self, name: str) -> str:
        return self.get_entry_bytes(name).decode("utf-8")

    def set_entry_text(self, name: str, content: str) -> None:
        self._entries[name] = content.encode("utf-8")

    def list_entries(self, name_pattern: str) -> List[str]:
        """Entry names matching a regex, numerically ordered by the first capture group when present."""
        pattern = re.compile(name_pattern)
        matched = []
        for name in self._entries:
            match = pattern.search(name)
            if not match:
                continue
            index = None
            if match.groups() and match.group(1) is not None and match.group(1).isdigit():
                index = int(match.group(1))
            matched.append((index, name))

        def sort_key(item):
            index, name = item
            return (0, index, name) if index is not None else (1, 0, name)

        return [name for _, name in sorted(matched, key=sort_key)]

    # ------------------------------------------------------------------
    # Slides
    # ------------------------------------------------------------------

    def slide_entries(self) -> List[str]:
        return self.list_entries(DeckConfig.SLIDE_ENTRY_PATTERN)

    def slide_numbers(self) -> List[int]:
        pattern = re.compile(DeckConfig.SLIDE_ENTRY_PATTERN)
        return [int(pattern.search(name).group(1)) for name in self.slide_entries()]

    def get_slide_markup(self, slide_number: int) -> str:
        return self.get_entry_text(DeckConfig.slide_entry_name(slide_number))

    def set_slide_markup(self, slide_number: int, markup: str) -> None:
        name = DeckConfig.slide_entry_name(slide_number)
        if name not in self._entries:
            raise EntryNotFoundError(name)
        self.set_entry_text(name, markup)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def serialize(self) -> bytes:
        buffer = io.BytesIO()
        level = DeckConfig.ZIP_COMPRESSION_LEVEL
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as package:
            for name, data in self._entries.items():
                source = self._infos.get(name)
                info = zipfile.ZipInfo(name, date_time=source.date_time if source else _NEW_ENTRY_DATE_TIME)
                compress_type = zipfile.ZIP_STORED if info.is_dir() else zipfile.ZIP_DEFLATED
                info.compress_type = compress_type
                if source is not None:
                    info.external_attr = source.external_attr
                    info.create_system = source.create_system
                package.writestr(info, data, compress_type=compress_type, compresslevel=level)
        output = buffer.getvalue()
        logger.debug(f"📦 Serialized PPTX: {len(self._entries)} entries, {len(output)} bytes")
        return output


def validate_structure(data: Any) -> bool:
    """True when the bytes open as a zip holding every required package entry."""
    try:
        archive = PptxArchive.open(data)
    except CorruptArchiveError:
        return False
    return all(archive.has_entry(name) for name in DeckConfig.REQUIRED_PACKAGE_ENTRIES)


def package_info(archive: PptxArchive) -> Dict[str, Any]:
    slides = archive.slide_entries()
    names = archive.names()
    return {
        "totalSlides": len(slides),
        "slides": slides,
        "hasCustomProperties": "docProps/custom.xml" in names,
        "hasCoreProperties": "docProps/core.xml" in names,
        "totalFiles": len(names),
    }
