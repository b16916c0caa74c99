"""Tests for the document package accessor."""

import io
import zipfile

import pytest

from deck_builder import build_deck, read_entries, text_slide
from pptx_archive import (
    CorruptArchiveError,
    EntryNotFoundError,
    PptxArchive,
    package_info,
    validate_structure,
)


def _deck():
    return build_deck(
        {1: text_slide("Title"), 2: text_slide("Second"), 10: text_slide("Tenth")},
        extra={"docProps/core.xml": b"<cp:coreProperties/>"},
    )


def test_round_trip_without_changes_preserves_every_entry():
    data = _deck()
    output = PptxArchive.open(data).serialize()

    assert read_entries(output) == read_entries(data)
    with zipfile.ZipFile(io.BytesIO(output)) as package:
        names = package.namelist()
    with zipfile.ZipFile(io.BytesIO(data)) as package:
        assert names == package.namelist()


def test_serialize_is_deterministic():
    archive = PptxArchive.open(_deck())
    archive.set_slide_markup(2, text_slide("Changed"))
    assert archive.serialize() == archive.serialize()


def test_slide_entries_sort_numerically():
    archive = PptxArchive.open(_deck())
    assert archive.slide_entries() == [
        "ppt/slides/slide1.xml",
        "ppt/slides/slide2.xml",
        "ppt/slides/slide10.xml",
    ]
    assert archive.slide_numbers() == [1, 2, 10]


def test_list_entries_without_capture_group_keeps_name_order():
    archive = PptxArchive.open(_deck())
    assert archive.list_entries(r"^ppt/presentation\.xml$") == ["ppt/presentation.xml"]


def test_set_entry_only_changes_that_entry():
    data = _deck()
    archive = PptxArchive.open(data)
    archive.set_slide_markup(2, text_slide("Replaced – €"))

    before = read_entries(data)
    after = read_entries(archive.serialize())
    changed = [name for name in before if before[name] != after[name]]

    assert changed == ["ppt/slides/slide2.xml"]
    assert "Replaced – €" in archive.get_slide_markup(2)


def test_missing_entries_raise_entry_not_found():
    archive = PptxArchive.open(_deck())
    with pytest.raises(EntryNotFoundError) as excinfo:
        archive.get_slide_markup(5)
    assert excinfo.value.name == "ppt/slides/slide5.xml"

    with pytest.raises(EntryNotFoundError):
        archive.set_slide_markup(5, "<p:sld/>")


@pytest.mark.parametrize("payload", [b"", b"definitely not a zip", "a string"])
def test_open_rejects_unreadable_input(payload):
    with pytest.raises(CorruptArchiveError):
        PptxArchive.open(payload)


def test_validate_structure():
    assert validate_structure(_deck()) is True
    assert validate_structure(b"garbage") is False

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as package:
        package.writestr("[Content_Types].xml", "<Types/>")
        package.writestr("word/document.xml", "<w:document/>")
    assert validate_structure(buffer.getvalue()) is False


def test_package_info():
    info = package_info(PptxArchive.open(_deck()))
    assert info["totalSlides"] == 3
    assert info["slides"][-1] == "ppt/slides/slide10.xml"
    assert info["hasCoreProperties"] is True
    assert info["hasCustomProperties"] is False
    assert info["totalFiles"] == 6


def test_directory_entries_survive_round_trip():
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as package:
        package.writestr("[Content_Types].xml", "<Types/>")
        package.writestr("ppt/", b"")
        package.writestr("ppt/presentation.xml", "<p:presentation/>")

    output = PptxArchive.open(buffer.getvalue()).serialize()

    with zipfile.ZipFile(io.BytesIO(output)) as package:
        assert package.namelist() == ["[Content_Types].xml", "ppt/", "ppt/presentation.xml"]
        assert package.getinfo("ppt/").is_dir()
