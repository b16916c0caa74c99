"""Tests for the deck CLI and file helpers."""

import json
import logging
from datetime import datetime
from pathlib import Path

from deck_builder import build_deck, label_row, slide, table, text_slide
from deck_cli import main
from file_utils import report_path_for, timestamped_filename
from logging_utils import setup_run_logging
from slide_signatures import DEFAULT_SIGNATURES


def _write_inputs(tmp_path, placement):
    deck = tmp_path / "template.pptx"
    deck.write_bytes(
        build_deck(
            {
                1: text_slide("Period of Insurance: 1 July 2024 to 30 June 2025"),
                2: slide(table(label_row("Eligibility", "All employees"), label_row("Non-evidence Limit", "$30,000"))),
            }
        )
    )
    placement_path = tmp_path / "placement.json"
    placement_path.write_text(json.dumps(placement), encoding="utf-8")
    signatures = tmp_path / "signatures.json"
    signatures.write_text(json.dumps(DEFAULT_SIGNATURES), encoding="utf-8")
    return deck, placement_path, signatures


def test_update_writes_deck_and_report(tmp_path, capsys):
    placement = {
        "periodOfInsurance": {"formatted": "1 August 2025 to 31 July 2026"},
        "slide8Data": {"eligibility": "All full-time staff", "nonEvidenceLimit": "$50,000"},
    }
    deck, placement_path, signatures = _write_inputs(tmp_path, placement)
    output = tmp_path / "out" / "updated.pptx"

    code = main(["--signatures", str(signatures), "update", str(deck), str(placement_path), "-o", str(output)])

    assert code == 0
    assert output.exists()
    report = json.loads(report_path_for(output).read_text(encoding="utf-8"))
    assert len(report["updatedSlides"]) == 3
    assert report["output"] == str(output)
    assert "buffer" not in report
    assert "3 fields updated, 0 errors" in capsys.readouterr().out


def test_update_rejects_malformed_placement(tmp_path, capsys):
    deck, placement_path, signatures = _write_inputs(tmp_path, {"slide8Data": {"basisOfCover": "24 x"}})

    code = main(["--signatures", str(signatures), "update", str(deck), str(placement_path), "-o", str(tmp_path / "o.pptx")])

    assert code == 1
    assert "Invalid placement data" in capsys.readouterr().out
    assert not (tmp_path / "o.pptx").exists()
    failure = json.loads((tmp_path / "o_report.json").read_text(encoding="utf-8"))
    assert failure["success"] is False
    assert failure["error_type"] == "ValidationError"
    assert failure["context"] == {"placement": str(placement_path)}


def test_update_rejects_corrupt_deck(tmp_path, capsys):
    deck, placement_path, signatures = _write_inputs(tmp_path, {})
    deck.write_bytes(b"not a zip")

    code = main(["--signatures", str(signatures), "update", str(deck), str(placement_path), "-o", str(tmp_path / "o.pptx")])

    assert code == 1
    assert "Failed to read PPTX file" in capsys.readouterr().out


def test_inspect_single_slide_prints_json(tmp_path, capsys):
    deck, _, _ = _write_inputs(tmp_path, {})

    assert main(["inspect", str(deck), "--slide", "2"]) == 0

    info = json.loads(capsys.readouterr().out)
    assert info["slideNumber"] == 2
    assert info["textElements"] == ["Eligibility", "All employees", "Non-evidence Limit", "$30,000"]


def test_inspect_deck_lists_detection(tmp_path, capsys):
    deck, _, signatures = _write_inputs(tmp_path, {})

    assert main(["--signatures", str(signatures), "inspect", str(deck)]) == 0

    out = capsys.readouterr().out
    assert "2 slides" in out
    assert "PERIOD_OF_INSURANCE: Slide 1" in out
    assert "GTL_OVERVIEW: Slide 2" in out


def test_output_names():
    assert timestamped_filename("Deck.pptx", datetime(2025, 8, 1, 9, 30)) == "Deck_20250801_093000.pptx"
    assert report_path_for(Path("/tmp/out/Deck.pptx")) == Path("/tmp/out/Deck_report.json")


def test_setup_run_logging_writes_log_file(tmp_path):
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        run_logger, log_path = setup_run_logging(str(tmp_path / "logs"), "Deck.pptx")
        logging.getLogger("deck_updater").info("from a module logger")
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)

    content = Path(log_path).read_text(encoding="utf-8")
    assert run_logger.name == "deck_run"
    assert "Run: Deck.pptx" in content
    assert "from a module logger" in content
