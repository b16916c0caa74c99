"""
File utilities for the deck update workflow.

Atomic writes for output decks and JSON run reports, plus timestamped
output naming.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any, Optional

logger = logging.getLogger(__name__)


def _atomic_write_bytes(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with NamedTemporaryFile("wb", delete=False, dir=str(path.parent)) as tmp:
        tmp.write(data)
        tmp_name = tmp.name
    os.replace(tmp_name, path)


def write_bytes(path: Path, data: bytes) -> None:
    _atomic_write_bytes(Path(path), data)
    logger.info(f"💾 Wrote {len(data)} bytes to {path}")


def write_json(path: Path, payload: Any) -> None:
    serialized = json.dumps(payload, indent=2, ensure_ascii=False)
    _atomic_write_bytes(Path(path), serialized.encode("utf-8"))


def read_json(path: Path) -> Any:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def timestamped_filename(base_name: str, now: Optional[datetime] = None) -> str:
    """'Placement Deck.pptx' -> 'Placement Deck_20250801_093000.pptx'."""
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    path = Path(base_name)
    return f"{path.stem}_{stamp}{path.suffix}"


def report_path_for(deck_path: Path) -> Path:
    deck_path = Path(deck_path)
    return deck_path.with_name(f"{deck_path.stem}_report.json")
