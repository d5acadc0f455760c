"""Reading and writing ``<filename><whitespace><label>`` annotation files."""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, List, Tuple

log = logging.getLogger(__name__)

DEFAULT_EXPORT_NAME = "rec_gt_train.txt"

_RECORD_PATTERN = re.compile(r"^(\S+)\s+(.*)$")

Record = Tuple[str, str]


class ExportEmptyCollection(ValueError):
    """Raised when asked to write an annotation file with no records."""


def parse_annotations(text: str) -> List[Record]:
    """Return ``(filename, label)`` pairs from ``text`` in source order.

    Lines are split on line feeds only. Blank lines are skipped and lines
    without a whitespace separator after the filename token are dropped.
    The label is trimmed; a filename followed only by whitespace yields an
    empty label.
    """

    records: List[Record] = []
    for number, line in enumerate(text.split("\n"), start=1):
        if not line.strip():
            continue
        match = _RECORD_PATTERN.match(line.lstrip().rstrip("\r"))
        if match is None:
            log.debug("Skipping malformed annotation line %d: %r", number, line)
            continue
        records.append((match.group(1), match.group(2).strip()))
    return records


def decode_annotations(data: bytes) -> List[Record]:
    """Decode UTF-8 ``data`` (with or without BOM) and parse it."""

    return parse_annotations(data.decode("utf-8-sig", errors="replace"))


def format_annotations(records: Iterable[Record]) -> str:
    """Serialise ``records`` as tab separated lines joined by ``\\n``."""

    return "\n".join(f"{filename}\t{label}" for filename, label in records)


def write_annotations(records: Iterable[Record], path: Path) -> Path:
    records = list(records)
    if not records:
        raise ExportEmptyCollection("Nothing to export: the collection is empty.")
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf8", newline="\n") as handle:
        handle.write(format_annotations(records))
    log.info("Wrote %d annotation record(s) to %s", len(records), path)
    return path


__all__ = [
    "DEFAULT_EXPORT_NAME",
    "ExportEmptyCollection",
    "Record",
    "decode_annotations",
    "format_annotations",
    "parse_annotations",
    "write_annotations",
]
