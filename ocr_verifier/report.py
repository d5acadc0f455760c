"""Summaries of a reconciled dataset for the ``check`` command."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from .reconcile import Item, ItemKind
from .verification import has_conflict


@dataclass
class ReconciliationReport:
    folder_name: str
    annotation_candidates: List[str]
    matched: int
    missing_images: List[str]
    orphans: List[str]
    conflicts: List[str]
    duplicate_filenames: List[str]
    verified: int
    total: int


def build_report(folder_name: str, items: Sequence[Item], annotation_candidates: Sequence[str] = ()) -> ReconciliationReport:
    counts: dict[str, int] = {}
    for item in items:
        counts[item.filename] = counts.get(item.filename, 0) + 1

    return ReconciliationReport(
        folder_name=folder_name,
        annotation_candidates=list(annotation_candidates),
        matched=sum(1 for item in items if item.kind is ItemKind.MATCHED),
        missing_images=[item.filename for item in items if item.kind is ItemKind.MISSING_IMAGE],
        orphans=[item.filename for item in items if item.kind is ItemKind.ORPHAN],
        conflicts=[item.filename for item in items if has_conflict(item)],
        duplicate_filenames=sorted(name for name, count in counts.items() if count > 1),
        verified=sum(1 for item in items if item.is_verified),
        total=len(items),
    )


def format_report(report: ReconciliationReport) -> str:
    lines = [
        f"Dataset: {report.folder_name}",
        f"Items: {report.total} ({report.verified} verified)",
        f"Matched: {report.matched}",
        f"Missing images: {len(report.missing_images)}",
        f"Orphan images: {len(report.orphans)}",
    ]
    if len(report.annotation_candidates) > 1:
        lines.append("Annotation candidates: " + ", ".join(report.annotation_candidates))
    sections = (
        ("Annotation entries without an image:", report.missing_images),
        ("Images without an annotation entry:", report.orphans),
        ("Labels that disagree with the comparison file:", report.conflicts),
        ("Filenames listed more than once:", report.duplicate_filenames),
    )
    for title, names in sections:
        if not names:
            continue
        lines.append(title)
        lines.extend(f"  - {name}" for name in names)
    return "\n".join(lines)


__all__ = ["ReconciliationReport", "build_report", "format_report"]
