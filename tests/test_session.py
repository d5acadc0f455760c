"""Tests for :mod:`ocr_verifier.session`."""
from __future__ import annotations

from pathlib import Path

import pytest

from ocr_verifier.collector import (
    AcquisitionFailed,
    DirectoryTreeReader,
    FlatListReader,
    MemorySource,
    folder_readers,
)
from ocr_verifier.query import SortOption
from ocr_verifier.reconcile import ItemKind
from ocr_verifier.annotations import parse_annotations
from ocr_verifier.session import ReviewSession, SessionConfig


def _cancelled_flat() -> FlatListReader:
    return FlatListReader(lambda: None)


@pytest.fixture
def session(make_dataset) -> ReviewSession:
    root = make_dataset(
        "crops/a.jpg  cat\ncrops/b.jpg\tdog\n",
        ["crops/a.jpg", "crops/c.jpg"],
    )
    session = ReviewSession()
    assert session.open(*folder_readers(root))
    return session


def test_open_loads_items_and_selects_first(session: ReviewSession) -> None:
    assert session.folder_name == "dataset"
    assert [(item.filename, item.text, item.kind) for item in session.items] == [
        ("crops/a.jpg", "cat", ItemKind.MATCHED),
        ("crops/b.jpg", "dog", ItemKind.MISSING_IMAGE),
        ("crops/c.jpg", "", ItemKind.ORPHAN),
    ]
    assert session.selected_index == 0
    assert session.selected is session.items[0]
    assert session.items[0].preview is not None


def test_cancel_keeps_previous_dataset(session: ReviewSession) -> None:
    items = list(session.items)

    assert session.open(DirectoryTreeReader(lambda: None), _cancelled_flat()) is False

    assert session.items == items
    assert session.folder_name == "dataset"
    assert session.items[0].preview is not None


def test_failed_acquisition_keeps_previous_dataset(session: ReviewSession, tmp_path: Path) -> None:
    missing = tmp_path / "gone"

    with pytest.raises(AcquisitionFailed):
        session.open(*folder_readers(missing))

    assert session.folder_name == "dataset"
    assert len(session.items) == 3


def test_switching_folder_releases_previous_previews(session: ReviewSession, make_dataset) -> None:
    old_previews = [item.preview for item in session.items if item.preview is not None]
    session.filters.search = "cat"
    other = make_dataset(None, ["crops/z.jpg"], name="other")

    assert session.open(*folder_readers(other))

    assert all(preview.released for preview in old_previews)
    assert session.folder_name == "other"
    assert [item.filename for item in session.items] == ["crops/z.jpg"]
    assert session.filters.search == ""


def test_updates_are_keyed_by_id(session: ReviewSession) -> None:
    session.verify("item-0", "cat!")
    assert session.item("item-0").is_verified
    assert session.verified_count == 1

    session.edit("item-0", "cats")
    assert not session.item("item-0").is_verified

    session.clear("orphan-0")
    session.adopt_original("item-1")
    assert session.item("item-1").text == "dog"

    with pytest.raises(KeyError):
        session.edit("item-99", "x")


def test_navigation_follows_filtered_view(session: ReviewSession) -> None:
    session.filters.sort = SortOption.FILENAME_DESC.value

    assert session.visible_indices() == [2, 1, 0]
    assert session.select_previous() == 1
    assert session.select_previous() == 2
    assert session.select_previous() == 2
    assert session.select_next() == 1


def test_export_writes_every_item(session: ReviewSession, tmp_path: Path) -> None:
    session.verify("orphan-0", "cow")

    path = session.export(tmp_path)

    assert path == tmp_path / "rec_gt_train.txt"
    text = path.read_text(encoding="utf8")
    assert text == session.export_text()
    assert text == "crops/a.jpg\tcat\ncrops/b.jpg\tdog\ncrops/c.jpg\tcow"
    assert parse_annotations(text) == [(item.filename, item.text) for item in session.items]


def test_export_of_empty_session_is_noop(tmp_path: Path) -> None:
    session = ReviewSession(SessionConfig(export_name="out.txt"))

    assert session.export(tmp_path) is None
    assert not (tmp_path / "out.txt").exists()


def test_export_name_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("OCR_VERIFIER_EXPORT_NAME", "labels.txt")

    assert SessionConfig().export_name == "labels.txt"


def test_comparison_file_from_config(make_dataset, tmp_path: Path) -> None:
    root = make_dataset("crops/a.jpg cat\n", ["crops/a.jpg"])
    compare = tmp_path / "other_model.txt"
    compare.write_text("crops/a.jpg cot\n", encoding="utf8")
    session = ReviewSession(SessionConfig(comparison_file=compare))

    session.open(*folder_readers(root))

    assert session.items[0].comparison_text == "cot"
    session.adopt_comparison("item-0")
    assert session.items[0].text == "cot"


def test_load_with_explicit_comparison_source(make_dataset) -> None:
    root = make_dataset("crops/a.jpg cat\n", ["crops/a.jpg"])
    primary, fallback = folder_readers(root)
    session = ReviewSession()

    session.load(primary.read_folder(), comparison_file=MemorySource("cmp.txt", b"crops/a.jpg cap"))

    assert session.items[0].comparison_text == "cap"


def test_close_releases_previews(session: ReviewSession) -> None:
    previews = [item.preview for item in session.items if item.preview is not None]

    session.close()

    assert session.items == []
    assert session.selected is None
    assert all(preview.released for preview in previews)


def test_edited_line_breaks_survive_export(session: ReviewSession) -> None:
    session.edit("item-0", "cat\nextra")
    session.verify("item-1", "dog\r\nhouse")

    assert session.item("item-0").text == "cat extra"
    records = parse_annotations(session.export_text())
    assert records == [(item.filename, item.text) for item in session.items]
    assert records[1] == ("crops/b.jpg", "dog house")
