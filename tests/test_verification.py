"""Tests for :mod:`ocr_verifier.verification`."""
from __future__ import annotations

from typing import Optional

import pytest

from ocr_verifier import verification
from ocr_verifier.reconcile import Item, ItemKind
from ocr_verifier.verification import ItemState


def _item(text: str = "cat", comparison: Optional[str] = None) -> Item:
    return Item(
        id="item-0",
        filename="a.jpg",
        text=text,
        original_text=text,
        kind=ItemKind.MATCHED,
        comparison_text=comparison,
    )


def test_items_start_unverified() -> None:
    assert verification.state(_item()) is ItemState.UNVERIFIED


def test_verify_confirms_given_text() -> None:
    item = verification.verify(_item(), "cats")

    assert item.is_verified
    assert item.text == "cats"
    assert item.original_text == "cat"
    assert verification.state(item) is ItemState.VERIFIED


def test_verify_without_text_keeps_current_text() -> None:
    item = verification.verify(_item("dog"))

    assert item.is_verified and item.text == "dog"


def test_edit_to_new_text_invalidates_verification() -> None:
    item = verification.verify(_item())

    verification.edit(item, "new")
    assert item.text == "new"
    assert not item.is_verified

    verification.edit(item, "new")
    assert not item.is_verified


def test_edit_to_same_text_keeps_verification() -> None:
    item = verification.verify(_item())

    verification.edit(item, "cat")

    assert item.is_verified


def test_edit_never_verifies() -> None:
    item = _item()

    verification.edit(item, "cat")
    verification.edit(item, "other")

    assert not item.is_verified


def test_unverify_keeps_text() -> None:
    item = verification.verify(_item(), "fixed")

    verification.unverify(item)

    assert not item.is_verified
    assert item.text == "fixed"


@pytest.mark.parametrize("verified", [True, False])
def test_clear_empties_text_and_drops_verification(verified: bool) -> None:
    item = _item()
    item.is_verified = verified

    verification.clear(item)

    assert item.text == ""
    assert not item.is_verified


def test_adopt_comparison_and_original() -> None:
    item = _item("cat", comparison="cot")

    verification.adopt_comparison(item)
    assert item.text == "cot"
    assert not item.is_verified

    verification.verify(item)
    verification.adopt_original(item)
    assert item.text == "cat"
    assert not item.is_verified


def test_adopting_identical_value_keeps_verification() -> None:
    item = verification.verify(_item("cat", comparison="cot"), "cot")

    verification.adopt_comparison(item)

    assert item.is_verified


def test_adopt_comparison_without_comparison_is_noop() -> None:
    item = verification.verify(_item("cat"))

    verification.adopt_comparison(item)

    assert item.text == "cat"
    assert item.is_verified


def test_has_conflict() -> None:
    assert verification.has_conflict(_item("cat", comparison="cot"))
    assert not verification.has_conflict(_item("cat", comparison="cat"))
    assert not verification.has_conflict(_item("cat"))
    assert not verification.has_conflict(_item("cat", comparison=""))


@pytest.mark.parametrize("text", ["cat\ndog", "cat\rdog", "cat\r\ndog"])
def test_line_terminators_become_spaces(text: str) -> None:
    assert verification.edit(_item(), text).text == "cat dog"
    assert verification.verify(_item(), text).text == "cat dog"
