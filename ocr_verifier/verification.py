"""Verification state transitions for a single :class:`Item`.

An item is either unverified (the initial state) or verified. Only
:func:`verify` enters the verified state; any change of ``text`` while
verified drops back to unverified. Each function applies its text and flag
changes together before returning.
"""
from __future__ import annotations

import re
from enum import Enum
from typing import Optional

from .reconcile import Item

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class ItemState(str, Enum):
    UNVERIFIED = "unverified"
    VERIFIED = "verified"


def state(item: Item) -> ItemState:
    return ItemState.VERIFIED if item.is_verified else ItemState.UNVERIFIED


def single_line(text: str) -> str:
    """Replace line terminators with spaces so a label stays one record."""

    return _LINE_BREAK.sub(" ", text)


def edit(item: Item, new_text: str) -> Item:
    new_text = single_line(new_text)
    if item.is_verified and new_text != item.text:
        item.is_verified = False
    item.text = new_text
    return item


def verify(item: Item, text: Optional[str] = None) -> Item:
    """Confirm ``text`` (or the current text when omitted)."""

    if text is not None:
        item.text = single_line(text)
    item.is_verified = True
    return item


def unverify(item: Item) -> Item:
    item.is_verified = False
    return item


def clear(item: Item) -> Item:
    item.text = ""
    if item.is_verified:
        unverify(item)
    return item


def adopt_original(item: Item) -> Item:
    return edit(item, item.original_text)


def adopt_comparison(item: Item) -> Item:
    if item.comparison_text is None:
        return item
    return edit(item, item.comparison_text)


def has_conflict(item: Item) -> bool:
    """True when the comparison label disagrees with the ingested label."""

    return bool(item.comparison_text) and item.comparison_text != item.original_text


__all__ = [
    "ItemState",
    "adopt_comparison",
    "adopt_original",
    "clear",
    "edit",
    "has_conflict",
    "single_line",
    "state",
    "unverify",
    "verify",
]
