"""Reconcile OCR label files with image crops and review the result."""

from .reconcile import Item, ItemKind, reconcile
from .session import ReviewSession, SessionConfig

__all__ = ["Item", "ItemKind", "ReviewSession", "SessionConfig", "reconcile"]
