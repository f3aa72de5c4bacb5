"""Domain port definitions for adapters."""

from __future__ import annotations

from .store import ObjectStore, PersistenceContext

__all__ = ["ObjectStore", "PersistenceContext"]
