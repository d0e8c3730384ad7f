"""Persistent stores for gitfind."""

from .views import StoreError, ViewStore

__all__ = ["StoreError", "ViewStore"]
