"""
Route Planning Domain

Builds a field manager's visit day: travel legs, store visits and operational
items in one consistent timeline, rebuilt from stored edits after every change.
"""

from .router import router

__all__ = ["router"]
