"""Utility helpers for reusable functionality."""

from .datetime import epoch_millis_to_datetime, get_app_timezone, now_in_epoch_millis

__all__ = [
    "epoch_millis_to_datetime",
    "get_app_timezone",
    "now_in_epoch_millis",
]
