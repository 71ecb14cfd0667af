"""Shared helpers for the history store."""

from .time_utils import to_epoch_ms, from_epoch_ms, now_utc

__all__ = ['to_epoch_ms', 'from_epoch_ms', 'now_utc']
