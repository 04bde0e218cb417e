"""Failure conditions raised by the segmentation and aggregation services."""

from __future__ import annotations


class SavingsError(Exception):
    """Base class for service-level savings failures."""


class InvalidRange(SavingsError, ValueError):
    """Raised when a requested time range ends before it starts."""


class DataUnavailable(SavingsError):
    """Raised when the device or savings store has not been loaded yet."""


class AggregationFailure(SavingsError):
    """Raised when savings could not be fetched or summed."""
