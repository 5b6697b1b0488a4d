"""Barangay Registry: resident and family-head records on Redis."""

__version__ = "1.0.0"
