"""
Core Utilities Package

This package contains utility functions and helpers used throughout the application.

Modules:
    - time: ISO date parsing and UTC cutoffs for the dashboard views
"""

from core.utils.time import parse_iso_datetime, days_ago, current_utc_datetime

__all__ = ["parse_iso_datetime", "days_ago", "current_utc_datetime"]
