# backend/app/utils/__init__.py
"""
Utility modules for the Portfolio Tracker.

This package contains cross-cutting utilities used throughout the application:
- logging: Logging configuration and setup with correlation ID support
- context: Request context management for correlation and owner IDs
- decimals: Fixed-scale Decimal parsing and rounding helpers

Usage:
    from app.utils import setup_logging
    from app.utils import get_correlation_id, set_correlation_id
    from app.utils.decimals import to_currency, to_percent
"""

from app.utils.context import (
    get_correlation_id,
    set_correlation_id,
    clear_correlation_id,
    get_owner_id,
    set_owner_id,
    clear_request_context,
)
from app.utils.logging import setup_logging

__all__ = [
    # Logging
    "setup_logging",
    # Context
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "get_owner_id",
    "set_owner_id",
    "clear_request_context",
]
