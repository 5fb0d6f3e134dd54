"""
Constants and configuration values for the Delivery Admin Console.
"""

from enum import IntEnum, StrEnum

# API Base URL
API_BASE_URL = "https://dely-backend.onrender.com"
API_PREFIX = "/admin"

# Version
PACKAGE_VERSION = "0.1.0"

# UI value meaning "no filter"
UNSET_SENTINEL = "all"


class APIConstants(IntEnum):
    """API-related limits and constants."""

    DEFAULT_PAGE = 1
    DEFAULT_PAGE_SIZE = 20
    MAX_PAGE_SIZE = 100
    DUMP_PAGE_SIZE = 100
    REQUEST_TIMEOUT = 30


class CacheLimits(IntEnum):
    """Cache-related limits."""

    MAX_ENTRIES = 200
    STALE_AFTER_SECONDS = 30


class IdentityConstants(IntEnum):
    """Canonical identifier layout (8-4-4-4-12)."""

    COMPACT_LENGTH = 32
    CANONICAL_LENGTH = 36


class AccountConstants(IntEnum):
    """Admin account rules checked before a request is sent."""

    MIN_PASSWORD_LENGTH = 6


# Separator offsets in the compact form
ID_GROUP_OFFSETS = (8, 12, 16, 20)
ID_SEPARATOR = "-"


class DatePreset(StrEnum):
    """Date-range presets offered by list screens."""

    TODAY = "today"
    WEEK = "week"
    LAST_WEEK = "last_week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"
    ALL = "all"
    CUSTOM = "custom"


class PageWarning(StrEnum):
    """Advisory flags attached to normalized pages."""

    UNRECOGNIZED_ENVELOPE = "unrecognized_envelope"
    CLIENT_PAGINATED = "client_paginated"
    PAGINATION_REPAIRED = "pagination_repaired"
    DROPPED_ITEMS = "dropped_items"


class FormattingConstants(IntEnum):
    """Formatting constants."""

    JSON_INDENT = 2
    ID_DISPLAY_LENGTH = 36
    CELL_MAX_LENGTH = 40
