"""Core functionality module."""

from dac.core.errors import ClassifiedError, ErrorKind, classify
from dac.core.fields import FieldResolver
from dac.core.filters import FilterBuilder
from dac.core.identity import normalize_id

__all__ = [
    "ClassifiedError",
    "ErrorKind",
    "FieldResolver",
    "FilterBuilder",
    "classify",
    "normalize_id",
]
