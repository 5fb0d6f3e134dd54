"""Canonicalization of opaque entity identifiers."""

from dac.core.constants import ID_GROUP_OFFSETS, ID_SEPARATOR, IdentityConstants


def normalize_id(value: str) -> str:
    """Return the canonical 8-4-4-4-12 form of a compact 32-character identifier.

    Any other input is returned unchanged, so the function is total and idempotent.
    """
    if len(value) != IdentityConstants.COMPACT_LENGTH or ID_SEPARATOR in value:
        return value

    bounds = (0, *ID_GROUP_OFFSETS, len(value))
    return ID_SEPARATOR.join(value[start:end] for start, end in zip(bounds, bounds[1:], strict=False))
