import pytest

from dac.core.identity import normalize_id

COMPACT = "0123456789abcdef0123456789abcdef"
CANONICAL = "01234567-89ab-cdef-0123-456789abcdef"


def test_compact_id_gets_canonical_separators():
    result = normalize_id(COMPACT)

    assert result == CANONICAL
    assert len(result) == 36
    assert [i for i, ch in enumerate(result) if ch == "-"] == [8, 13, 18, 23]


@pytest.mark.parametrize("value", [CANONICAL, "abc", "", COMPACT + "0", COMPACT[:-1], "0123456789abcdef-123456789abcdef"])
def test_other_values_pass_through(value):
    assert normalize_id(value) == value


@pytest.mark.parametrize(
    "value",
    [
        COMPACT,
        CANONICAL,
        "",
        COMPACT[:-1],
        COMPACT + "0",
        "0123456789abcdef-123456789abcdef",
        "01234567_89ab-cdef 0123-456789abcdef",
        "01234567-89abcdef-0123456789abcdef",
    ],
)
def test_normalize_is_idempotent(value):
    once = normalize_id(value)
    assert normalize_id(once) == once
