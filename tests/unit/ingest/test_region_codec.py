"""Unit tests for region label and number cleaning."""

from __future__ import annotations

import pytest

from core.errors import UnparsableNumber, UnresolvableRegion
from ingest.region_codec import FEDERATIVE_UNIT_CODES, to_integer, to_region_code


@pytest.mark.parametrize(
    ("label", "expected"),
    [
        ("Unidade São Paulo (SP)", "SP"),
        ("Distrito Federal (DF)", "DF"),
        ("(AM)", "AM"),
    ],
)
def test_to_region_code_reads_parenthesized_code(label: str, expected: str) -> None:
    """Labels carrying a parenthesized code resolve to that code."""
    assert to_region_code(label) == expected


def test_to_region_code_maps_every_numeric_identifier() -> None:
    """All 27 numeric identifiers resolve through the lookup table."""
    resolved = {code: to_region_code(code) for code in FEDERATIVE_UNIT_CODES}

    assert resolved == FEDERATIVE_UNIT_CODES and len(set(resolved.values())) == 27


def test_to_region_code_accepts_integer_identifier() -> None:
    """Integer identifiers from JSON payloads resolve like their text form."""
    assert to_region_code(35) == "SP"


@pytest.mark.parametrize("label", ["São Paulo", "99", "34", "", "sp", "Brasil (Total)"])
def test_to_region_code_rejects_unmappable_labels(label: str) -> None:
    """Labels without a code or table entry are rejected, never passed through."""
    with pytest.raises(UnresolvableRegion):
        to_region_code(label)


def test_to_region_code_rejects_missing_label() -> None:
    """A missing label is unresolvable."""
    with pytest.raises(UnresolvableRegion):
        to_region_code(None)


@pytest.mark.parametrize("text", ["1.234", "1,234", "1234", " 1 234 "])
def test_to_integer_strips_separators(text: str) -> None:
    """Thousands separators in either convention are stripped."""
    assert to_integer(text) == 1234


def test_to_integer_treats_empty_text_as_zero() -> None:
    """Empty text is an explicit zero."""
    assert to_integer("") == 0 and to_integer("-") == 0


def test_to_integer_passes_integers_through() -> None:
    """Integer values are returned unchanged."""
    assert to_integer(42) == 42


def test_to_integer_rejects_non_text_values() -> None:
    """Null and structured values cannot be cleaned."""
    with pytest.raises(UnparsableNumber):
        to_integer(None)
