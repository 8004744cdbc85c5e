"""Region label and numeric string codec.

This module resolves free-text region labels to two-letter federative
unit codes and cleans formatted counts into integers. Resolution is
strict: a label that carries no code and is not a known numeric
identifier is rejected instead of being passed through.
"""

from __future__ import annotations

import re

from core.errors import UnparsableNumber, UnresolvableRegion

# IBGE numeric identifiers for the 26 states and the federal district.
FEDERATIVE_UNIT_CODES: dict[str, str] = {
    "11": "RO",
    "12": "AC",
    "13": "AM",
    "14": "RR",
    "15": "PA",
    "16": "AP",
    "17": "TO",
    "21": "MA",
    "22": "PI",
    "23": "CE",
    "24": "RN",
    "25": "PB",
    "26": "PE",
    "27": "AL",
    "28": "SE",
    "29": "BA",
    "31": "MG",
    "32": "ES",
    "33": "RJ",
    "35": "SP",
    "41": "PR",
    "42": "SC",
    "43": "RS",
    "50": "MS",
    "51": "MT",
    "52": "GO",
    "53": "DF",
}

_PARENTHESIZED_CODE = re.compile(r"\(([A-Z]{2})\)")
_NUMERIC_IDENTIFIER = re.compile(r"^\d+$")
_NON_DIGITS = re.compile(r"[^\d]+")


def to_region_code(label: object) -> str:
    """Resolve a region label to its two-letter code.

    Args:
        label: Free-text label such as ``"Unidade São Paulo (SP)"`` or a
            numeric identifier such as ``35``.

    Returns:
        Two-letter region code.

    Raises:
        UnresolvableRegion: If the label cannot be mapped without guessing.
    """
    if isinstance(label, bool) or not isinstance(label, (str, int)):
        raise UnresolvableRegion(
            f"Cannot resolve region from {type(label).__name__} value {label!r}.",
            diagnostic_payload=repr(label),
        )
    text = str(label).strip()
    match = _PARENTHESIZED_CODE.search(text)
    if match:
        return match.group(1)
    if _NUMERIC_IDENTIFIER.match(text):
        code = FEDERATIVE_UNIT_CODES.get(text)
        if code is not None:
            return code
        raise UnresolvableRegion(
            f"Numeric region identifier '{text}' is not a known federative unit.",
            diagnostic_payload=text,
        )
    raise UnresolvableRegion(
        f"Region label '{text}' carries no two-letter code and is not a numeric identifier.",
        diagnostic_payload=text,
    )


def to_integer(text: object) -> int:
    """Clean a formatted count into an integer.

    Every non-digit character is stripped, so thousands separators in
    either convention are accepted. An empty result is an explicit zero.

    Args:
        text: Raw count text, or an integer passed through unchanged.

    Returns:
        Parsed integer.

    Raises:
        UnparsableNumber: If the value is neither text nor an integer.
    """
    if isinstance(text, int) and not isinstance(text, bool):
        return text
    if not isinstance(text, str):
        raise UnparsableNumber(
            f"Cannot parse count from {type(text).__name__} value {text!r}.",
            diagnostic_payload=repr(text),
        )
    digits = _NON_DIGITS.sub("", text)
    if not digits:
        return 0
    return int(digits)
