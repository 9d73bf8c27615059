"""Equipment number parsing and range suggestions."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

_ALPHA_TOKEN = re.compile(r"^[A-Za-z\s]+$")
_RANGE_TOKEN = re.compile(r"^([0-9]+)-([0-9]+)$")
_NUMBER_TOKEN = re.compile(r"^[0-9]+$")
_GE_WORD = re.compile(r"\b(ge|GE)\b")
_NON_ALNUM = re.compile(r"[^a-zA-Z0-9\s]")
_SIGNED_INT = re.compile(r"^-?[0-9]+$")
_SIGNED_RANGE = re.compile(r"^(-?[0-9]+)\s*-\s*(-?[0-9]+)$")


@dataclass
class ParsedEquipment:
    numbers: List[int] = field(default_factory=list)
    ranges: List[Tuple[int, int]] = field(default_factory=list)
    text_entries: List[str] = field(default_factory=list)


def _split_tokens(text: str | None) -> list[str]:
    if not text:
        return []
    return [part.strip() for part in text.split(",") if part.strip()]


def _parse_int(value: str) -> int | None:
    value = value.strip()
    if not _SIGNED_INT.match(value):
        return None
    return int(value)


def _consecutive_runs(numbers: Iterable[int]) -> list[tuple[int, int]]:
    """Group sorted, de-duplicated numbers into (start, end) runs."""

    runs: list[tuple[int, int]] = []
    for number in sorted(set(numbers)):
        if runs and number == runs[-1][1] + 1:
            runs[-1] = (runs[-1][0], number)
        else:
            runs.append((number, number))
    return runs


def parse_equipment_input(text: str | None) -> ParsedEquipment:
    """Classify each comma separated token as a range, number or text."""

    parsed = ParsedEquipment()

    for token in _split_tokens(text):
        range_match = _SIGNED_RANGE.match(token)
        if range_match:
            start, end = int(range_match.group(1)), int(range_match.group(2))
            parsed.ranges.append((min(start, end), max(start, end)))
            continue

        number = _parse_int(token)
        if number is not None:
            parsed.numbers.append(number)
        else:
            parsed.text_entries.append(token)

    if not parsed.ranges and parsed.numbers:
        parsed.ranges = _consecutive_runs(parsed.numbers)

    return parsed


def expand_equipment_numbers(text: str | None) -> list[str]:
    """
    Build autocomplete suggestions for an equipment list.

    The result holds, in order:
      - every individual number covered by a range or listed on its own,
      - the text entries, sorted,
      - every range and each of its contiguous sub-ranges.

    Example: ``"A100,200-202"`` gives
    ``["200", "201", "202", "A100", "200-201", "200-202", "201-202"]``.
    """

    parsed = parse_equipment_input(text)

    individual: set[int] = set(parsed.numbers)
    for start, end in parsed.ranges:
        individual.update(range(start, end + 1))

    sub_ranges: set[tuple[int, int]] = set()
    for start, end in parsed.ranges:
        for i in range(start, end):
            for j in range(i + 1, end + 1):
                sub_ranges.add((i, j))

    return (
        [str(number) for number in sorted(individual)]
        + sorted(set(parsed.text_entries))
        + [f"{start}-{end}" for start, end in sorted(sub_ranges)]
    )


def filter_suggestions(suggestions: Iterable[str], query: str | None) -> list[str]:
    """Keep suggestions containing ``query``, ignoring case."""

    needle = (query or "").lower()
    return [suggestion for suggestion in suggestions if needle in suggestion.lower()]


def flatten_equipment_numbers(text: str | None) -> set[str]:
    """Expand an equipment list into the set of single equipment numbers.

    Purely alphabetic entries are kept as written and anything that is
    neither a number nor a plain range is dropped.
    """

    numbers: set[str] = set()
    for token in (part.strip() for part in (text or "").split(",")):
        if _ALPHA_TOKEN.match(token):
            numbers.add(token)
            continue

        range_match = _RANGE_TOKEN.match(token)
        if range_match:
            start, end = int(range_match.group(1)), int(range_match.group(2))
            numbers.update(str(number) for number in range(start, end + 1))
        elif _NUMBER_TOKEN.match(token):
            numbers.add(token)

    return numbers


def normalize_equipment_numbers(text: str | None) -> str:
    """Rewrite an equipment list as compact ranges followed by descriptions.

    ``"1003, 1001,1002, ge, apu unit"`` becomes ``"1001-1003, Apu Unit"``.
    """

    cleaned_text = _GE_WORD.sub("", str(text or ""))

    numbers: set[int] = set()
    descriptions: set[str] = set()
    for token in (part.strip() for part in cleaned_text.split(",")):
        range_match = _RANGE_TOKEN.match(token)
        if range_match:
            start, end = int(range_match.group(1)), int(range_match.group(2))
            numbers.update(range(min(start, end), max(start, end) + 1))
        elif _NUMBER_TOKEN.match(token):
            numbers.add(int(token))
        else:
            description = _NON_ALNUM.sub("", token).strip()
            if description:
                descriptions.add(description.lower())

    number_parts = [
        str(start) if start == end else f"{start}-{end}"
        for start, end in _consecutive_runs(numbers)
    ]
    description_parts = sorted(
        " ".join(word[:1].upper() + word[1:] for word in description.split(" "))
        for description in descriptions
    )

    return ", ".join(number_parts + description_parts)


__all__ = [
    "ParsedEquipment",
    "expand_equipment_numbers",
    "filter_suggestions",
    "flatten_equipment_numbers",
    "normalize_equipment_numbers",
    "parse_equipment_input",
]
