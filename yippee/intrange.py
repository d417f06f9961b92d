"""Parsing of number-menu selections such as ``1 2 3-5 ^4 all``."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_INTEGER = re.compile(r"[+-]?[0-9]+")
_SEPARATORS = re.compile(r"[\s,]+")


@dataclass(frozen=True)
class IntRange:
    """A closed range of integers from ``low`` to ``high``."""

    low: int
    high: int

    def __contains__(self, n: object) -> bool:
        return isinstance(n, int) and self.low <= n <= self.high


class IntRanges(list):
    """A list of :class:`IntRange`; ``n in ranges`` tests membership in any of them."""

    def __contains__(self, n: object) -> bool:
        return any(n in item for item in self)


@dataclass
class NumberMenuSelection:
    """The parts of a parsed number-menu answer."""

    include: IntRanges = field(default_factory=IntRanges)
    exclude: IntRanges = field(default_factory=IntRanges)
    other_include: set[str] = field(default_factory=set)
    other_exclude: set[str] = field(default_factory=set)


def _to_int(word: str) -> int | None:
    if not _INTEGER.fullmatch(word):
        return None
    value = int(word)
    if not _INT64_MIN <= value <= _INT64_MAX:
        return None
    return value


def parse_number_menu(text: str) -> NumberMenuSelection:
    """Parse a menu answer split by whitespace or commas.

    Supports single numbers (``1 2``), ranges (``1-4``) and negation
    (``^1``, ``^1-4``). Words that are not numbers are kept, lower-cased,
    in ``other_include`` or, when negated, ``other_exclude``.
    """
    selection = NumberMenuSelection()

    for word in filter(None, _SEPARATORS.split(text)):
        invert = word.startswith("^")
        if invert:
            word = word[1:]
        other = selection.other_exclude if invert else selection.other_include

        parts = word.split("-", 1)
        first = _to_int(parts[0])
        if first is None:
            other.add(word.lower())
            continue

        if len(parts) == 2:
            second = _to_int(parts[1])
            if second is None:
                other.add(word.lower())
                continue
        else:
            second = first

        target = selection.exclude if invert else selection.include
        target.append(IntRange(min(first, second), max(first, second)))

    return selection