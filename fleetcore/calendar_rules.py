"""
Plate rotation rule ("rodízio") for São Paulo.

Vehicles may not circulate on one weekday determined by the last digit of
the plate:

    Monday 1, 2 | Tuesday 3, 4 | Wednesday 5, 6 | Thursday 7, 8 | Friday 9, 0

Weekends are never restricted. Plates ending in a letter are exempt.
"""

import unicodedata
from typing import Optional, Union

from .intervals import DayLike, as_date

# date.weekday(): Monday == 0
RESTRICTED_DIGITS = {
    0: frozenset({1, 2}),
    1: frozenset({3, 4}),
    2: frozenset({5, 6}),
    3: frozenset({7, 8}),
    4: frozenset({9, 0}),
}

WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

NO_RESTRICTION = "none"

PlateOrDigit = Union[str, int]


def plate_last_digit(plate: Optional[str]) -> Optional[int]:
    """Last character of the plate as a digit, or None when it is not one."""
    if not plate:
        return None
    last = plate.strip()[-1:]
    return int(last) if last.isdigit() else None


def _digit(plate_or_digit: PlateOrDigit) -> Optional[int]:
    if isinstance(plate_or_digit, int):
        if not 0 <= plate_or_digit <= 9:
            raise ValueError(f"Plate digit must be 0-9, got {plate_or_digit}")
        return plate_or_digit
    return plate_last_digit(plate_or_digit)


def is_restricted(plate_or_digit: PlateOrDigit, day: DayLike) -> bool:
    """Check if the plate may not circulate on the given day."""
    digit = _digit(plate_or_digit)
    if digit is None:
        return False
    return digit in RESTRICTED_DIGITS.get(as_date(day).weekday(), frozenset())


def restriction_label(plate_or_digit: PlateOrDigit) -> str:
    """Weekday on which the plate is restricted, or "none"."""
    digit = _digit(plate_or_digit)
    if digit is None:
        return NO_RESTRICTION
    for weekday, digits in RESTRICTED_DIGITS.items():
        if digit in digits:
            return WEEKDAY_NAMES[weekday]
    return NO_RESTRICTION


def fold(text: Optional[str]) -> str:
    """Lowercase, strip accents and surrounding whitespace."""
    decomposed = unicodedata.normalize("NFD", text or "")
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return stripped.lower().strip()


def applies_to_location(
    city: Optional[str] = None,
    state: Optional[str] = None,
    destination: Optional[str] = None,
) -> bool:
    """
    Approximate check that a trip goes to São Paulo (city or state).

    Plain substring matching on free text, not geocoding:
    - city contains "sao paulo" or is "sp"
    - state is "sp" or contains "sao paulo"
    - destination contains "sao paulo" or ends with " sp"
    """
    c, s, d = fold(city), fold(state), fold(destination)
    return (
        "sao paulo" in c
        or c == "sp"
        or s == "sp"
        or "sao paulo" in s
        or "sao paulo" in d
        or d.endswith(" sp")
    )


class LocationMatcher:
    """Decides whether a destination falls under the rotation rule."""

    def matches(
        self,
        city: Optional[str] = None,
        state: Optional[str] = None,
        destination: Optional[str] = None,
    ) -> bool:
        raise NotImplementedError


class SaoPauloMatcher(LocationMatcher):
    """Default matcher using the substring heuristic of applies_to_location."""

    def matches(self, city=None, state=None, destination=None) -> bool:
        return applies_to_location(city, state, destination)
