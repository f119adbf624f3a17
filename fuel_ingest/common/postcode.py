"""UK postcode recognition for station records."""

from __future__ import annotations

import re

UK_UNIT_POSTCODE_RE = re.compile(r"^[A-Z]{1,2}\d[A-Z\d]? \d[A-Z]{2}$")
_NON_ALNUM_RE = re.compile(r"[^A-Z0-9]")


def is_valid_uk_unit_postcode(value: str) -> bool:
    return bool(UK_UNIT_POSTCODE_RE.match(value))


def looks_like_uk_postcode(raw: str) -> bool:
    """True when ``raw`` is a UK unit postcode up to case and spacing.

    Feeds mix ``sw1a1aa``, ``SW1A  1AA`` and ``SW1A-1AA``; all of these count.
    The stored value is never rewritten.
    """
    compact = _NON_ALNUM_RE.sub("", raw.upper())
    if not 5 <= len(compact) <= 7:
        return False
    return is_valid_uk_unit_postcode(f"{compact[:-3]} {compact[-3:]}")
