"""Shape checks for extracted field values.

These predicates are shared by the extractors, which use them to accept
or reject candidates, and by the field validator, which re-checks the
final candidates.
"""

import re

from lumen_extract.extraction.structure import STREET_SUFFIXES

VALID_LICENSE_CLASSES: tuple[str, ...] = ("C", "C & Ty A", "CA", "MR", "HR", "HC", "MC")

COMMON_WORDS: frozenset[str] = frozenset(
    {
        "New", "South", "Wales", "Australia", "Transport", "NSW", "Licence",
        "License", "Class", "Date", "Birth", "Expiry", "Number", "Card",
        "Address", "Road", "Avenue", "Street", "Drive", "Lane", "Way", "Place",
        "Close", "Court", "Crescent", "The", "And", "For", "With", "From",
        "This", "That", "Will", "Have", "Been", "Passport", "Nationality",
        "Surname", "Given", "Names", "Issue", "Authority",
    }
)

_NAME_SHAPE = re.compile(r"^[A-Z][a-z]+(?:\s+[A-Z][a-z]+)+$")
_STREET = re.compile(
    rf"\b\d+\s+[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\s+(?:{STREET_SUFFIXES})\b",
    re.IGNORECASE,
)
_NSW_POSTCODE = re.compile(r"\bNSW\s+\d{4}\b")
_LETTER_DIGITS = re.compile(r"^[A-Z]\d{6,8}$")
_BARE_DIGITS = re.compile(r"^\d{6,9}$")
_GROUPED_DIGITS = re.compile(r"^\d{4,}\s+\d{2,}$")
DATE_DD_MON_YYYY = re.compile(r"\b\d{1,2}\s+[A-Z]{3}\s+\d{4}\b")
MAX_AMOUNT = 10000


def is_common_word(text: str) -> bool:
    """True if any word of ``text`` is on the common-word denylist."""
    return any(word.strip(".,") in COMMON_WORDS for word in text.split())


def is_valid_card_number(card_number: str) -> bool:
    """Letter + 6-8 digits, 6-9 bare digits, or two whitespace-separated digit groups."""
    clean = re.sub(r"\s+", "", card_number)
    if _LETTER_DIGITS.match(clean) or _BARE_DIGITS.match(clean):
        return True
    return bool(_GROUPED_DIGITS.match(card_number))


def is_valid_name(name: str) -> bool:
    """Two or more capitalized words of at least two letters, 5-50 chars."""
    if is_common_word(name):
        return False
    if len(name) < 5 or len(name) > 50:
        return False
    if not _NAME_SHAPE.match(name):
        return False
    parts = name.split()
    return len(parts) >= 2 and all(len(part) >= 2 for part in parts)


def is_valid_address(address: str) -> bool:
    """Longer than 10 chars with a street fragment and an ``NSW ####`` postcode."""
    return (
        len(address) > 10
        and bool(_STREET.search(address))
        and bool(_NSW_POSTCODE.search(address))
    )


def is_valid_license_class(class_value: str) -> bool:
    normalized = re.sub(r"\s+", " ", class_value).strip().upper()
    return any(cls.upper() in normalized for cls in VALID_LICENSE_CLASSES)


def is_valid_date(value: str) -> bool:
    return bool(DATE_DD_MON_YYYY.search(value))


def is_valid_amount(amount: str) -> bool:
    """True for a number strictly between 0 and 10000 (``$`` and commas allowed)."""
    try:
        number = float(amount.replace("$", "").replace(",", "").strip())
    except ValueError:
        return False
    return 0 < number < MAX_AMOUNT
