"""Rule-based field extractors for each document family.

Every extractor has the same signature: it receives the fields accepted so
far (read-only) and the document structure, and returns the fields it
wants to add. Extractors never raise on malformed text; no match simply
means no field.
"""

import re
from collections.abc import Callable, Sequence
from dataclasses import asdict, dataclass

from lumen_extract.utils.logger import get_logger
from lumen_extract.validation.validators import (
    is_common_word,
    is_valid_address,
    is_valid_amount,
    is_valid_card_number,
    is_valid_license_class,
    is_valid_name,
)

from .structure import STREET_SUFFIXES, DocumentStructure

logger = get_logger(__name__)


@dataclass(frozen=True)
class ExtractedField:
    """A labeled value with a 0-100 confidence score."""

    label: str
    value: str
    confidence: float

    def to_dict(self) -> dict[str, str | float]:
        return asdict(self)


Extractor = Callable[[Sequence[ExtractedField], DocumentStructure], list[ExtractedField]]


def _has_label(fields: Sequence[ExtractedField], label: str) -> bool:
    return any(f.label == label for f in fields)


# Labels
CARD_NUMBER = "Card Number"
NAME = "Name"
ADDRESS = "Address"
LICENSE_CLASS = "License Class"
DATE_OF_BIRTH = "Date of Birth"
EXPIRY_DATE = "Expiry Date"
LICENSE_FEE = "License Fee"
INVOICE_NUMBER = "Invoice Number"
TOTAL_AMOUNT = "Total Amount"
DATE = "Date"
PASSPORT_NUMBER = "Passport Number"
ISSUE_DATE = "Issue Date"
EMAIL = "Email"
PHONE = "Phone"
WEBSITE = "Website"


# Pattern definitions: tried in order, first accepted match wins.
_CARD_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"\b([A-Z]\d{1,3}\s+\d{3}\s+\d{3})\b"),
    re.compile(r"\b([A-Z]\s*\d{1,3}\s*\d{3}\s*\d{3})\b"),
    re.compile(r"\b([A-Z]\d{7})\b"),
    re.compile(r"\b(\d{6,9})\b"),
]

_NAME_RUN = re.compile(r"\b([A-Z][a-z]+(?:\s+[A-Z][a-z]+){1,3})\b")

_STREET_PATTERN = re.compile(
    rf"\b(\d+)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)\s+({STREET_SUFFIXES})\b",
    re.IGNORECASE,
)
_SUBURB_PATTERN = re.compile(r"\b([A-Z][A-Za-z]+(?:\s+[A-Z][A-Za-z]+)*)\s+NSW\s+(\d{4})\b")

_CLASS_PATTERNS: list[re.Pattern[str]] = [
    re.compile(
        r"\b(?i:class)(?:\s*:\s*|\s+)([A-Z]\s*&\s*[A-Z][a-z]*\s*[A-Z]|[A-Z]+(?:\s+[A-Z]+)*)\b"
    ),
    re.compile(r"\b([A-Z]\s*&\s*[A-Z][a-z]*\s*[A-Z])\b"),
    re.compile(r"\b(C\s*&\s*Ty\s*A)\b", re.IGNORECASE),
]
_CLASS_TOKEN = re.compile(r"\b([A-Z]{1,2})\b")

_DATE_TEXT = re.compile(r"\b(\d{1,2}\s+[A-Z]{3}\s+\d{4})\b", re.IGNORECASE)
_DATE_NUMERIC = re.compile(r"\b(\d{1,2}[/-]\d{1,2}[/-]\d{2,4})\b")
_PASSPORT_DATE = re.compile(
    r"\b(\d{1,2}[/-]\d{1,2}[/-]\d{2,4}|\d{1,2}\s+[A-Z]{3}\s+\d{4})\b", re.IGNORECASE
)

_FEE_PATTERN = re.compile(r"\bLicence\s+Fee\s+\$?(\d+(?:\.\d{2})?)\b", re.IGNORECASE)

_INVOICE_NUMBER = re.compile(
    r"\b(?:invoice|receipt)\s*(?:no\.?|number|#)?\s*:?\s*([A-Z0-9-]*\d[A-Z0-9-]*)\b",
    re.IGNORECASE,
)
_TOTAL_PATTERN = re.compile(
    r"\b(?:total|amount|sum)\s*:?\s*\$?\s*(\d[\d,]*(?:\.\d{2})?)\b", re.IGNORECASE
)

_PASSPORT_NUMBER = re.compile(r"\b([A-Z]\d{7,9})\b")

_LABEL_VALUE = re.compile(r"^([^:]+):\s*(.+)$")
_EMAIL = re.compile(r"\b[\w.-]+@[\w.-]+\.\w+\b")
_PHONE = re.compile(r"(?:\+?\d{1,3}[-.\s]?)?\(?\b\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}\b")
_URL = re.compile(r"\bhttps?://\S+\b")

_NOISE_LABEL_WORDS = ("image", "scan", "page", "document", "photo", "picture", "file")


# License / ID extractors


def extract_card_number(
    existing: Sequence[ExtractedField], structure: DocumentStructure
) -> list[ExtractedField]:
    """Card number from card-section lines, trying each pattern in order."""
    if _has_label(existing, CARD_NUMBER):
        return []
    for pattern in _CARD_PATTERNS:
        for line in structure.card_section:
            match = pattern.search(line)
            if not match:
                continue
            raw = re.sub(r"\s+", " ", match.group(1)).strip()
            if is_valid_card_number(raw):
                return [ExtractedField(CARD_NUMBER, raw, 95)]
    return []


def extract_name(
    existing: Sequence[ExtractedField], structure: DocumentStructure
) -> list[ExtractedField]:
    """Capitalized 2-4 word run from the card section, then the header."""
    if _has_label(existing, NAME):
        return []
    for line in (*structure.card_section, *structure.header_section):
        match = _NAME_RUN.search(line)
        if match and len(match.group(1)) > 4 and is_valid_name(match.group(1)):
            return [ExtractedField(NAME, match.group(1), 97)]
    return []


def extract_address(
    existing: Sequence[ExtractedField], structure: DocumentStructure
) -> list[ExtractedField]:
    """Street and suburb/postcode fragments joined with ``", "``."""
    if _has_label(existing, ADDRESS):
        return []
    parts: list[str] = []
    for line in structure.address_section:
        street = _STREET_PATTERN.search(line)
        if street:
            parts.append(f"{street.group(1)} {street.group(2)} {street.group(3)}")
        suburb = _SUBURB_PATTERN.search(line)
        if suburb:
            parts.append(f"{suburb.group(1)} NSW {suburb.group(2)}")

    if parts:
        address = ", ".join(parts)
        if is_valid_address(address):
            return [ExtractedField(ADDRESS, address, 95)]
    return []


def extract_license_class(
    existing: Sequence[ExtractedField], structure: DocumentStructure
) -> list[ExtractedField]:
    """Licence class from class-section lines, else a bare class token."""
    if _has_label(existing, LICENSE_CLASS):
        return []
    for line in structure.class_section:
        for pattern in _CLASS_PATTERNS:
            match = pattern.search(line)
            if match and is_valid_license_class(match.group(1)):
                value = re.sub(r"\s+", " ", match.group(1)).strip()
                return [ExtractedField(LICENSE_CLASS, value, 96)]

    for match in _CLASS_TOKEN.finditer(structure.joined_text):
        if is_valid_license_class(match.group(1)):
            return [ExtractedField(LICENSE_CLASS, match.group(1), 85)]
    return []


def extract_dates(
    existing: Sequence[ExtractedField], structure: DocumentStructure
) -> list[ExtractedField]:
    """Date of birth and expiry, by line context first and position second."""
    seen: dict[str, str] = {}
    for line in structure.date_section:
        for match in _DATE_TEXT.finditer(line):
            date = match.group(1).upper()
            seen.setdefault(date, line.lower())

    added: list[ExtractedField] = []

    def is_set(label: str) -> bool:
        return _has_label(existing, label) or _has_label(added, label)

    for date, context in seen.items():
        if "birth" in context and not is_set(DATE_OF_BIRTH):
            added.append(ExtractedField(DATE_OF_BIRTH, date, 98))
        elif ("expir" in context or "valid" in context) and not is_set(EXPIRY_DATE):
            added.append(ExtractedField(EXPIRY_DATE, date, 98))

    taken = {f.value for f in (*existing, *added)}
    remaining = [date for date in seen if date not in taken]
    if remaining and not is_set(DATE_OF_BIRTH):
        added.append(ExtractedField(DATE_OF_BIRTH, remaining[0], 90))
    if len(remaining) >= 2 and not is_set(EXPIRY_DATE):
        added.append(ExtractedField(EXPIRY_DATE, remaining[1], 90))
    return added


def extract_license_fee(
    existing: Sequence[ExtractedField], structure: DocumentStructure
) -> list[ExtractedField]:
    if _has_label(existing, LICENSE_FEE):
        return []
    for line in structure.fee_section:
        match = _FEE_PATTERN.search(line)
        if match and is_valid_amount(match.group(1)):
            return [ExtractedField(LICENSE_FEE, f"${match.group(1)}", 97)]
    return []


# Invoice / receipt


def extract_invoice_fields(
    existing: Sequence[ExtractedField], structure: DocumentStructure
) -> list[ExtractedField]:
    """Invoice number, total amount, and date; first match per label wins."""
    added: list[ExtractedField] = []
    labels = {f.label for f in existing}

    def add(label: str, value: str, confidence: float) -> None:
        if label not in labels:
            labels.add(label)
            added.append(ExtractedField(label, value, confidence))

    for line in structure.lines:
        number = _INVOICE_NUMBER.search(line)
        if number:
            add(INVOICE_NUMBER, number.group(1), 90)
        total = _TOTAL_PATTERN.search(line)
        if total:
            add(TOTAL_AMOUNT, f"${total.group(1).replace(',', '')}", 95)
        date = _DATE_NUMERIC.search(line)
        if date:
            add(DATE, date.group(1), 85)
    return added


# Passport


def extract_passport_fields(
    existing: Sequence[ExtractedField], structure: DocumentStructure
) -> list[ExtractedField]:
    """Passport number, holder name, and issue/expiry dates."""
    added: list[ExtractedField] = []
    labels = {f.label for f in existing}

    def add(label: str, value: str, confidence: float) -> None:
        if label not in labels:
            labels.add(label)
            added.append(ExtractedField(label, value, confidence))

    for line in structure.lines:
        number = _PASSPORT_NUMBER.search(line)
        if number:
            add(PASSPORT_NUMBER, number.group(1), 95)

        for name in _NAME_RUN.finditer(line):
            if not is_common_word(name.group(1)):
                add(NAME, name.group(1), 90)
                break

        date = _PASSPORT_DATE.search(line)
        if date:
            lower = line.lower()
            value = date.group(1).upper()
            if "issue" in lower:
                add(ISSUE_DATE, value, 90)
            elif "expir" in lower:
                add(EXPIRY_DATE, value, 90)
    return added


# Generic labeled text


def is_meaningful_field(label: str, value: str) -> bool:
    """Filter out label/value pairs that are recognition noise."""
    if len(label) < 2 or len(label) > 50 or len(value) < 1 or len(value) > 200:
        return False
    if label.isdigit():
        return False
    if re.fullmatch(r"[^\w\s]+", label) or re.fullmatch(r"[^\w\s]+", value):
        return False
    lowered = label.lower()
    return not any(word in lowered for word in _NOISE_LABEL_WORDS)


def clean_field_label(label: str) -> str:
    """Strip a trailing colon, collapse spaces, and capitalize each word."""
    label = label.strip().removesuffix(":").strip()
    label = re.sub(r"\b\w", lambda m: m.group(0).upper(), label)
    return re.sub(r"\s+", " ", label)


def extract_generic_fields(
    existing: Sequence[ExtractedField], structure: DocumentStructure
) -> list[ExtractedField]:
    """``label: value`` pairs plus standalone email, phone, and URL values."""
    added: list[ExtractedField] = []
    labels = {f.label for f in existing}

    def add(label: str, value: str, confidence: float) -> None:
        if label not in labels:
            labels.add(label)
            added.append(ExtractedField(label, value, confidence))

    for line in structure.lines:
        url = _URL.search(line)
        # the scheme colon is not a label separator
        pair = None if url else _LABEL_VALUE.match(line)
        if pair:
            label, value = pair.group(1).strip(), pair.group(2).strip()
            if is_meaningful_field(label, value):
                add(clean_field_label(label), value, 80)

        email = _EMAIL.search(line)
        if email:
            add(EMAIL, email.group(0), 90)
        phone = _PHONE.search(line)
        if phone:
            add(PHONE, phone.group(0).strip(), 85)
        if url:
            add(WEBSITE, url.group(0), 85)
    return added
