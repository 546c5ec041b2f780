"""Segmentation of document lines into semantic sections.

Each line is tested independently against every section, so a line can
belong to several sections at once. The header is always the first three
lines. Every line also gets a context window of its neighbours.
"""

import re
from dataclasses import dataclass

CONTEXT_RADIUS = 2
HEADER_LINES = 3

STREET_SUFFIXES = "ave|road|street|drive|lane|way|place|close|court|crescent|st"

_ADDRESS_STREET = re.compile(
    rf"\b\d+\s+[a-zA-Z\s]+(?:{STREET_SUFFIXES})\b", re.IGNORECASE
)
_ADDRESS_SUBURB = re.compile(r"\b[a-zA-Z\s]+NSW\s+\d{4}\b", re.IGNORECASE)
_CLASS_NOTATION = re.compile(r"\bC\s*&\s*[A-Z][a-z]*\s*[A-Z]\b", re.IGNORECASE)
_DATE_SHAPE = re.compile(r"\b\d{1,2}\s+[a-z]{3}\s+\d{4}\b", re.IGNORECASE)
_DOLLAR_AMOUNT = re.compile(r"\$\d+(?:\.\d{2})?")


@dataclass(frozen=True)
class LineContext:
    """A line together with up to two neighbouring lines on each side."""

    line: str
    index: int
    context: tuple[str, ...]


@dataclass(frozen=True)
class DocumentStructure:
    """Section membership for the lines of one document."""

    lines: tuple[str, ...]
    header_section: tuple[str, ...]
    card_section: tuple[str, ...]
    address_section: tuple[str, ...]
    class_section: tuple[str, ...]
    date_section: tuple[str, ...]
    fee_section: tuple[str, ...]
    line_contexts: tuple[LineContext, ...]

    @property
    def all_text(self) -> str:
        """Lowercased, space-joined document text."""
        return " ".join(self.lines).lower()

    @property
    def joined_text(self) -> str:
        """Space-joined document text in its original case."""
        return " ".join(self.lines)


def _is_card_line(lower: str) -> bool:
    return "card" in lower or "licence" in lower or "number" in lower


def _is_address_line(line: str) -> bool:
    return bool(_ADDRESS_STREET.search(line) or _ADDRESS_SUBURB.search(line))


def _is_class_line(line: str, lower: str) -> bool:
    return "class" in lower or bool(_CLASS_NOTATION.search(line))


def _is_date_line(line: str, lower: str) -> bool:
    return bool(_DATE_SHAPE.search(line)) or any(
        keyword in lower for keyword in ("birth", "expir", "date")
    )


def _is_fee_line(line: str, lower: str) -> bool:
    return "fee" in lower or bool(_DOLLAR_AMOUNT.search(line))


def build_line_contexts(lines: list[str]) -> list[LineContext]:
    contexts: list[LineContext] = []
    for index, line in enumerate(lines):
        start = max(0, index - CONTEXT_RADIUS)
        stop = min(len(lines), index + CONTEXT_RADIUS + 1)
        neighbours = tuple(lines[i] for i in range(start, stop) if i != index)
        contexts.append(LineContext(line=line, index=index, context=neighbours))
    return contexts


def analyze_structure(lines: list[str]) -> DocumentStructure:
    """Build the section structure for normalized lines.

    Args:
        lines: Normalized document lines in reading order.

    Returns:
        Section membership and per-line context windows.
    """
    card: list[str] = []
    address: list[str] = []
    klass: list[str] = []
    dates: list[str] = []
    fees: list[str] = []

    for line in lines:
        lower = line.lower()
        if _is_card_line(lower):
            card.append(line)
        if _is_address_line(line):
            address.append(line)
        if _is_class_line(line, lower):
            klass.append(line)
        if _is_date_line(line, lower):
            dates.append(line)
        if _is_fee_line(line, lower):
            fees.append(line)

    return DocumentStructure(
        lines=tuple(lines),
        header_section=tuple(lines[:HEADER_LINES]),
        card_section=tuple(card),
        address_section=tuple(address),
        class_section=tuple(klass),
        date_section=tuple(dates),
        fee_section=tuple(fees),
        line_contexts=tuple(build_line_contexts(lines)),
    )
