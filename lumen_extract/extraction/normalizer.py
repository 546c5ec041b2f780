"""Normalization of raw recognized text into clean lines.

Collapses whitespace, strips non-printable characters, splits the text into
trimmed lines, and applies an ordered table of regex corrections for common
recognition mistakes. The correction table is data: it is loaded from a
YAML file and falls back to a small built-in table of generic fixes.
"""

import re
from dataclasses import dataclass
from pathlib import Path

import yaml

from lumen_extract.utils.logger import get_logger

logger = get_logger(__name__)

_HORIZONTAL_WHITESPACE = re.compile(r"[^\S\n]+")
_NON_PRINTABLE = re.compile(r"[^\x20-\x7E\u00A0-\uFFFF\n]")
_NOISE_KEYWORDS = re.compile(
    r"\b(?:name|card|licence|address|date|class|fee)\b", re.IGNORECASE
)
NOISE_LINE_LENGTH = 100

# (pattern, replacement, ignore_case)
DEFAULT_CORRECTIONS: list[tuple[str, str, bool]] = [
    (r"\bNew\s+Bouth\s+Wales\b", "New South Wales", True),
    (r"\bDate\s*of\s*Birth\b", "Date of Birth", True),
    (r"\bExpiry\s*Date\b", "Expiry Date", True),
    (r"\bCard\s*Number\b", "Card Number", True),
    (r"\bLicence\s*Fee\b", "Licence Fee", True),
    (r"\bC\s*&\s*Ty\s*A\b", "C & Ty A", True),
    (r"\bLicence Fee\s+[S$]?(\d+)\s+(\d{2})\b", r"Licence Fee $\g<1>.\g<2>", True),
    (r"\bLicence Fee\s+S(\d+(?:\.\d{2})?)\b", r"Licence Fee $\g<1>", True),
    (r"\b([12])[Oo](\d{2})\b", r"\g<1>0\g<2>", False),
    (r"#\s+(\d+)\b", r"#\g<1>", False),
    (r"\s*[|{}]+\s*", " ", False),
]


@dataclass(frozen=True)
class Correction:
    """A single compiled regex substitution."""

    pattern: re.Pattern[str]
    replacement: str

    def apply(self, line: str) -> str:
        return self.pattern.sub(self.replacement, line)


def _compile(entries: list[tuple[str, str, bool]]) -> list[Correction]:
    return [
        Correction(re.compile(pattern, re.IGNORECASE if ignore_case else 0), repl)
        for pattern, repl, ignore_case in entries
    ]


def load_corrections(path: Path) -> list[Correction]:
    """Load an ordered correction table from YAML.

    The file holds a ``corrections`` list whose items have ``pattern``,
    ``replacement`` and an optional ``ignore_case`` flag.

    Args:
        path: Path to the corrections YAML file.

    Returns:
        Compiled corrections in file order, or the built-in table when the
        file does not exist or is empty.
    """
    if path.exists():
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        entries = [
            (
                str(item["pattern"]),
                str(item.get("replacement", "")),
                bool(item.get("ignore_case", False)),
            )
            for item in data.get("corrections", [])
        ]
        if entries:
            logger.info("Loaded %d text corrections from %s", len(entries), path)
            return _compile(entries)
    logger.debug("No corrections file at %s, using built-in corrections", path)
    return _compile(DEFAULT_CORRECTIONS)


class TextNormalizer:
    """Turns raw recognized text into an ordered list of clean lines.

    Args:
        corrections: Ordered corrections to apply to every line. Defaults
            to the built-in table.
    """

    def __init__(self, corrections: list[Correction] | None = None) -> None:
        self.corrections = (
            corrections if corrections is not None else _compile(DEFAULT_CORRECTIONS)
        )

    @classmethod
    def from_file(cls, path: Path) -> "TextNormalizer":
        return cls(load_corrections(path))

    def normalize(self, text: str) -> list[str]:
        """Normalize raw text.

        Args:
            text: Raw text as returned by the recognition engine.

        Returns:
            Trimmed, non-empty lines in reading order.
        """
        cleaned = _HORIZONTAL_WHITESPACE.sub(" ", text)
        cleaned = _NON_PRINTABLE.sub("", cleaned)

        lines: list[str] = []
        for raw_line in cleaned.split("\n"):
            line = raw_line.strip()
            if not line:
                continue
            line = self._correct(line)
            if not line:
                continue
            if len(line) > NOISE_LINE_LENGTH and not _NOISE_KEYWORDS.search(line):
                logger.debug("Dropping noise line of %d characters", len(line))
                continue
            lines.append(line)
        return lines

    def _correct(self, line: str) -> str:
        for correction in self.corrections:
            line = correction.apply(line)
        return _HORIZONTAL_WHITESPACE.sub(" ", line).strip()
