"""Document type detection from normalized text.

Keyword groups are tested in a fixed priority order and the first group
with a hit decides the type. License terms are checked before invoice
terms, which are checked before passport terms, which are checked before
generic id/card terms.
"""

from enum import StrEnum

from lumen_extract.utils.logger import get_logger

logger = get_logger(__name__)


class DocumentType(StrEnum):
    """Document families with dedicated extraction rules."""

    LICENSE_OR_ID = "license_or_id"
    INVOICE_OR_RECEIPT = "invoice_or_receipt"
    PASSPORT = "passport"
    GENERIC = "generic"


# Priority order matters: the first group containing a keyword wins.
KEYWORD_GROUPS: list[tuple[DocumentType, tuple[str, ...]]] = [
    (DocumentType.LICENSE_OR_ID, ("licence", "license", "driver")),
    (DocumentType.INVOICE_OR_RECEIPT, ("invoice", "receipt", "total", "amount")),
    (DocumentType.PASSPORT, ("passport", "travel document")),
    (DocumentType.LICENSE_OR_ID, ("card", "id", "identification")),
]


def classify_document(lines: list[str]) -> DocumentType:
    """Assign exactly one document type to a list of normalized lines.

    Keywords are matched as substrings of the lowercased, space-joined text.

    Args:
        lines: Normalized document lines.

    Returns:
        The matched document type, or ``DocumentType.GENERIC``.
    """
    full_text = " ".join(lines).lower()
    for document_type, keywords in KEYWORD_GROUPS:
        for keyword in keywords:
            if keyword in full_text:
                logger.debug("Classified as %s (keyword %r)", document_type, keyword)
                return document_type
    return DocumentType.GENERIC
