"""Field extraction pipeline: classify, structure, extract, validate.

The engine normalizes raw text, picks the document type, segments the lines,
runs the extractors registered for that type in a fixed order, and filters
the candidates. Extractors only propose fields; the engine merges their
proposals so the first accepted field for a label wins.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import assert_never

from lumen_extract.utils.config import ExtractionConfig
from lumen_extract.utils.logger import get_logger
from lumen_extract.validation.field_validator import FieldValidator

from .classifier import DocumentType, classify_document
from .normalizer import TextNormalizer
from .rule_extractor import (
    ExtractedField,
    Extractor,
    extract_address,
    extract_card_number,
    extract_dates,
    extract_generic_fields,
    extract_invoice_fields,
    extract_license_class,
    extract_license_fee,
    extract_name,
    extract_passport_fields,
)
from .structure import DocumentStructure, analyze_structure

logger = get_logger(__name__)


@dataclass(frozen=True)
class ExtractorStep:
    """An extractor and whether it may add a label that is already present."""

    extractor: Extractor
    allow_existing_labels: bool = False


LICENSE_STEPS: tuple[ExtractorStep, ...] = (
    ExtractorStep(extract_card_number),
    ExtractorStep(extract_name),
    ExtractorStep(extract_address),
    ExtractorStep(extract_license_class),
    ExtractorStep(extract_dates),
    ExtractorStep(extract_license_fee),
)


def steps_for(document_type: DocumentType) -> tuple[ExtractorStep, ...]:
    """Extractor sequence for a document type."""
    match document_type:
        case DocumentType.LICENSE_OR_ID:
            return LICENSE_STEPS
        case DocumentType.INVOICE_OR_RECEIPT:
            return (ExtractorStep(extract_invoice_fields),)
        case DocumentType.PASSPORT:
            return (ExtractorStep(extract_passport_fields),)
        case DocumentType.GENERIC:
            return (ExtractorStep(extract_generic_fields),)
        case _:
            assert_never(document_type)


def merge_fields(
    current: Sequence[ExtractedField],
    proposed: Sequence[ExtractedField],
    allow_existing_labels: bool = False,
) -> list[ExtractedField]:
    """Append proposed fields whose label is not already present."""
    merged = list(current)
    labels = {f.label for f in merged}
    for candidate in proposed:
        if candidate.label in labels and not allow_existing_labels:
            continue
        merged.append(candidate)
        labels.add(candidate.label)
    return merged


@dataclass
class ExtractionResult:
    """Fields extracted from one text, with the intermediate artifacts."""

    fields: list[ExtractedField]
    document_type: DocumentType
    lines: list[str]
    candidates: list[ExtractedField] = field(default_factory=list)


class FieldExtractionEngine:
    """Turns raw recognized text into validated fields.

    Args:
        normalizer: Text normalizer. Defaults to built-in corrections.
        validator: Field validator. Defaults to a 75 confidence floor.
    """

    def __init__(
        self,
        normalizer: TextNormalizer | None = None,
        validator: FieldValidator | None = None,
    ) -> None:
        self.normalizer = normalizer or TextNormalizer()
        self.validator = validator or FieldValidator()

    @classmethod
    def from_config(cls, config: ExtractionConfig) -> "FieldExtractionEngine":
        return cls(
            normalizer=TextNormalizer.from_file(Path(config.corrections_path)),
            validator=FieldValidator(
                min_confidence=config.min_confidence,
                min_confidence_overrides=config.min_confidence_overrides,
            ),
        )

    def run_extractors(
        self, document_type: DocumentType, structure: DocumentStructure
    ) -> list[ExtractedField]:
        """Run the extractors for a type and merge their proposals in order."""
        fields: list[ExtractedField] = []
        for step in steps_for(document_type):
            proposed = step.extractor(tuple(fields), structure)
            fields = merge_fields(fields, proposed, step.allow_existing_labels)
        return fields

    def process(self, text: str) -> ExtractionResult:
        """Run the full extraction pipeline on raw text.

        Args:
            text: Raw recognized text.

        Returns:
            Validated fields with the document type and normalized lines.
        """
        lines = self.normalizer.normalize(text)
        document_type = classify_document(lines)
        structure = analyze_structure(lines)
        candidates = self.run_extractors(document_type, structure)
        fields = self.validator.validate(candidates)
        logger.info(
            "Extracted %d fields (%d candidates) from %s document",
            len(fields),
            len(candidates),
            document_type,
        )
        return ExtractionResult(
            fields=fields,
            document_type=document_type,
            lines=lines,
            candidates=candidates,
        )

    def extract(self, text: str) -> list[ExtractedField]:
        return self.process(text).fields


_default_engine: FieldExtractionEngine | None = None


def extract_fields(text: str) -> list[ExtractedField]:
    """Extract validated fields from raw text with the default engine."""
    global _default_engine
    if _default_engine is None:
        _default_engine = FieldExtractionEngine()
    return _default_engine.extract(text)
