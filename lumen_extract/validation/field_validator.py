"""Final filtering of candidate fields.

Drops low-confidence candidates, re-checks the shape of labels that have a
validator, and removes duplicate label/value pairs. Shape failures are
forgiven for candidates at or above the label's forgiveness threshold.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from lumen_extract.extraction.rule_extractor import (
    ADDRESS,
    CARD_NUMBER,
    DATE_OF_BIRTH,
    EXPIRY_DATE,
    LICENSE_CLASS,
    LICENSE_FEE,
    NAME,
    TOTAL_AMOUNT,
    ExtractedField,
)
from lumen_extract.utils.logger import get_logger

from .validators import (
    is_valid_address,
    is_valid_amount,
    is_valid_card_number,
    is_valid_date,
    is_valid_license_class,
    is_valid_name,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class ShapeRule:
    """Shape validator for a label and the confidence that forgives a failure.

    ``forgive_at`` of ``None`` means a failed check always drops the field.
    """

    validator: Callable[[str], bool]
    forgive_at: float | None


def default_rules() -> dict[str, ShapeRule]:
    return {
        CARD_NUMBER: ShapeRule(is_valid_card_number, None),
        NAME: ShapeRule(is_valid_name, 75),
        ADDRESS: ShapeRule(is_valid_address, 75),
        LICENSE_CLASS: ShapeRule(is_valid_license_class, 70),
        DATE_OF_BIRTH: ShapeRule(is_valid_date, 70),
        EXPIRY_DATE: ShapeRule(is_valid_date, 70),
        LICENSE_FEE: ShapeRule(is_valid_amount, 80),
        TOTAL_AMOUNT: ShapeRule(is_valid_amount, 80),
    }


def deduplicate(fields: Sequence[ExtractedField]) -> list[ExtractedField]:
    """Keep the first field of every distinct (label, value) pair."""
    seen: set[tuple[str, str]] = set()
    unique: list[ExtractedField] = []
    for field in fields:
        key = (field.label, field.value)
        if key not in seen:
            seen.add(key)
            unique.append(field)
    return unique


class FieldValidator:
    """Filters candidate fields into the final result set.

    Args:
        min_confidence: Confidence below which a field is dropped.
        min_confidence_overrides: Per-label replacements for
            ``min_confidence``.
        rules: Shape rules per label. Defaults to :func:`default_rules`.
    """

    def __init__(
        self,
        min_confidence: float = 75.0,
        min_confidence_overrides: dict[str, float] | None = None,
        rules: dict[str, ShapeRule] | None = None,
    ) -> None:
        self.min_confidence = min_confidence
        self.min_confidence_overrides = dict(min_confidence_overrides or {})
        self.rules = rules if rules is not None else default_rules()

    def _minimum_for(self, label: str) -> float:
        return self.min_confidence_overrides.get(label, self.min_confidence)

    def is_acceptable(self, field: ExtractedField) -> bool:
        """Whether a single candidate survives validation."""
        if field.confidence < self._minimum_for(field.label):
            return False
        rule = self.rules.get(field.label)
        if rule is None or rule.validator(field.value):
            return True
        return rule.forgive_at is not None and field.confidence >= rule.forgive_at

    def validate(self, fields: Sequence[ExtractedField]) -> list[ExtractedField]:
        """Filter candidates, keeping their original order.

        Args:
            fields: Candidate fields in extractor invocation order.

        Returns:
            Accepted fields without duplicate (label, value) pairs.
        """
        accepted = [f for f in fields if self.is_acceptable(f)]
        result = deduplicate(accepted)
        dropped = len(fields) - len(result)
        if dropped:
            logger.debug("Validation dropped %d of %d candidates", dropped, len(fields))
        return result
