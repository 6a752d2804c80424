"""Envelope extraction pipeline.

Normalizes the recognized text of every face, runs the field extractors
and the donation-type classifier, and assembles one donation record.
"""

from collections.abc import Sequence

from koden_ocr.utils.config import ExtractionConfig
from koden_ocr.utils.logger import get_logger

from .donation_type import DonationTypeClassifier, ceremonial_pattern
from .models import (
    FACE_LABELS,
    FACES,
    FRONT,
    ExtractedField,
    ExtractionResult,
    FaceText,
    PositionedFragment,
)
from .normalizer import normalize_faces
from .rule_extractor import RuleExtractor

logger = get_logger(__name__)


def build_notes(texts: dict[str, str]) -> str:
    """Concatenate every non-empty face under its label for human audit."""
    return "\n\n".join(
        f"【{FACE_LABELS[face]}】\n{texts[face]}" for face in FACES if texts.get(face)
    )


class EnvelopeExtractor:
    """Turns per-face recognized text into a structured donation record.

    The extractor holds no per-call state: the same face text always
    yields the same result.

    Args:
        config: Extraction configuration. Defaults are used when omitted.
    """

    def __init__(self, config: ExtractionConfig | None = None) -> None:
        self.config = config or ExtractionConfig()
        self.classifier = DonationTypeClassifier.from_config(self.config)
        self.rule_extractor = RuleExtractor(ceremonial_pattern(self.classifier.vocabulary))

    def extract(
        self,
        face_text: FaceText,
        fragments: Sequence[PositionedFragment] | None = None,
    ) -> ExtractionResult:
        """Extract the donation record from up to four envelope faces.

        Args:
            face_text: Raw recognized text keyed by face identifier.
                Missing faces and ``None`` values are treated as absent.
            fragments: Optional positioned fragments of the front face,
                used by the donation-type classifier's fallback.

        Returns:
            The assembled record; fields that were not found are ``""``.

        Raises:
            UnknownFaceError: If ``face_text`` has a key that is not a face.
        """
        texts = normalize_faces(face_text)
        extractor = self.rule_extractor
        fields: dict[str, ExtractedField] = {}

        amount = extractor.extract_amount(texts)
        enclosed = extractor.extract_enclosed_amount(texts)
        title = extractor.extract_title(texts)
        organizations = extractor.extract_organizations(
            texts, title.value if title else ""
        )
        personal_name = extractor.extract_personal_name(texts, organizations.keys())
        address = extractor.extract_address(texts)

        for found in (amount, enclosed, title, personal_name, address):
            if found is not None:
                fields[found.field_name] = found
        organization = next(iter(organizations.values()), None)
        if organization is not None:
            fields[organization.field_name] = organization

        # An inner-envelope figure stands in for a missing outer amount.
        if amount is None and enclosed is not None:
            fields["amount"] = ExtractedField(
                field_name="amount",
                value=enclosed.value,
                face=enclosed.face,
                pattern=enclosed.pattern,
                confidence=enclosed.confidence,
                start_pos=enclosed.start_pos,
                end_pos=enclosed.end_pos,
            )

        donation_type = self.classifier.classify(texts[FRONT], fragments)

        result = ExtractionResult(
            personal_name=_value(fields, "personal_name"),
            organization_name=_value(fields, "organization_name"),
            title=_value(fields, "title"),
            address=_value(fields, "address"),
            amount=_value(fields, "amount"),
            enclosed_amount=_value(fields, "enclosed_amount"),
            notes=build_notes(texts),
            donation_type=donation_type,
            fields=fields,
            face_texts=texts,
        )
        logger.info(
            "Extracted %d fields from %d faces (donation type: %s)",
            len(fields),
            sum(1 for text in texts.values() if text),
            donation_type.type or "none",
        )
        logger.debug("Field sources: %s", result.sources())
        return result


def _value(fields: dict[str, ExtractedField], name: str) -> str:
    found = fields.get(name)
    return found.value if found else ""


_DEFAULT_EXTRACTOR = EnvelopeExtractor()


def extract(
    face_text: FaceText,
    fragments: Sequence[PositionedFragment] | None = None,
) -> ExtractionResult:
    """Extract a donation record with the default configuration."""
    return _DEFAULT_EXTRACTOR.extract(face_text, fragments)
