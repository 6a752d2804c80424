"""Data types shared by the extraction pipeline.

Face identifiers, the positioned text fragments produced by recognition,
and the structured results returned to callers.
"""

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field

FRONT = "front"
BACK = "back"
INNER_FRONT = "innerFront"
INNER_BACK = "innerBack"

# Canonical face order: outer envelope first, then the inner envelope.
FACES: tuple[str, ...] = (FRONT, BACK, INNER_FRONT, INNER_BACK)

FACE_LABELS: dict[str, str] = {
    FRONT: "香典袋 表面",
    BACK: "香典袋 裏面",
    INNER_FRONT: "中袋 表面",
    INNER_BACK: "中袋 裏面",
}

FaceText = Mapping[str, str | None]


class UnknownFaceError(ValueError):
    """Raised when a face map contains a key that is not a known face."""


def validate_faces(face_text: Mapping[str, object]) -> None:
    """Check that every key of a face map names a known face.

    Args:
        face_text: Mapping keyed by face identifier.

    Raises:
        UnknownFaceError: If any key is not one of ``FACES``.
    """
    unknown = sorted(str(k) for k in face_text if k not in FACES)
    if unknown:
        raise UnknownFaceError(
            f"Unknown face identifier(s): {', '.join(unknown)}; "
            f"expected one of {', '.join(FACES)}"
        )


@dataclass(frozen=True)
class PositionedFragment:
    """A recognized piece of text with its position on the face image."""

    text: str
    top: float
    left: float = 0.0
    width: float = 0.0
    height: float = 0.0
    confidence: float = 1.0


@dataclass
class ExtractedField:
    """A field value matched by an extraction pattern."""

    field_name: str
    value: str
    face: str
    pattern: str
    confidence: float
    start_pos: int
    end_pos: int


@dataclass
class DonationTypeResult:
    """Ritual donation type recognized on the envelope front."""

    type: str = ""
    category: str = ""
    confidence: float = 0.0
    position: str | None = None

    @property
    def found(self) -> bool:
        return bool(self.type)


@dataclass
class ExtractionResult:
    """Structured donation record assembled from all envelope faces.

    Every text field defaults to an empty string; ``fields`` and
    ``face_texts`` form the debug trace of where each value came from.
    """

    personal_name: str = ""
    organization_name: str = ""
    title: str = ""
    address: str = ""
    amount: str = ""
    enclosed_amount: str = ""
    notes: str = ""
    donation_type: DonationTypeResult = field(default_factory=DonationTypeResult)
    fields: dict[str, ExtractedField] = field(default_factory=dict)
    face_texts: dict[str, str] = field(default_factory=dict)

    def to_record(self) -> dict[str, str]:
        """Flatten the result into plain field values for storage or export."""
        return {
            "personal_name": self.personal_name,
            "organization_name": self.organization_name,
            "title": self.title,
            "address": self.address,
            "amount": self.amount,
            "enclosed_amount": self.enclosed_amount,
            "donation_type": self.donation_type.type,
            "donation_category": self.donation_type.category,
            "notes": self.notes,
        }

    def sources(self) -> dict[str, str]:
        """Map each extracted field to the face it was read from."""
        return {name: f.face for name, f in self.fields.items()}

    def to_dict(self) -> dict[str, object]:
        return asdict(self)
