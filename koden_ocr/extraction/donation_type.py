"""Ritual donation-type classification.

Matches the fixed vocabulary of envelope inscriptions (御霊前, 御仏前, ...)
against the front face text, falling back to the top section of the
positioned fragments where the inscription sits above the mizuhiki cord.
"""

import math
import re
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import yaml

from koden_ocr.utils.config import ExtractionConfig
from koden_ocr.utils.logger import get_logger

from .models import DonationTypeResult, PositionedFragment
from .normalizer import normalize_text

logger = get_logger(__name__)

WHOLE_TEXT_CONFIDENCE = 0.9
TOP_SECTION_CONFIDENCE = 0.85
TOP_SECTION = "top_section"


@dataclass(frozen=True)
class DonationType:
    """One inscription in the vocabulary with its ceremonial category."""

    type: str
    category: str
    pattern: re.Pattern[str]


def _inscription(type_: str, category: str) -> DonationType:
    # Accept the hiragana honorific (ご霊前) as well as the kanji one.
    stem = re.escape(type_[1:])
    return DonationType(type_, category, re.compile(f"(?:御|ご){stem}"))


# Priority order: 御供物料 must precede any shorter phrase it contains.
DONATION_TYPES: list[DonationType] = [
    _inscription("御霊前", "仏式・神式・キリスト教式"),
    _inscription("御仏前", "仏式（四十九日後）"),
    _inscription("御香典", "仏式"),
    _inscription("御香料", "仏式"),
    _inscription("御花料", "キリスト教式"),
    _inscription("御玉串料", "神式"),
    _inscription("御榊料", "神式"),
    _inscription("御供物料", "神式"),
    _inscription("御弔慰料", "一般"),
]

# Envelope phrases that are not classified but must not be read as names.
_EXTRA_CEREMONIAL = ["御布施", "御膳料", "御車代", "御供", "ご供", "御悔", "ご悔", "御見舞"]


def ceremonial_pattern(vocabulary: Sequence[DonationType] | None = None) -> re.Pattern[str]:
    """Build one regex matching every ceremonial inscription.

    Args:
        vocabulary: Donation types to include. Defaults to ``DONATION_TYPES``.

    Returns:
        Compiled alternation of all inscription patterns.
    """
    vocabulary = DONATION_TYPES if vocabulary is None else vocabulary
    alternatives = [dt.pattern.pattern for dt in vocabulary]
    alternatives.extend(re.escape(phrase) for phrase in _EXTRA_CEREMONIAL)
    return re.compile("|".join(f"(?:{alt})" for alt in alternatives))


class DonationTypeClassifier:
    """Classifies the ritual donation type written on the envelope front.

    Args:
        vocabulary_path: Optional YAML file overriding the built-in
            vocabulary. A missing file keeps the defaults.
        top_section_ratio: Fraction of fragments (from the top) inspected
            in the positional fallback.
        min_top_fragments: Minimum number of fragments inspected.
    """

    def __init__(
        self,
        vocabulary_path: Path | None = None,
        top_section_ratio: float = 0.3,
        min_top_fragments: int = 5,
    ) -> None:
        self.vocabulary = self._load_vocabulary(vocabulary_path)
        self.top_section_ratio = top_section_ratio
        self.min_top_fragments = min_top_fragments

    @classmethod
    def from_config(cls, config: ExtractionConfig) -> "DonationTypeClassifier":
        path = Path(config.donation_types_path) if config.donation_types_path else None
        return cls(
            vocabulary_path=path,
            top_section_ratio=config.top_section_ratio,
            min_top_fragments=config.min_top_fragments,
        )

    def _load_vocabulary(self, path: Path | None) -> list[DonationType]:
        """Load donation types from YAML, or fall back to the built-ins.

        The file holds a list of ``{type, category, variants}`` entries,
        where ``variants`` lists extra spellings to accept.
        """
        if path is None or not path.exists():
            return list(DONATION_TYPES)

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or []

        vocabulary: list[DonationType] = []
        for entry in data:
            spellings = [entry["type"], *entry.get("variants", [])]
            pattern = re.compile("|".join(re.escape(s) for s in spellings))
            vocabulary.append(
                DonationType(entry["type"], entry.get("category", ""), pattern)
            )
        if not vocabulary:
            logger.debug("Empty donation type file at %s, using defaults", path)
            return list(DONATION_TYPES)
        logger.info("Loaded %d donation types from %s", len(vocabulary), path)
        return vocabulary

    def _match(self, text: str) -> DonationType | None:
        for donation_type in self.vocabulary:
            if donation_type.pattern.search(text):
                return donation_type
        return None

    def top_fragments(
        self, fragments: Sequence[PositionedFragment]
    ) -> list[PositionedFragment]:
        """Select the upper section of the fragments, topmost first."""
        ordered = sorted(fragments, key=lambda frag: frag.top)
        count = max(
            math.floor(len(ordered) * self.top_section_ratio), self.min_top_fragments
        )
        return ordered[:count]

    def classify(
        self,
        front_text: str | None,
        fragments: Sequence[PositionedFragment] | None = None,
    ) -> DonationTypeResult:
        """Classify the donation type from the front face.

        Args:
            front_text: Recognized text of the envelope front.
            fragments: Optional positioned fragments of the same face.

        Returns:
            The matched type and category, or an empty result with zero
            confidence when nothing matches.
        """
        text = normalize_text(front_text)
        match = self._match(text) if text else None
        if match is not None:
            logger.debug("Donation type %s found in front text", match.type)
            return DonationTypeResult(
                type=match.type,
                category=match.category,
                confidence=WHOLE_TEXT_CONFIDENCE,
            )

        if fragments:
            for fragment in self.top_fragments(fragments):
                match = self._match(normalize_text(fragment.text))
                if match is not None:
                    logger.debug("Donation type %s found in top section", match.type)
                    return DonationTypeResult(
                        type=match.type,
                        category=match.category,
                        confidence=TOP_SECTION_CONFIDENCE,
                        position=TOP_SECTION,
                    )

        return DonationTypeResult()


_DEFAULT_CLASSIFIER = DonationTypeClassifier()


def classify_donation_type(
    front_text: str | None,
    fragments: Sequence[PositionedFragment] | None = None,
) -> DonationTypeResult:
    """Classify with the built-in vocabulary and default section settings."""
    return _DEFAULT_CLASSIFIER.classify(front_text, fragments)
