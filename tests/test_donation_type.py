"""Tests for donation-type classification."""

from pathlib import Path

import yaml

from koden_ocr.extraction.donation_type import (
    DONATION_TYPES,
    TOP_SECTION,
    DonationTypeClassifier,
    ceremonial_pattern,
    classify_donation_type,
)
from koden_ocr.extraction.models import PositionedFragment
from koden_ocr.utils.config import ExtractionConfig


def _fragments(texts: list[str]) -> list[PositionedFragment]:
    """Build fragments stacked top to bottom in list order."""
    return [PositionedFragment(text=t, top=float(i * 40)) for i, t in enumerate(texts)]


class TestVocabulary:
    """Tests for the built-in vocabulary."""

    def test_nine_types(self) -> None:
        assert len(DONATION_TYPES) == 9
        assert {dt.type for dt in DONATION_TYPES} >= {"御霊前", "御仏前", "御花料"}

    def test_ceremonial_pattern_covers_vocabulary(self) -> None:
        pattern = ceremonial_pattern()
        for dt in DONATION_TYPES:
            assert pattern.search(dt.type)
        assert pattern.search("御布施")
        assert not pattern.search("山田太郎")


class TestClassifyDonationType:
    """Tests for whole-text and top-section classification."""

    def test_whole_text_match(self) -> None:
        result = classify_donation_type("山田太郎\n御仏前")
        assert result.type == "御仏前"
        assert result.category == "仏式（四十九日後）"
        assert result.confidence == 0.9
        assert result.position is None

    def test_hiragana_honorific(self) -> None:
        result = classify_donation_type("ご霊前")
        assert result.type == "御霊前"

    def test_full_width_input_normalized(self) -> None:
        result = classify_donation_type("「御花料」")
        assert result.type == "御花料"
        assert result.category == "キリスト教式"

    def test_no_match(self) -> None:
        result = classify_donation_type("山田太郎")
        assert result.type == ""
        assert result.category == ""
        assert result.confidence == 0
        assert not result.found

    def test_empty_front(self) -> None:
        result = classify_donation_type(None)
        assert not result.found

    def test_top_section_fallback(self) -> None:
        fragments = _fragments(["御玉串料", "山田", "太郎"])
        result = classify_donation_type("", fragments)
        assert result.type == "御玉串料"
        assert result.category == "神式"
        assert result.confidence == 0.85
        assert result.position == TOP_SECTION

    def test_top_section_sorted_by_position(self) -> None:
        fragments = [
            PositionedFragment(text="山田", top=300.0),
            PositionedFragment(text="御香典", top=10.0),
        ]
        result = classify_donation_type("", fragments)
        assert result.type == "御香典"

    def test_fragment_below_top_section_ignored(self) -> None:
        # 20 fragments: the top section is the first 6.
        texts = ["山田"] * 20
        texts[10] = "御霊前"
        result = classify_donation_type("", _fragments(texts))
        assert not result.found

    def test_minimum_top_fragments(self) -> None:
        # 30% of 8 is 2, but at least 5 fragments are inspected.
        texts = ["山田"] * 8
        texts[4] = "御霊前"
        result = classify_donation_type("", _fragments(texts))
        assert result.type == "御霊前"


class TestDonationTypeClassifier:
    """Tests for classifier configuration."""

    def test_top_fragments_count(self) -> None:
        classifier = DonationTypeClassifier()
        assert len(classifier.top_fragments(_fragments(["x"] * 20))) == 6
        assert len(classifier.top_fragments(_fragments(["x"] * 3))) == 3

    def test_from_config(self) -> None:
        config = ExtractionConfig(top_section_ratio=0.5, min_top_fragments=1)
        classifier = DonationTypeClassifier.from_config(config)
        assert classifier.top_section_ratio == 0.5
        assert len(classifier.top_fragments(_fragments(["x"] * 10))) == 5

    def test_vocabulary_from_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "types.yaml"
        path.write_text(
            yaml.dump(
                [{"type": "御布施", "category": "仏式", "variants": ["お布施"]}],
                allow_unicode=True,
            ),
            encoding="utf-8",
        )
        classifier = DonationTypeClassifier(vocabulary_path=path)
        assert [dt.type for dt in classifier.vocabulary] == ["御布施"]
        result = classifier.classify("お布施")
        assert result.type == "御布施"
        assert result.category == "仏式"

    def test_missing_vocabulary_file_uses_defaults(self, tmp_path: Path) -> None:
        classifier = DonationTypeClassifier(vocabulary_path=tmp_path / "missing.yaml")
        assert len(classifier.vocabulary) == len(DONATION_TYPES)
