"""Tests for the rule-based field extractors."""

import re

from koden_ocr.extraction.models import FACES
from koden_ocr.extraction.rule_extractor import (
    AMOUNT_PATTERNS,
    COMBINED,
    FieldPattern,
    RuleExtractor,
    face_pairs,
    first_match,
)


def _faces(**texts: str) -> dict[str, str]:
    """Build a normalized face map with every face present."""
    return {face: texts.get(face, "") for face in FACES}


class TestFirstMatch:
    """Tests for the generic first-match combinator."""

    def setup_method(self) -> None:
        self.digits = FieldPattern("digits", re.compile(r"\d+"), 0.5)
        self.word = FieldPattern("word", re.compile(r"[a-z]+"), 0.4)

    def test_face_major_order(self) -> None:
        pairs = face_pairs(["front", "back"], [self.digits, self.word])
        assert [(f, p.name) for f, p in pairs] == [
            ("front", "digits"),
            ("front", "word"),
            ("back", "digits"),
            ("back", "word"),
        ]

    def test_first_face_wins(self) -> None:
        texts = {"front": "abc", "back": "123"}
        result = first_match(
            "x", face_pairs(["front", "back"], [self.digits, self.word]), texts
        )
        assert result is not None
        assert result.face == "front"
        assert result.pattern == "word"
        assert result.value == "abc"

    def test_empty_conversion_is_not_a_hit(self) -> None:
        texts = {"front": "abc 42"}
        result = first_match(
            "x",
            face_pairs(["front"], [self.word, self.digits]),
            texts,
            convert=lambda raw: raw if raw.isdigit() else "",
        )
        assert result is not None
        assert result.value == "42"

    def test_no_match_returns_none(self) -> None:
        assert first_match("x", face_pairs(["front"], [self.digits]), {"front": ""}) is None

    def test_longest_preferred(self) -> None:
        pattern = FieldPattern("word", re.compile(r"[a-z]+"), 0.4, longest=True)
        found = pattern.find("ab abcd abc")
        assert found is not None
        assert found[0] == "abcd"


class TestAmountExtraction:
    """Tests for amount and enclosed amount extraction."""

    def setup_method(self) -> None:
        self.extractor = RuleExtractor()

    def test_kin_yen_with_commas(self) -> None:
        result = self.extractor.extract_amount(_faces(front="御霊前\n金 10,000円"))
        assert result is not None
        assert result.value == "10000"
        assert result.face == "front"
        assert result.pattern == "kin_yen"

    def test_ceremonial_numerals(self) -> None:
        result = self.extractor.extract_amount(_faces(innerFront="金参萬円也"))
        assert result is not None
        assert result.value == "30000"
        assert result.face == "innerFront"

    def test_yen_without_kin(self) -> None:
        result = self.extractor.extract_amount(_faces(back="五千円"))
        assert result is not None
        assert result.value == "5000"
        assert result.pattern == "yen"

    def test_yen_sign(self) -> None:
        result = self.extractor.extract_amount(_faces(innerBack="¥3,000"))
        assert result is not None
        assert result.value == "3000"

    def test_labeled_amount(self) -> None:
        result = self.extractor.extract_amount(_faces(innerFront="金額 20000"))
        assert result is not None
        assert result.value == "20000"
        assert result.pattern == "kingaku"

    def test_source_face_mapped_from_combined_text(self) -> None:
        texts = _faces(front="御霊前", back="山田 太郎", innerFront="金五千円")
        result = self.extractor.extract_amount(texts)
        assert result is not None
        assert result.face == "innerFront"
        assert result.face != COMBINED

    def test_no_amount(self) -> None:
        assert self.extractor.extract_amount(_faces(front="御霊前\n山田太郎")) is None

    def test_lump_sum_has_no_amount(self) -> None:
        assert self.extractor.extract_amount(_faces(front="金一封\n山田太郎")) is None

    def test_bare_kin_amount(self) -> None:
        result = self.extractor.extract_amount(_faces(innerFront="金 五千"))
        assert result is not None
        assert result.value == "5000"
        assert result.pattern == "kin"

    def test_enclosed_amount_only_inner_front(self) -> None:
        texts = _faces(front="金一万円", innerFront="金五千円")
        result = self.extractor.extract_enclosed_amount(texts)
        assert result is not None
        assert result.value == "5000"
        assert self.extractor.extract_enclosed_amount(_faces(front="金一万円")) is None

    def test_amount_patterns_ordered_by_confidence(self) -> None:
        confidences = [p.confidence for p in AMOUNT_PATTERNS]
        assert confidences == sorted(confidences, reverse=True)


class TestTitleExtraction:
    """Tests for title/position extraction."""

    def setup_method(self) -> None:
        self.extractor = RuleExtractor()

    def test_longest_title_wins(self) -> None:
        texts = _faces(front="株式会社山田商事 代表取締役 山田太郎")
        result = self.extractor.extract_title(texts)
        assert result is not None
        assert result.value == "代表取締役"

    def test_title_must_be_bounded(self) -> None:
        # 部長 inside a longer token is not a title.
        assert self.extractor.extract_title(_faces(front="営業部長谷川")) is None

    def test_inner_front_excluded(self) -> None:
        assert self.extractor.extract_title(_faces(innerFront="社長 山田")) is None

    def test_title_on_back(self) -> None:
        result = self.extractor.extract_title(_faces(front="御霊前", back="山田工業 社長\n山田一郎"))
        assert result is not None
        assert result.value == "社長"
        assert result.face == "back"

    def test_amount_only_face_skipped(self) -> None:
        assert self.extractor.is_amount_only("金壱萬円")
        assert self.extractor.is_amount_only("¥5,000")
        assert not self.extractor.is_amount_only("山田 太郎")


class TestOrganizationExtraction:
    """Tests for organization name extraction."""

    def setup_method(self) -> None:
        self.extractor = RuleExtractor()

    def test_corporate_prefix(self) -> None:
        texts = _faces(front="株式会社山田商事 代表取締役 山田太郎")
        found = self.extractor.extract_organizations(texts, "代表取締役")
        assert list(found) == ["front"]
        assert "山田商事" in found["front"].value
        assert "代表取締役" not in found["front"].value

    def test_corporate_suffix_abbreviation(self) -> None:
        found = self.extractor.extract_organizations(_faces(back="山田建設(株)"))
        assert found["back"].value == "山田建設(株)"

    def test_business_suffix(self) -> None:
        found = self.extractor.extract_organizations(_faces(front="御霊前\n田中工務店"))
        assert found["front"].value == "田中工務店"
        assert found["front"].pattern == "business_suffix"

    def test_department_suffix(self) -> None:
        found = self.extractor.extract_organizations(_faces(front="総務部\n山田 太郎"))
        assert found["front"].value == "総務部"
        assert found["front"].pattern == "unit_suffix"

    def test_surname_ending_in_suffix_is_not_organization(self) -> None:
        for text in ("御霊前\n長谷部 誠", "御霊前\n日下部 花子", "矢田部 一郎"):
            assert self.extractor.extract_organizations(_faces(front=text)) == {}

    def test_ceremonial_phrase_not_part_of_name(self) -> None:
        found = self.extractor.extract_organizations(_faces(front="御霊前 鈴木商店"))
        assert found["front"].value == "鈴木商店"

    def test_no_organization(self) -> None:
        assert self.extractor.extract_organizations(_faces(front="御霊前\n山田 太郎")) == {}


class TestPersonalNameExtraction:
    """Tests for personal name extraction."""

    def setup_method(self) -> None:
        self.extractor = RuleExtractor()

    def test_surname_and_given_name(self) -> None:
        result = self.extractor.extract_personal_name(_faces(front="御霊前\n山田 太郎"))
        assert result is not None
        assert result.value == "山田 太郎"
        assert result.pattern == "surname_given"

    def test_ceremonial_phrase_stripped(self) -> None:
        result = self.extractor.extract_personal_name(_faces(front="御霊前山田太郎"))
        assert result is not None
        assert result.value == "山田太郎"

    def test_labeled_name(self) -> None:
        result = self.extractor.extract_personal_name(_faces(back="氏名:佐藤花子"))
        assert result is not None
        assert result.value == "佐藤花子"
        assert result.pattern == "labeled"

    def test_face_with_organization_skipped(self) -> None:
        texts = _faces(front="株式会社山田商事 山田太郎", back="佐藤 花子")
        result = self.extractor.extract_personal_name(texts, ["front"])
        assert result is not None
        assert result.face == "back"
        assert result.value == "佐藤 花子"

    def test_amount_and_address_not_names(self) -> None:
        texts = _faces(back="東京都港区芝公園4-2-8\n金五千円\n高橋 一郎")
        result = self.extractor.extract_personal_name(texts)
        assert result is not None
        assert result.value == "高橋 一郎"

    def test_honorific_stripped(self) -> None:
        result = self.extractor.extract_personal_name(_faces(front="山田花子様"))
        assert result is not None
        assert result.value == "山田花子"

    def test_no_name(self) -> None:
        assert self.extractor.extract_personal_name(_faces(front="御霊前")) is None


class TestAddressExtraction:
    """Tests for address extraction."""

    def setup_method(self) -> None:
        self.extractor = RuleExtractor()

    def test_prefecture_address(self) -> None:
        result = self.extractor.extract_address(_faces(back="東京都港区芝公園4-2-8\n山田 太郎"))
        assert result is not None
        assert result.value == "東京都港区芝公園4-2-8"
        assert result.pattern == "prefecture"

    def test_postal_code_address(self) -> None:
        result = self.extractor.extract_address(_faces(innerBack="〒530-0001 梅田1-1-1"))
        assert result is not None
        assert result.value == "梅田1-1-1"

    def test_labeled_address(self) -> None:
        result = self.extractor.extract_address(_faces(back="住所:港区芝公園"))
        assert result is not None
        assert result.value == "港区芝公園"
        assert result.pattern == "label"

    def test_back_preferred_over_front(self) -> None:
        texts = _faces(front="大阪府大阪市北区梅田1-1", back="京都府京都市東山区1-2")
        result = self.extractor.extract_address(texts)
        assert result is not None
        assert result.face == "back"
        assert result.value.startswith("京都府")
