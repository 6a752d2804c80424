"""Tests for the recognition engine and layout grouping."""

from unittest.mock import MagicMock, patch

import numpy as np

from koden_ocr.extraction.models import PositionedFragment
from koden_ocr.ocr.layout_analyzer import LayoutAnalyzer
from koden_ocr.ocr.tesseract_engine import (
    BoundingBox,
    OCRWord,
    RecognitionResult,
    TesseractEngine,
)


def _make_ocr_word(
    text: str = "山",
    x: int = 10,
    y: int = 10,
    width: int = 20,
    height: int = 20,
    confidence: float = 0.9,
    block_num: int = 1,
    par_num: int = 1,
    line_num: int = 1,
    word_num: int = 1,
) -> OCRWord:
    """Create a test OCRWord with defaults."""
    return OCRWord(
        text=text,
        bbox=BoundingBox(x=x, y=y, width=width, height=height),
        confidence=confidence,
        block_num=block_num,
        par_num=par_num,
        line_num=line_num,
        word_num=word_num,
    )


def _mock_tesseract_data() -> dict:
    """Create mock pytesseract output data for a two-line front face."""
    return {
        "text": ["", "御", "霊前", "", "山田"],
        "conf": [-1, 95, 88, -1, 72],
        "left": [0, 100, 130, 0, 100],
        "top": [0, 10, 12, 0, 200],
        "width": [0, 30, 60, 0, 60],
        "height": [0, 30, 30, 0, 30],
        "block_num": [0, 1, 1, 0, 2],
        "par_num": [0, 1, 1, 0, 1],
        "line_num": [0, 1, 1, 0, 1],
        "word_num": [0, 1, 2, 0, 1],
    }


class TestBoundingBox:
    """Tests for the BoundingBox data class."""

    def test_creation(self) -> None:
        bbox = BoundingBox(x=10, y=20, width=100, height=50)
        assert bbox.x == 10
        assert bbox.y == 20
        assert bbox.width == 100
        assert bbox.height == 50


class TestTesseractEngine:
    """Tests for the TesseractEngine class (mocked)."""

    @patch("koden_ocr.ocr.tesseract_engine.pytesseract")
    def test_recognize(self, mock_pytesseract: MagicMock) -> None:
        mock_pytesseract.image_to_string.return_value = "御霊前\n山田\n"
        mock_pytesseract.image_to_data.return_value = _mock_tesseract_data()
        mock_pytesseract.Output.DICT = "dict"

        engine = TesseractEngine()
        image = np.zeros((300, 200), dtype=np.uint8)
        result = engine.recognize(image)

        assert isinstance(result, RecognitionResult)
        assert result.text == "御霊前\n山田\n"
        assert [w.text for w in result.words] == ["御", "霊前", "山田"]
        assert result.language == "jpn"
        assert 0.0 <= result.confidence <= 1.0
        assert result.words[0].confidence == 0.95

    @patch("koden_ocr.ocr.tesseract_engine.pytesseract")
    def test_recognize_passes_lang_and_psm(self, mock_pytesseract: MagicMock) -> None:
        mock_pytesseract.image_to_string.return_value = ""
        mock_pytesseract.image_to_data.return_value = {
            "text": [],
            "conf": [],
            "left": [],
            "top": [],
            "width": [],
            "height": [],
            "block_num": [],
            "line_num": [],
            "word_num": [],
        }
        mock_pytesseract.Output.DICT = "dict"

        engine = TesseractEngine(default_lang="jpn", default_psm=6)
        result = engine.recognize(np.zeros((50, 50), dtype=np.uint8), lang="jpn_vert", psm=5)

        assert result.words == []
        assert result.confidence == 0.0
        assert result.language == "jpn_vert"
        _, kwargs = mock_pytesseract.image_to_string.call_args
        assert kwargs["lang"] == "jpn_vert"
        assert kwargs["config"] == "--psm 5"

    @patch("koden_ocr.ocr.tesseract_engine.pytesseract")
    def test_custom_tesseract_cmd(self, mock_pytesseract: MagicMock) -> None:
        TesseractEngine(tesseract_cmd="/opt/tesseract/bin/tesseract")
        assert (
            mock_pytesseract.pytesseract.tesseract_cmd
            == "/opt/tesseract/bin/tesseract"
        )

    def test_collect_words_without_par_num(self) -> None:
        data = _mock_tesseract_data()
        del data["par_num"]
        words = TesseractEngine()._collect_words(data)
        assert len(words) == 3
        assert all(w.par_num == 0 for w in words)


class TestLayoutAnalyzer:
    """Tests for grouping words into positioned line fragments."""

    def setup_method(self) -> None:
        self.analyzer = LayoutAnalyzer()

    def test_empty_words(self) -> None:
        assert self.analyzer.line_fragments([]) == []

    def test_words_joined_per_line(self) -> None:
        words = [
            _make_ocr_word("霊前", x=130, y=12, width=60, word_num=2),
            _make_ocr_word("御", x=100, y=10, width=30, word_num=1),
        ]
        fragments = self.analyzer.line_fragments(words)
        assert len(fragments) == 1
        fragment = fragments[0]
        assert isinstance(fragment, PositionedFragment)
        assert fragment.text == "御霊前"
        assert fragment.top == 10
        assert fragment.left == 100
        assert fragment.width == 90
        assert fragment.height == 22

    def test_fragments_sorted_top_first(self) -> None:
        words = [
            _make_ocr_word("山田", y=200, block_num=2),
            _make_ocr_word("御霊前", y=10, block_num=1),
        ]
        fragments = self.analyzer.line_fragments(words)
        assert [f.text for f in fragments] == ["御霊前", "山田"]

    def test_fragment_confidence_is_mean(self) -> None:
        words = [
            _make_ocr_word("御", confidence=0.8, word_num=1),
            _make_ocr_word("霊", confidence=0.6, word_num=2),
        ]
        fragments = self.analyzer.line_fragments(words)
        assert abs(fragments[0].confidence - 0.7) < 1e-9

    def test_custom_joiner(self) -> None:
        analyzer = LayoutAnalyzer(joiner=" ")
        words = [
            _make_ocr_word("山田", word_num=1),
            _make_ocr_word("太郎", word_num=2),
        ]
        assert analyzer.line_fragments(words)[0].text == "山田 太郎"
