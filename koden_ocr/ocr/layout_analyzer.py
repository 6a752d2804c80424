"""Layout grouping of recognized words into positioned line fragments.

The donation-type inscription sits in the upper part of the envelope
front, above the mizuhiki cord; line fragments with their vertical
position let the classifier look there first.
"""

from koden_ocr.extraction.models import PositionedFragment
from koden_ocr.utils.logger import get_logger

from .tesseract_engine import BoundingBox, OCRWord

logger = get_logger(__name__)


class LayoutAnalyzer:
    """Groups OCR words into lines ordered from the top of the image.

    Args:
        joiner: String placed between words of one line. Japanese text
            is recognized character by character, so the default is empty.
    """

    def __init__(self, joiner: str = "") -> None:
        self.joiner = joiner

    def line_fragments(self, words: list[OCRWord]) -> list[PositionedFragment]:
        """Group words by (block, paragraph, line) into fragments.

        Args:
            words: Recognized words of one face.

        Returns:
            Line fragments sorted by vertical position, topmost first.
        """
        if not words:
            return []

        lines: dict[tuple[int, int, int], list[OCRWord]] = {}
        for word in words:
            key = (word.block_num, word.par_num, word.line_num)
            lines.setdefault(key, []).append(word)

        fragments: list[PositionedFragment] = []
        for line_words in lines.values():
            line_words.sort(key=lambda w: w.word_num)
            bbox = self._enclosing_bbox(line_words)
            fragments.append(
                PositionedFragment(
                    text=self.joiner.join(w.text for w in line_words),
                    top=bbox.y,
                    left=bbox.x,
                    width=bbox.width,
                    height=bbox.height,
                    confidence=sum(w.confidence for w in line_words) / len(line_words),
                )
            )

        fragments.sort(key=lambda f: (f.top, f.left))
        logger.debug("Grouped %d words into %d lines", len(words), len(fragments))
        return fragments

    def _enclosing_bbox(self, words: list[OCRWord]) -> BoundingBox:
        """Calculate the bounding box that encloses all words of a line."""
        x_min = min(w.bbox.x for w in words)
        y_min = min(w.bbox.y for w in words)
        x_max = max(w.bbox.x + w.bbox.width for w in words)
        y_max = max(w.bbox.y + w.bbox.height for w in words)
        return BoundingBox(x_min, y_min, x_max - x_min, y_max - y_min)
