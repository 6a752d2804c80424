"""Tesseract recognition engine for envelope face images.

Returns the recognized text of one face together with word boxes and
confidence scores.
"""

from dataclasses import dataclass

import numpy as np
import pytesseract
from PIL import Image

from koden_ocr.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class BoundingBox:
    """Axis-aligned bounding box for a detected element."""

    x: int
    y: int
    width: int
    height: int


@dataclass
class OCRWord:
    """A single recognized word with position and confidence."""

    text: str
    bbox: BoundingBox
    confidence: float
    block_num: int
    par_num: int
    line_num: int
    word_num: int


@dataclass
class RecognitionResult:
    """Recognition output for one envelope face."""

    text: str
    words: list[OCRWord]
    language: str
    confidence: float


class TesseractEngine:
    """Wrapper around Tesseract for envelope text recognition.

    Args:
        tesseract_cmd: Path to the Tesseract executable.
            If ``None``, uses the system default.
        default_lang: Default language pack, ``jpn`` for envelopes.
        default_psm: Default page segmentation mode.
    """

    def __init__(
        self,
        tesseract_cmd: str | None = None,
        default_lang: str = "jpn",
        default_psm: int = 6,
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.default_lang = default_lang
        self.default_psm = default_psm

    def recognize(
        self,
        image: np.ndarray,
        lang: str | None = None,
        psm: int | None = None,
    ) -> RecognitionResult:
        """Recognize the text of one face image.

        Args:
            image: Face image as a numpy array.
            lang: Tesseract language code. Defaults to the engine default.
            psm: Page segmentation mode. Defaults to the engine default.

        Returns:
            Full text, word details and mean confidence.

        Raises:
            pytesseract.TesseractError: If Tesseract fails on the image.
        """
        lang = lang or self.default_lang
        config = f"--psm {psm if psm is not None else self.default_psm}"

        pil_image = Image.fromarray(image)
        text = pytesseract.image_to_string(pil_image, lang=lang, config=config)
        data = pytesseract.image_to_data(
            pil_image,
            lang=lang,
            config=config,
            output_type=pytesseract.Output.DICT,
        )

        words = self._collect_words(data)
        avg_conf = sum(w.confidence for w in words) / len(words) if words else 0.0

        logger.info(
            "Recognized %d words with average confidence %.2f",
            len(words),
            avg_conf,
        )
        return RecognitionResult(
            text=text,
            words=words,
            language=lang,
            confidence=avg_conf,
        )

    def _collect_words(self, data: dict) -> list[OCRWord]:
        """Convert ``image_to_data`` output into words, dropping empty boxes."""
        words: list[OCRWord] = []
        par_nums = data.get("par_num") or [0] * len(data["text"])
        for i in range(len(data["text"])):
            conf = float(data["conf"][i])
            word_text = str(data["text"][i]).strip()
            if conf <= 0 or not word_text:
                continue
            words.append(
                OCRWord(
                    text=word_text,
                    bbox=BoundingBox(
                        x=data["left"][i],
                        y=data["top"][i],
                        width=data["width"][i],
                        height=data["height"][i],
                    ),
                    confidence=conf / 100.0,
                    block_num=data["block_num"][i],
                    par_num=par_nums[i],
                    line_num=data["line_num"][i],
                    word_num=data["word_num"][i],
                )
            )
        return words
