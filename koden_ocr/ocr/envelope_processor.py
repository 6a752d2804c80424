"""Recognition of all photographed faces of one envelope.

Loads each face (image or PDF, from a path or bytes), preprocesses it and
runs recognition, with faces handled concurrently. Faces that fail are
logged and treated as absent so the rest of the envelope still extracts.
"""

import io
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

import cv2
import numpy as np
import pytesseract
from PIL import Image, ImageOps

from koden_ocr.extraction.models import (
    FACES,
    FRONT,
    ExtractionResult,
    PositionedFragment,
    validate_faces,
)
from koden_ocr.extraction.pipeline import EnvelopeExtractor
from koden_ocr.preprocessing.pipeline import PreprocessingPipeline
from koden_ocr.utils.config import AppConfig
from koden_ocr.utils.logger import get_logger

from .layout_analyzer import LayoutAnalyzer
from .pdf_handler import PDFHandler
from .tesseract_engine import TesseractEngine

logger = get_logger(__name__)

FaceSource = Path | bytes

_FACE_ERRORS = (
    OSError,
    RuntimeError,
    ValueError,
    cv2.error,
    pytesseract.TesseractError,
)


@dataclass
class EnvelopeScan:
    """Recognized text of every face of one envelope.

    Faces that were not supplied are missing from every mapping; faces that
    failed appear only in ``failures`` with the error message.
    """

    face_text: dict[str, str] = field(default_factory=dict)
    fragments: dict[str, list[PositionedFragment]] = field(default_factory=dict)
    confidences: dict[str, float] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)


class EnvelopeProcessor:
    """Recognizes envelope faces and feeds them to the extraction pipeline.

    Args:
        config: Application configuration object.
    """

    def __init__(self, config: AppConfig) -> None:
        self.config = config
        self.pdf_handler = PDFHandler(dpi=config.ocr.pdf_dpi)
        self.preprocessing = PreprocessingPipeline(config.preprocessing)
        self.ocr_engine = TesseractEngine(
            tesseract_cmd=config.ocr.tesseract_cmd,
            default_lang=config.ocr.default_lang,
            default_psm=config.ocr.psm,
        )
        self.layout_analyzer = LayoutAnalyzer()
        self.extractor = EnvelopeExtractor(config.extraction)

    def scan(self, sources: Mapping[str, FaceSource]) -> EnvelopeScan:
        """Recognize every supplied face, waiting for all to settle.

        Args:
            sources: Face image path or bytes keyed by face identifier.

        Returns:
            Recognized text, line fragments and failures per face.

        Raises:
            UnknownFaceError: If ``sources`` has a key that is not a face.
        """
        validate_faces(sources)
        faces = [face for face in FACES if sources.get(face) is not None]
        scan = EnvelopeScan()
        if not faces:
            return scan

        workers = min(self.config.ocr.max_workers, len(faces))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                face: executor.submit(self._recognize_face, face, sources[face])
                for face in faces
            }
            for face, future in futures.items():
                try:
                    text, fragments, confidence = future.result()
                except _FACE_ERRORS as exc:
                    logger.warning("Recognition failed for %s: %s", face, exc)
                    scan.failures[face] = str(exc)
                    continue
                scan.face_text[face] = text
                scan.fragments[face] = fragments
                scan.confidences[face] = confidence

        logger.info(
            "Recognized %d of %d faces", len(scan.face_text), len(faces)
        )
        return scan

    def process(
        self, sources: Mapping[str, FaceSource]
    ) -> tuple[EnvelopeScan, ExtractionResult]:
        """Recognize the faces and extract the donation record."""
        scan = self.scan(sources)
        result = self.extractor.extract(scan.face_text, scan.fragments.get(FRONT))
        return scan, result

    def _recognize_face(
        self, face: str, source: FaceSource
    ) -> tuple[str, list[PositionedFragment], float]:
        image = self._load_image(source)
        processed = self.preprocessing.process(image)
        recognition = self.ocr_engine.recognize(processed)
        fragments = self.layout_analyzer.line_fragments(recognition.words)
        logger.debug("Face %s: %d characters", face, len(recognition.text))
        return recognition.text, fragments, recognition.confidence

    def _load_image(self, source: FaceSource) -> np.ndarray:
        """Load a face image from a path or bytes, rendering PDFs.

        Camera EXIF orientation is applied so vertical writing stays upright.
        """
        if isinstance(source, bytes):
            if source[:4] == b"%PDF":
                return self.pdf_handler.first_page(source)
            img = Image.open(io.BytesIO(source))
        else:
            path = Path(source)
            if path.suffix.lower() == ".pdf":
                return self.pdf_handler.first_page(path)
            img = Image.open(path)

        img = ImageOps.exif_transpose(img)
        return np.array(img.convert("RGB"))
