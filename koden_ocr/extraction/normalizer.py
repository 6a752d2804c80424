"""Text normalization for raw recognized face text.

Folds width variants, strips decorative brackets, unifies dashes and
collapses whitespace so the field patterns see one canonical form.
"""

import re
import unicodedata

from koden_ocr.utils.logger import get_logger

from .models import FACES, FaceText, validate_faces

logger = get_logger(__name__)

_DECORATIONS = "「」『』【】〔〕〈〉《》〘〙〚〛\"'“”‘’〝〟"
_DECORATION_TABLE = str.maketrans("", "", _DECORATIONS)

# Dash variants left after NFKC folding.
_DASH_RE = re.compile("[‐‑‒–—―⁃−]")
# Prolonged-sound mark misread inside house numbers, e.g. 1ー2ー3.
_DIGIT_DASH_RE = re.compile(r"(?<=\d)ー(?=\d)")
_SPACE_RE = re.compile(r"[^\S\n]+")


def normalize_text(text: str | None) -> str:
    """Clean one face's raw text into its canonical form.

    The result is stable under repeated application.

    Args:
        text: Raw recognized text, or ``None`` for an absent face.

    Returns:
        Normalized text; empty string for absent or blank input.
    """
    if not text:
        return ""
    text = unicodedata.normalize("NFKC", text)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = text.translate(_DECORATION_TABLE)
    text = _DASH_RE.sub("-", text)
    text = _DIGIT_DASH_RE.sub("-", text)
    lines = (_SPACE_RE.sub(" ", line).strip() for line in text.split("\n"))
    return "\n".join(line for line in lines if line)


def normalize_faces(face_text: FaceText) -> dict[str, str]:
    """Normalize every face of an envelope.

    Args:
        face_text: Raw text keyed by face identifier; faces may be missing.

    Returns:
        Mapping with all four faces present, absent faces as ``""``.

    Raises:
        UnknownFaceError: If ``face_text`` has a key that is not a face.
    """
    validate_faces(face_text)
    normalized = {face: normalize_text(face_text.get(face)) for face in FACES}
    logger.debug(
        "Normalized faces: %s",
        {face: len(text) for face, text in normalized.items()},
    )
    return normalized
