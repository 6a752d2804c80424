"""Image preprocessing for envelope face photographs.

Phone photos of envelopes are large, unevenly lit and often shot on
patterned paper. The pipeline scales them down, converts to grayscale,
smooths paper texture and lifts contrast before recognition.
"""

import cv2
import numpy as np

from koden_ocr.utils.config import PreprocessingConfig
from koden_ocr.utils.logger import get_logger

logger = get_logger(__name__)


def resize_to_limit(image: np.ndarray, max_dimension: int) -> np.ndarray:
    """Scale an image down so its longest side is at most ``max_dimension``.

    Images already within the limit are returned unchanged.
    """
    h, w = image.shape[:2]
    longest = max(h, w)
    if longest <= max_dimension:
        return image
    scale = max_dimension / longest
    size = (max(1, round(w * scale)), max(1, round(h * scale)))
    logger.debug("Resizing %dx%d to %dx%d", w, h, size[0], size[1])
    return cv2.resize(image, size, interpolation=cv2.INTER_AREA)


def to_gray(image: np.ndarray) -> np.ndarray:
    """Convert an RGB, RGBA or grayscale image to grayscale."""
    if image.ndim == 2:
        return image
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_RGBA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)


def denoise(image: np.ndarray, method: str = "bilateral") -> np.ndarray:
    """Smooth paper texture while keeping brush strokes sharp.

    Raises:
        ValueError: If an unsupported method is specified.
    """
    if method == "bilateral":
        return cv2.bilateralFilter(image, 9, 75, 75)
    if method == "gaussian":
        return cv2.GaussianBlur(image, (5, 5), 0)
    raise ValueError(f"Unsupported denoise method: {method}")


def enhance_contrast(
    image: np.ndarray, clip_limit: float = 2.0, tile_size: int = 8
) -> np.ndarray:
    """Apply CLAHE to even out lighting across the envelope."""
    clahe = cv2.createCLAHE(clipLimit=clip_limit, tileGridSize=(tile_size, tile_size))
    return clahe.apply(image)


def binarize(image: np.ndarray, method: str = "adaptive") -> np.ndarray:
    """Threshold a grayscale image to black ink on white paper.

    Raises:
        ValueError: If an unsupported method is specified.
    """
    if method == "adaptive":
        return cv2.adaptiveThreshold(
            image, 255, cv2.ADAPTIVE_THRESH_GAUSSIAN_C, cv2.THRESH_BINARY, 31, 10
        )
    if method == "otsu":
        _, result = cv2.threshold(image, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
        return result
    raise ValueError(f"Unsupported binarize method: {method}")


class PreprocessingPipeline:
    """Configurable preprocessing applied to every face before recognition.

    Args:
        config: Preprocessing configuration controlling which steps to apply.
    """

    def __init__(self, config: PreprocessingConfig) -> None:
        self.config = config

    def process(self, image: np.ndarray) -> np.ndarray:
        """Run the configured steps on one face image.

        Args:
            image: Face image (RGB, RGBA or grayscale).

        Returns:
            Processed grayscale image.
        """
        result = resize_to_limit(image, self.config.max_dimension)
        result = to_gray(result)

        if self.config.denoise_enabled:
            result = denoise(result, method=self.config.denoise_method)

        if self.config.contrast_enabled:
            result = enhance_contrast(
                result,
                clip_limit=self.config.clahe_clip_limit,
                tile_size=self.config.clahe_tile_size,
            )

        if self.config.binarize_enabled:
            result = binarize(result, method=self.config.binarize_method)

        logger.debug("Preprocessed face image to %dx%d", result.shape[1], result.shape[0])
        return result
