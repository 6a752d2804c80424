"""Shared test fixtures for the envelope OCR test suite."""

import io
from pathlib import Path

import numpy as np
import pytest
from PIL import Image


@pytest.fixture
def sample_image() -> np.ndarray:
    """Create a simple synthetic grayscale test image."""
    image = np.zeros((200, 300), dtype=np.uint8)
    image[50:150, 50:250] = 255
    return image


@pytest.fixture
def sample_color_image() -> np.ndarray:
    """Create a simple synthetic RGB test image."""
    image = np.zeros((200, 300, 3), dtype=np.uint8)
    image[50:150, 50:250] = (255, 255, 255)
    return image


@pytest.fixture
def png_bytes() -> bytes:
    """Encode a small white-on-black image as PNG bytes."""
    image = np.zeros((100, 200, 3), dtype=np.uint8)
    image[20:80, 40:160] = 255
    buf = io.BytesIO()
    Image.fromarray(image).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def envelope_faces() -> dict[str, str]:
    """Recognized text of a typical four-face envelope."""
    return {
        "front": "御霊前\n山田 太郎",
        "back": "〒105-0011\n東京都港区芝公園4-2-8\n山田 太郎",
        "innerFront": "金 壱萬円",
        "innerBack": "",
    }


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"
