"""PDF rendering for envelope faces supplied as scanned PDFs."""

from pathlib import Path

import numpy as np
from pdf2image import convert_from_bytes, convert_from_path

from koden_ocr.utils.logger import get_logger

logger = get_logger(__name__)


class PDFHandler:
    """Renders the first page of a PDF as a face image.

    Args:
        dpi: Rendering resolution.
    """

    def __init__(self, dpi: int = 300) -> None:
        self.dpi = dpi

    def first_page(self, pdf_source: Path | bytes) -> np.ndarray:
        """Render the first page of a PDF.

        Args:
            pdf_source: Path to a PDF file or raw PDF bytes.

        Returns:
            The page as an RGB numpy array.

        Raises:
            FileNotFoundError: If a path is given and the file does not exist.
            RuntimeError: If the PDF cannot be rendered or has no pages.
        """
        try:
            if isinstance(pdf_source, str | Path):
                path = Path(pdf_source)
                if not path.exists():
                    raise FileNotFoundError(f"PDF file not found: {path}")
                pages = convert_from_path(
                    str(path), dpi=self.dpi, first_page=1, last_page=1
                )
            else:
                pages = convert_from_bytes(
                    pdf_source, dpi=self.dpi, first_page=1, last_page=1
                )
        except FileNotFoundError:
            raise
        except Exception as exc:
            raise RuntimeError(f"PDF conversion failed: {exc}") from exc

        if not pages:
            raise RuntimeError("PDF conversion produced no pages")
        logger.info("Rendered PDF face at %d DPI", self.dpi)
        return np.array(pages[0].convert("RGB"))
