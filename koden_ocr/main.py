"""Application entry point for the envelope OCR API server."""

import uvicorn

from koden_ocr.api.app import app
from koden_ocr.utils.config import load_config
from koden_ocr.utils.logger import setup_logging


def main() -> None:
    """Start the FastAPI application server."""
    config = load_config()
    setup_logging(config.log_level)
    uvicorn.run(app, host="0.0.0.0", port=8000, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
