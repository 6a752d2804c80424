"""FastAPI application for the condolence envelope OCR API.

Provides REST endpoints for envelope extraction from face images or from
already recognized text, donation-type classification, vocabulary listing
and health checks.
"""

import shutil
import time
import uuid
from typing import Annotated

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from koden_ocr import __version__
from koden_ocr.extraction.models import (
    BACK,
    FRONT,
    INNER_BACK,
    INNER_FRONT,
    ExtractionResult,
    PositionedFragment,
    UnknownFaceError,
)
from koden_ocr.ocr.envelope_processor import EnvelopeProcessor
from koden_ocr.utils.config import load_config
from koden_ocr.utils.logger import get_logger
from koden_ocr.validation.rules_engine import RulesEngine

from .schemas import (
    ClassifyRequest,
    DonationTypeInfo,
    DonationTypeResponse,
    DonationTypesResponse,
    ExtractionResponse,
    FragmentPayload,
    HealthResponse,
    RecordResponse,
    TextExtractionRequest,
    ValidationResultResponse,
)

logger = get_logger(__name__)

app = FastAPI(
    title="Condolence Envelope OCR API",
    description="Extract donor records from photographed condolence-gift envelopes",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _get_components() -> tuple[EnvelopeProcessor, RulesEngine]:
    """Initialize and return shared processing components.

    Returns:
        Tuple of (envelope_processor, rules_engine).
    """
    config = load_config()
    processor = EnvelopeProcessor(config)
    rules_engine = RulesEngine(config.validation.rules_path)
    return processor, rules_engine


_ALLOWED_CONTENT_TYPES = {
    "image/png",
    "image/jpeg",
    "image/tiff",
    "application/pdf",
    "application/octet-stream",
}


def _to_fragments(payload: list[FragmentPayload]) -> list[PositionedFragment]:
    return [PositionedFragment(**fragment.model_dump()) for fragment in payload]


def _build_response(
    result: ExtractionResult,
    rules_engine: RulesEngine,
    start_time: float,
    failed_faces: dict[str, str] | None = None,
) -> ExtractionResponse:
    """Validate an extraction result and convert it to the response schema."""
    confidences = {name: f.confidence for name, f in result.fields.items()}
    validation = rules_engine.validate(result.to_record(), confidences)

    return ExtractionResponse(
        success=True,
        envelope_id=str(uuid.uuid4()),
        record=RecordResponse(
            personal_name=result.personal_name,
            organization_name=result.organization_name,
            title=result.title,
            address=result.address,
            amount=result.amount,
            enclosed_amount=result.enclosed_amount,
            notes=result.notes,
        ),
        donation_type=DonationTypeResponse(
            type=result.donation_type.type,
            category=result.donation_type.category,
            confidence=result.donation_type.confidence,
            position=result.donation_type.position,
        ),
        sources=result.sources(),
        validation_passed=validation.all_valid,
        validation=[
            ValidationResultResponse(
                field_name=r.field_name,
                is_valid=r.is_valid,
                message=r.message,
                rule_name=r.rule_name,
            )
            for r in validation.results
        ],
        warnings=validation.warnings,
        failed_faces=failed_faces or {},
        processing_time_ms=(time.time() - start_time) * 1000,
    )


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return system health status."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        tesseract_available=shutil.which("tesseract") is not None,
    )


@app.post("/extract", response_model=ExtractionResponse)
async def extract_envelope(
    front: Annotated[UploadFile | None, File()] = None,
    back: Annotated[UploadFile | None, File()] = None,
    inner_front: Annotated[UploadFile | None, File()] = None,
    inner_back: Annotated[UploadFile | None, File()] = None,
) -> ExtractionResponse:
    """Extract the donation record from uploaded envelope face images.

    Every face is optional, but at least one must be uploaded.

    Returns:
        Extracted record, donation type, per-field sources and validation.
    """
    start_time = time.time()

    uploads = {
        FRONT: front,
        BACK: back,
        INNER_FRONT: inner_front,
        INNER_BACK: inner_back,
    }
    uploads = {face: f for face, f in uploads.items() if f is not None}
    if not uploads:
        raise HTTPException(status_code=400, detail="No envelope face uploaded")

    for upload in uploads.values():
        if upload.content_type and upload.content_type not in _ALLOWED_CONTENT_TYPES:
            raise HTTPException(
                status_code=400,
                detail=f"Unsupported file type: {upload.content_type}",
            )

    try:
        processor, rules_engine = _get_components()
        sources = {face: await upload.read() for face, upload in uploads.items()}
        scan, result = processor.process(sources)
        if not scan.face_text:
            raise HTTPException(
                status_code=422,
                detail={"message": "No face could be recognized", "failed_faces": scan.failures},
            )
        return _build_response(result, rules_engine, start_time, scan.failures)

    except HTTPException:
        raise
    except Exception as exc:
        logger.error("Extraction failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc


@app.post("/extract/text", response_model=ExtractionResponse)
async def extract_text(request: TextExtractionRequest) -> ExtractionResponse:
    """Extract the donation record from already recognized face text."""
    start_time = time.time()
    try:
        processor, rules_engine = _get_components()
        result = processor.extractor.extract(
            request.faces, _to_fragments(request.fragments)
        )
        return _build_response(result, rules_engine, start_time)
    except UnknownFaceError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except Exception as exc:
        logger.error("Text extraction failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc


@app.post("/classify", response_model=DonationTypeResponse)
async def classify(request: ClassifyRequest) -> DonationTypeResponse:
    """Classify the donation type written on the envelope front."""
    processor, _ = _get_components()
    result = processor.extractor.classifier.classify(
        request.front_text, _to_fragments(request.fragments)
    )
    return DonationTypeResponse(
        type=result.type,
        category=result.category,
        confidence=result.confidence,
        position=result.position,
    )


@app.get("/donation-types", response_model=DonationTypesResponse)
async def list_donation_types() -> DonationTypesResponse:
    """List the donation-type vocabulary with ceremonial categories."""
    processor, _ = _get_components()
    return DonationTypesResponse(
        donation_types=[
            DonationTypeInfo(type=dt.type, category=dt.category)
            for dt in processor.extractor.classifier.vocabulary
        ]
    )
