"""Pydantic request/response schemas for the FastAPI endpoints."""

from pydantic import BaseModel, Field


class FragmentPayload(BaseModel):
    """A positioned text fragment of the envelope front."""

    text: str
    top: float
    left: float = 0.0
    width: float = 0.0
    height: float = 0.0
    confidence: float = 1.0


class TextExtractionRequest(BaseModel):
    """Already recognized face text submitted for extraction."""

    faces: dict[str, str | None]
    fragments: list[FragmentPayload] = Field(default_factory=list)


class ClassifyRequest(BaseModel):
    """Front face text submitted for donation-type classification."""

    front_text: str = ""
    fragments: list[FragmentPayload] = Field(default_factory=list)


class DonationTypeResponse(BaseModel):
    """Response schema for a donation-type classification."""

    type: str
    category: str
    confidence: float
    position: str | None = None


class RecordResponse(BaseModel):
    """The extracted donation record."""

    personal_name: str = ""
    organization_name: str = ""
    title: str = ""
    address: str = ""
    amount: str = ""
    enclosed_amount: str = ""
    notes: str = ""


class ValidationResultResponse(BaseModel):
    """Response schema for a validation check result."""

    field_name: str
    is_valid: bool
    message: str
    rule_name: str


class ExtractionResponse(BaseModel):
    """Response schema for an envelope extraction request."""

    success: bool
    envelope_id: str
    record: RecordResponse
    donation_type: DonationTypeResponse
    sources: dict[str, str]
    validation_passed: bool
    validation: list[ValidationResultResponse]
    warnings: list[str] = Field(default_factory=list)
    failed_faces: dict[str, str] = Field(default_factory=dict)
    processing_time_ms: float


class DonationTypeInfo(BaseModel):
    """One inscription of the donation-type vocabulary."""

    type: str
    category: str


class DonationTypesResponse(BaseModel):
    """Response schema listing the donation-type vocabulary."""

    donation_types: list[DonationTypeInfo]


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    tesseract_available: bool
