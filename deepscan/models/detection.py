"""
detection.py — Pydantic models for the detection API.

Two layers live here:
  - Canonical, vendor-independent types (CanonicalResult and the
    DetectionOutcome union) produced by every vendor adapter.
  - HTTP envelopes returned by the routes in deepscan.routes.detect.

Adapters never return a partially-populated CanonicalResult: either every
prediction validates, or the whole response is a DetectionFailure.
"""

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from deepscan.core.errors import DetectionError, ErrorKind


# ── Enums ──────────────────────────────────────────────────────────────────────

class MediaKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


class PredictionClass(str, Enum):
    REAL = "real"
    FAKE = "fake"


class Vendor(str, Enum):
    HIVE = "hive"
    DEEPAI = "deepai"


# ── Request ────────────────────────────────────────────────────────────────────

class DetectionRequest(BaseModel):
    """One uploaded artifact, built per call and discarded after use."""

    model_config = ConfigDict(frozen=True)

    content: bytes
    media_kind: MediaKind
    filename: str = "upload"
    content_type: str = "application/octet-stream"


# ── Canonical result ───────────────────────────────────────────────────────────

class Prediction(BaseModel):
    """A single (class, confidence) pair. Serialised with the key `class`."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    label: PredictionClass = Field(..., alias="class")
    confidence: float = Field(..., ge=0.0, le=1.0)


class DetectionMetadata(BaseModel):
    processing_time: Optional[float] = None  # seconds, as reported by the vendor
    model_version: Optional[str] = None


class CanonicalResult(BaseModel):
    """Vendor-independent detection result. predictions[0] is the headline."""

    predictions: list[Prediction] = Field(..., min_length=1)
    metadata: DetectionMetadata = Field(default_factory=DetectionMetadata)

    @property
    def primary(self) -> Prediction:
        return self.predictions[0]


# ── Outcomes ───────────────────────────────────────────────────────────────────

class DetectionSuccess(BaseModel):
    status: Literal["success"] = "success"
    result: CanonicalResult


class DetectionFailure(BaseModel):
    status: Literal["error"] = "error"
    kind: ErrorKind
    error: str                       # short, user-visible message
    details: Optional[str] = None    # diagnostic detail, development only

    @classmethod
    def from_error(cls, exc: DetectionError, details: Optional[str] = None) -> "DetectionFailure":
        return cls(kind=exc.kind, error=exc.message, details=details)


class DetectionPending(BaseModel):
    """Async task accepted by the vendor but not finished yet. Not an error."""

    status: Literal["pending"] = "pending"
    task_id: str


DetectionOutcome = Annotated[
    Union[DetectionSuccess, DetectionFailure],
    Field(discriminator="status"),
]


# ── HTTP envelopes ─────────────────────────────────────────────────────────────

class DetectResponse(BaseModel):
    """Body of a successful POST /api/v1/detect."""

    success: bool = True
    result: CanonicalResult
    file_name: str
    file_type: MediaKind
    file_size: int


class ErrorResponse(BaseModel):
    error: str
    kind: ErrorKind
    details: Optional[str] = None


class TaskSubmittedResponse(BaseModel):
    status: Literal["pending"] = "pending"
    task_id: str


class CredentialCheckRequest(BaseModel):
    api_key: str = Field(default="", description="Vendor API key to verify")
    vendor: Optional[Vendor] = None


class CredentialCheckResponse(BaseModel):
    success: bool = True
    user: dict
    message: str
