"""
DetectionAdapter — common capability interface for deepfake-detection vendors.

Every vendor backend subclasses DetectionAdapter and implements
`_detect()`, which returns a CanonicalResult or raises a DetectionError.
The public `detect()` wraps that into a DetectionOutcome so callers never
have to catch vendor exceptions themselves.

Shared here:
  - header authentication (raw `api-key` header vs `Authorization: Bearer`)
  - one-shot HTTP exchange with status / transport / JSON error mapping
  - normalisation helpers that keep the two-class invariant of
    CanonicalResult (a lone class gets its complement synthesised)

To add a vendor:
  1. Subclass DetectionAdapter (or AsyncDetectionAdapter for job-style APIs)
  2. Set vendor, display_name, default_base_url, auth_scheme
  3. Register the class in deepscan.ai.registry.ADAPTERS
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional, Union

import httpx
from pydantic import ValidationError

from deepscan.core.config import settings
from deepscan.core.errors import (
    CredentialRequired,
    DetectionError,
    MalformedResponse,
    NetworkError,
    UnsupportedOperation,
    VendorError,
)
from deepscan.models.detection import (
    CanonicalResult,
    DetectionFailure,
    DetectionMetadata,
    DetectionPending,
    DetectionRequest,
    DetectionSuccess,
    Prediction,
    PredictionClass,
    Vendor,
)

logger = logging.getLogger(__name__)

_COMPLEMENT = {
    PredictionClass.REAL: PredictionClass.FAKE,
    PredictionClass.FAKE: PredictionClass.REAL,
}


class AuthScheme(str, Enum):
    BEARER = "bearer"    # Authorization: Bearer <key>
    API_KEY = "api_key"  # api-key: <key>


def redact_credential(credential: str) -> str:
    """Mask a credential for log lines, keeping only the last 4 chars."""
    if len(credential) <= 4:
        return "****"
    return f"****{credential[-4:]}"


# ── Normalisation helpers ──────────────────────────────────────────────────────

def predictions_from_fake_score(score: Any) -> list[Prediction]:
    """
    Expand a single fake-likelihood scalar into the canonical pair.

    Returns [real@(1 - score), fake@score]. Raises ValueError if the score is
    missing, non-numeric or outside [0, 1].
    """
    if score is None or isinstance(score, bool) or not isinstance(score, (int, float)):
        raise ValueError(f"fake score must be a number, got {score!r}")
    fake = Prediction(label=PredictionClass.FAKE, confidence=float(score))
    real = Prediction(label=PredictionClass.REAL, confidence=1.0 - fake.confidence)
    return [real, fake]


def predictions_from_entries(entries: Any) -> list[Prediction]:
    """
    Validate a vendor list of {class, confidence} entries.

    Vendor order is preserved (the first entry stays the primary prediction).
    A list holding one class gets its complement appended. Raises ValueError
    on an empty list, a bad entry, or a repeated class.
    """
    if not isinstance(entries, list) or not entries:
        raise ValueError("expected a non-empty list of predictions")

    predictions = [Prediction.model_validate(entry) for entry in entries]
    if len({p.label for p in predictions}) != len(predictions):
        raise ValueError("duplicate prediction class in vendor response")

    if len(predictions) == 1:
        only = predictions[0]
        predictions.append(
            Prediction(label=_COMPLEMENT[only.label], confidence=1.0 - only.confidence)
        )
    return predictions


def _optional_float(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


# ── Adapter base classes ───────────────────────────────────────────────────────

class DetectionAdapter(ABC):
    """
    One vendor's HTTP surface, bound to one caller-supplied credential.

    Instances are cheap and never mutated after construction. Build one per
    call; see deepscan.ai.registry.build_adapter.
    """

    vendor: Vendor
    display_name: str = "Detection"
    default_base_url: str = ""
    auth_scheme: AuthScheme = AuthScheme.BEARER
    error_message_key: str = "message"

    supports_async: bool = False
    supports_credential_check: bool = False

    def __init__(
        self,
        credential: Optional[str],
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        detect_timeout: Optional[float] = None,
        status_timeout: Optional[float] = None,
    ) -> None:
        if not credential or not credential.strip():
            raise CredentialRequired(f"{self.display_name} API key is required")

        self._credential = credential.strip()
        self.base_url = (base_url or self.default_base_url).rstrip("/")
        self._transport = transport
        self.detect_timeout = (
            settings.detect_timeout_seconds if detect_timeout is None else detect_timeout
        )
        self.status_timeout = (
            settings.status_timeout_seconds if status_timeout is None else status_timeout
        )

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(base_url={self.base_url!r}, "
            f"credential={redact_credential(self._credential)!r})"
        )

    # ── Public capability ──────────────────────────────────────────────────

    async def detect(self, request: DetectionRequest) -> Union[DetectionSuccess, DetectionFailure]:
        """Run one synchronous detection. Never raises for vendor problems."""
        try:
            result = await self._detect(request)
        except DetectionError as exc:
            return DetectionFailure.from_error(exc)
        return DetectionSuccess(result=result)

    async def check_credential(self) -> dict[str, Any]:
        """Probe a lightweight account endpoint to confirm the key works."""
        raise UnsupportedOperation(
            f"{self.display_name} does not support credential checks"
        )

    @abstractmethod
    async def _detect(self, request: DetectionRequest) -> CanonicalResult:
        """Vendor-specific detection. Raise DetectionError on any failure."""

    # ── HTTP plumbing ──────────────────────────────────────────────────────

    def auth_headers(self) -> dict[str, str]:
        if self.auth_scheme is AuthScheme.API_KEY:
            return {"api-key": self._credential}
        return {"Authorization": f"Bearer {self._credential}"}

    def invalid_format(self, detail: str = "") -> MalformedResponse:
        message = f"Invalid response format from {self.display_name} API"
        if detail:
            logger.warning("%s: %s", message, detail)
        return MalformedResponse(message)

    async def _request(
        self,
        method: str,
        endpoint: str,
        timeout: float,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """
        Issue exactly one HTTP request and return the decoded JSON object.

        Raises:
            NetworkError:      no response (connection error or timeout).
            VendorError:       non-2xx status, carrying the vendor's message.
            MalformedResponse: 2xx body that is not a JSON object.
        """
        url = f"{self.base_url}{endpoint}"
        logger.debug("%s %s (key %s)", method, url, redact_credential(self._credential))

        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            try:
                response = await client.request(method, url, headers=self.auth_headers(), **kwargs)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                logger.error(
                    "%s API error: %s — %s",
                    self.display_name,
                    exc.response.status_code,
                    exc.response.text[:200],
                )
                raise VendorError(
                    f"API Error: {self._vendor_message(exc.response)}",
                    status_code=exc.response.status_code,
                ) from exc
            except httpx.RequestError as exc:
                logger.error("%s request failed: %s", self.display_name, exc)
                raise NetworkError(
                    f"Network error: Unable to connect to {self.display_name} API"
                ) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise self.invalid_format("body is not JSON") from exc
        if not isinstance(data, dict):
            raise self.invalid_format("body is not a JSON object")
        return data

    def _vendor_message(self, response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get(self.error_message_key):
            return str(body[self.error_message_key])
        return response.reason_phrase or f"HTTP {response.status_code}"

    async def _post_media(
        self,
        endpoint: str,
        request: DetectionRequest,
        file_field: str,
        fields: dict[str, str],
    ) -> dict[str, Any]:
        files = {file_field: (request.filename, request.content, request.content_type)}
        return await self._request(
            "POST", endpoint, self.detect_timeout, data=fields, files=files
        )

    def _canonical(
        self,
        predictions: list[Prediction],
        body: dict[str, Any],
        model_version: Optional[str] = None,
    ) -> CanonicalResult:
        version = model_version if model_version is not None else body.get("model_version")
        try:
            return CanonicalResult(
                predictions=predictions,
                metadata=DetectionMetadata(
                    processing_time=_optional_float(body.get("processing_time")),
                    model_version=str(version) if version is not None else None,
                ),
            )
        except ValidationError as exc:
            raise self.invalid_format(str(exc)) from exc


class AsyncDetectionAdapter(DetectionAdapter):
    """
    Adapter for vendors that also offer submit-then-poll jobs.

    `poll()` is a single stateless status probe: the caller owns any
    re-polling cadence. Nothing here sleeps, loops or retries.
    """

    supports_async = True

    @abstractmethod
    async def submit(self, request: DetectionRequest) -> str:
        """Enqueue work vendor-side and return the task id. Raises DetectionError."""

    @abstractmethod
    async def poll(
        self, task_id: str
    ) -> Union[DetectionSuccess, DetectionFailure, DetectionPending]:
        """Check a task once. Never raises for vendor problems."""
