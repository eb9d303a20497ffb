"""
DetectionOrchestrator — boundary entry point for every detection call.

Flow for run_detection():
  1. Validation gate (pure). A rejection short-circuits: no adapter is
     built and no network call is made.
  2. Media kind is classified from the content-type prefix.
  3. An adapter is built for this call's credential (never cached).
  4. The adapter's detect() outcome is returned unchanged.
  5. Any exception escaping 2–4 becomes a DetectionFailure; nothing is
     raised past this class.

Diagnostic `details` (tracebacks) are attached only when
settings.is_development is true.

Usage in a route:
    from deepscan.services.orchestrator import get_orchestrator

    async def my_route(orchestrator = Depends(get_orchestrator)):
        outcome = await orchestrator.run_detection(...)
"""

import logging
import traceback
from typing import Any, Callable, Optional, Union

from deepscan.ai.base_adapter import DetectionAdapter, redact_credential
from deepscan.ai.registry import build_adapter, credential_check_vendor
from deepscan.core.config import settings
from deepscan.core.errors import DetectionError, ErrorKind, UnsupportedOperation
from deepscan.models.detection import (
    DetectionFailure,
    DetectionPending,
    DetectionRequest,
    DetectionSuccess,
    Vendor,
)
from deepscan.services.validation import (
    classify_media_kind,
    rejection_message,
    validate_upload,
)

logger = logging.getLogger(__name__)

AdapterFactory = Callable[..., DetectionAdapter]


class DetectionOrchestrator:
    def __init__(self, adapter_factory: AdapterFactory = build_adapter) -> None:
        self._adapter_factory = adapter_factory

    # ── Sync detection ─────────────────────────────────────────────────────

    async def run_detection(
        self,
        artifact: Optional[bytes],
        content_type: Optional[str],
        byte_size: int,
        credential: Optional[str],
        filename: str = "upload",
    ) -> Union[DetectionSuccess, DetectionFailure]:
        """
        Validate an upload, forward it to the configured vendor and return
        the normalised outcome.

        Args:
            artifact:     Raw file bytes, or None if nothing was uploaded.
            content_type: Declared MIME type of the upload.
            byte_size:    Size of the upload in bytes.
            credential:   The caller's vendor API key.
            filename:     Original filename, forwarded to the vendor.

        Returns:
            DetectionSuccess or DetectionFailure. Never raises.
        """
        rejection = self.preflight(bool(artifact), content_type, byte_size, credential)
        if rejection is not None:
            return rejection

        try:
            adapter = self._adapter_factory(credential)
            request = self._build_request(artifact, content_type, filename)
            logger.info(
                "Running %s detection via %s (%d bytes, key %s)",
                request.media_kind.value,
                adapter.display_name,
                byte_size,
                redact_credential(credential),
            )
            outcome = await adapter.detect(request)
        except Exception as exc:
            return self._to_failure(exc)

        if isinstance(outcome, DetectionFailure):
            logger.warning("Detection failed (%s): %s", outcome.kind.value, outcome.error)
        else:
            primary = outcome.result.primary
            logger.info("Detection complete: %s@%.3f", primary.label.value, primary.confidence)
        return outcome

    # ── Async detection ────────────────────────────────────────────────────

    async def submit_detection(
        self,
        artifact: Optional[bytes],
        content_type: Optional[str],
        byte_size: int,
        credential: Optional[str],
        filename: str = "upload",
    ) -> Union[DetectionPending, DetectionFailure]:
        """Same pre-flight as run_detection, then enqueue a vendor-side job."""
        rejection = self.preflight(bool(artifact), content_type, byte_size, credential)
        if rejection is not None:
            return rejection

        try:
            adapter = self._async_adapter(credential)
            request = self._build_request(artifact, content_type, filename)
            task_id = await adapter.submit(request)
        except Exception as exc:
            return self._to_failure(exc)

        return DetectionPending(task_id=task_id)

    async def poll_task(
        self,
        task_id: str,
        credential: Optional[str],
    ) -> Union[DetectionSuccess, DetectionFailure, DetectionPending]:
        """Probe a submitted task once. Re-polling is the caller's job."""
        if not credential or not credential.strip():
            return self._rejection(ErrorKind.MISSING_CREDENTIAL)

        try:
            adapter = self._async_adapter(credential)
            return await adapter.poll(task_id)
        except Exception as exc:
            return self._to_failure(exc)

    # ── Credential check ───────────────────────────────────────────────────

    async def check_credential(
        self,
        credential: Optional[str],
        vendor: Optional[Vendor] = None,
    ) -> Union[dict[str, Any], DetectionFailure]:
        """
        Return the vendor's account payload, or a failure if the key is unusable.

        Without an explicit vendor the check goes to the first vendor that
        has an account endpoint (the configured one if it has one).
        """
        if not credential or not credential.strip():
            return self._rejection(ErrorKind.MISSING_CREDENTIAL)

        try:
            adapter = self._adapter_factory(credential, vendor=vendor or credential_check_vendor())
            if not adapter.supports_credential_check:
                raise UnsupportedOperation(
                    f"{adapter.display_name} does not support credential checks"
                )
            return await adapter.check_credential()
        except Exception as exc:
            return self._to_failure(exc)

    # ── Pre-flight ─────────────────────────────────────────────────────────

    def preflight(
        self,
        artifact_present: bool,
        content_type: Optional[str],
        byte_size: int,
        credential: Optional[str],
    ) -> Optional[DetectionFailure]:
        """
        Run the validation gate on upload metadata alone.

        Routes call this before reading the upload body so an oversized or
        mistyped file is rejected without being buffered.
        """
        kind = validate_upload(
            artifact_present=artifact_present,
            content_type=content_type,
            byte_size=byte_size,
            credential=credential,
        )
        if kind is None:
            return None
        logger.info("Upload rejected before vendor call: %s", kind.value)
        return self._rejection(kind)

    # ── Helpers ────────────────────────────────────────────────────────────

    @staticmethod
    def _rejection(kind: ErrorKind) -> DetectionFailure:
        return DetectionFailure(kind=kind, error=rejection_message(kind))

    @staticmethod
    def _build_request(
        artifact: bytes, content_type: str, filename: str
    ) -> DetectionRequest:
        media_kind = classify_media_kind(content_type)
        if media_kind is None:
            raise DetectionError(f"Unsupported content type: {content_type}", ErrorKind.UNSUPPORTED_TYPE)
        return DetectionRequest(
            content=artifact,
            media_kind=media_kind,
            filename=filename or "upload",
            content_type=content_type,
        )

    def _async_adapter(self, credential: str) -> DetectionAdapter:
        adapter = self._adapter_factory(credential)
        if not adapter.supports_async:
            raise UnsupportedOperation(
                f"{adapter.display_name} does not support asynchronous detection"
            )
        return adapter

    @staticmethod
    def _to_failure(exc: Exception) -> DetectionFailure:
        details = None
        if settings.is_development:
            details = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

        if isinstance(exc, DetectionError):
            logger.warning("Detection error (%s): %s", exc.kind.value, exc.message)
            return DetectionFailure.from_error(exc, details=details)

        logger.exception("Unexpected error during detection")
        return DetectionFailure(
            kind=ErrorKind.INTERNAL_ERROR,
            error=str(exc) or "Internal server error",
            details=details,
        )


# Module-level singleton — routes reach it through get_orchestrator()
detection_orchestrator = DetectionOrchestrator()


def get_orchestrator() -> DetectionOrchestrator:
    """FastAPI dependency; tests swap it via app.dependency_overrides."""
    return detection_orchestrator
