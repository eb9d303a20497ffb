"""
detect.py — Deepfake detection endpoints.

Routes:
  GET  /api/v1/detect                   — usage hint
  POST /api/v1/detect                   — upload + synchronous vendor detection
  POST /api/v1/detect/async             — upload + enqueue a vendor-side job
  GET  /api/v1/detect/tasks/{task_id}   — single status probe for a job
  POST /api/v1/credentials/check        — verify a vendor API key

HOW THE DATA FLOWS
──────────────────
1. The browser posts multipart form data: `file` (the image/video) and
   `apiKey` (the user's own vendor key; never stored, never logged).
2. The route pre-flights the upload from its size, content type and key,
   then reads it and hands bytes + declared content type +
   size + key to the DetectionOrchestrator.
3. The orchestrator validates, forwards to the configured vendor adapter
   and returns a DetectionSuccess or DetectionFailure.
4. Success → 200 with the canonical result; failure → the error envelope
   {error, kind, details} with a status code chosen by ErrorKind.

Task polling takes the key from the `X-API-Key` header so it never ends up
in access logs as part of a URL.
"""

import logging
import os
from typing import Optional, Union

from fastapi import APIRouter, Depends, File, Form, Header, UploadFile
from fastapi.responses import JSONResponse

from deepscan.core.errors import ErrorKind
from deepscan.models.detection import (
    CredentialCheckRequest,
    CredentialCheckResponse,
    DetectionFailure,
    DetectionPending,
    DetectResponse,
    ErrorResponse,
    TaskSubmittedResponse,
)
from deepscan.services.orchestrator import DetectionOrchestrator, get_orchestrator
from deepscan.services.validation import classify_media_kind

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["detect"])

_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.MISSING_FILE: 400,
    ErrorKind.MISSING_CREDENTIAL: 400,
    ErrorKind.UNSUPPORTED_TYPE: 400,
    ErrorKind.FILE_TOO_LARGE: 413,
    ErrorKind.CREDENTIAL_REQUIRED: 400,
    ErrorKind.NETWORK_ERROR: 502,
    ErrorKind.VENDOR_ERROR: 502,
    ErrorKind.MALFORMED_RESPONSE: 502,
    ErrorKind.UNSUPPORTED_OPERATION: 501,
    ErrorKind.INTERNAL_ERROR: 500,
}

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Upload rejected before any vendor call"},
    413: {"model": ErrorResponse, "description": "Upload exceeds the size ceiling"},
    502: {"model": ErrorResponse, "description": "Vendor unreachable or returned an error"},
}


def _error_response(failure: DetectionFailure) -> JSONResponse:
    body = ErrorResponse(error=failure.error, kind=failure.kind, details=failure.details)
    return JSONResponse(
        status_code=_STATUS_BY_KIND.get(failure.kind, 500),
        content=body.model_dump(mode="json"),
    )


def _upload_size(file: UploadFile) -> int:
    if file.size is not None:
        return file.size
    # Measure the spooled file without pulling it into memory.
    file.file.seek(0, os.SEEK_END)
    size = file.file.tell()
    file.file.seek(0)
    return size


async def _read_upload(
    file: Optional[UploadFile],
    api_key: Optional[str],
    orchestrator: DetectionOrchestrator,
) -> Union[DetectionFailure, tuple[bytes, str, int, str]]:
    """
    Pre-flight the upload from its metadata, then read the body.

    The body is only read once the gate has passed, so oversized or
    mistyped uploads never reach memory.
    """
    size = _upload_size(file) if file is not None else 0
    content_type = file.content_type if file is not None else None

    rejection = orchestrator.preflight(size > 0, content_type, size, api_key)
    if rejection is not None:
        return rejection

    content = await file.read()
    return content, content_type, len(content), file.filename or "upload"


# ── Sync detection ─────────────────────────────────────────────────────────────

@router.get("/detect")
async def detect_info():
    """Usage hint for anyone hitting the endpoint from a browser."""
    return {
        "message": "Deepfake detection API endpoint. Use POST method with file and API key.",
    }


@router.post(
    "/detect",
    response_model=DetectResponse,
    status_code=200,
    responses=_ERROR_RESPONSES,
)
async def detect(
    file: Optional[UploadFile] = File(None),
    api_key: Optional[str] = Form(None, alias="apiKey"),
    orchestrator: DetectionOrchestrator = Depends(get_orchestrator),
):
    """
    Upload an image or video and return the vendor's authenticity score.

    The first entry of result.predictions is the headline verdict.
    """
    upload = await _read_upload(file, api_key, orchestrator)
    if isinstance(upload, DetectionFailure):
        return _error_response(upload)
    content, content_type, size, filename = upload

    outcome = await orchestrator.run_detection(
        artifact=content,
        content_type=content_type,
        byte_size=size,
        credential=api_key,
        filename=filename,
    )
    if isinstance(outcome, DetectionFailure):
        return _error_response(outcome)

    return DetectResponse(
        result=outcome.result,
        file_name=filename,
        file_type=classify_media_kind(content_type),
        file_size=size,
    )


# ── Async detection ────────────────────────────────────────────────────────────

@router.post(
    "/detect/async",
    response_model=TaskSubmittedResponse,
    status_code=202,
    responses=_ERROR_RESPONSES,
)
async def submit_detection(
    file: Optional[UploadFile] = File(None),
    api_key: Optional[str] = Form(None, alias="apiKey"),
    orchestrator: DetectionOrchestrator = Depends(get_orchestrator),
):
    """Enqueue a vendor-side detection job and return its task id."""
    upload = await _read_upload(file, api_key, orchestrator)
    if isinstance(upload, DetectionFailure):
        return _error_response(upload)
    content, content_type, size, filename = upload

    outcome = await orchestrator.submit_detection(
        artifact=content,
        content_type=content_type,
        byte_size=size,
        credential=api_key,
        filename=filename,
    )
    if isinstance(outcome, DetectionFailure):
        return _error_response(outcome)

    return TaskSubmittedResponse(task_id=outcome.task_id)


@router.get("/detect/tasks/{task_id}", responses=_ERROR_RESPONSES)
async def task_status(
    task_id: str,
    api_key: Optional[str] = Header(None, alias="X-API-Key"),
    orchestrator: DetectionOrchestrator = Depends(get_orchestrator),
):
    """
    Check a submitted job once.

    200 with the canonical result when complete, 202 {status: "pending"}
    while the vendor is still processing. Clients re-poll at their own pace.
    """
    outcome = await orchestrator.poll_task(task_id, api_key)

    if isinstance(outcome, DetectionFailure):
        return _error_response(outcome)
    status_code = 202 if isinstance(outcome, DetectionPending) else 200
    return JSONResponse(
        status_code=status_code,
        content=outcome.model_dump(mode="json", by_alias=True),
    )


# ── Credential check ───────────────────────────────────────────────────────────

@router.post(
    "/credentials/check",
    response_model=CredentialCheckResponse,
    status_code=200,
    responses=_ERROR_RESPONSES,
)
async def check_credential(
    payload: CredentialCheckRequest,
    orchestrator: DetectionOrchestrator = Depends(get_orchestrator),
):
    """Verify an API key against the vendor's account endpoint (10s timeout)."""
    outcome = await orchestrator.check_credential(payload.api_key, vendor=payload.vendor)

    if isinstance(outcome, DetectionFailure):
        return _error_response(outcome)

    return CredentialCheckResponse(
        user=outcome,
        message="API key is valid and working",
    )
