"""
errors.py — Failure taxonomy shared by the validation gate, the vendor
adapters and the orchestrator.

Pre-flight kinds (MISSING_FILE … FILE_TOO_LARGE) are produced by the
validation gate and never reach an adapter. Everything else is raised as a
DetectionError inside an adapter and converted into a DetectionFailure
before it leaves the orchestrator.
"""

from enum import Enum


class ErrorKind(str, Enum):
    MISSING_FILE = "missing_file"
    MISSING_CREDENTIAL = "missing_credential"
    UNSUPPORTED_TYPE = "unsupported_type"
    FILE_TOO_LARGE = "file_too_large"
    CREDENTIAL_REQUIRED = "credential_required"
    NETWORK_ERROR = "network_error"
    VENDOR_ERROR = "vendor_error"
    MALFORMED_RESPONSE = "malformed_response"
    UNSUPPORTED_OPERATION = "unsupported_operation"
    INTERNAL_ERROR = "internal_error"


class DetectionError(Exception):
    """Structured failure carrying an ErrorKind and a user-facing message."""

    kind: ErrorKind = ErrorKind.INTERNAL_ERROR

    def __init__(self, message: str, kind: ErrorKind | None = None) -> None:
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind


class CredentialRequired(DetectionError):
    kind = ErrorKind.CREDENTIAL_REQUIRED


class NetworkError(DetectionError):
    """No response was received (connection failure or timeout)."""

    kind = ErrorKind.NETWORK_ERROR


class VendorError(DetectionError):
    """Non-2xx response, or the vendor itself reported a failure."""

    kind = ErrorKind.VENDOR_ERROR

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedResponse(DetectionError):
    """2xx response whose body is unparseable or missing expected fields."""

    kind = ErrorKind.MALFORMED_RESPONSE


class UnsupportedOperation(DetectionError):
    kind = ErrorKind.UNSUPPORTED_OPERATION
