"""
HiveAdapter — deepfake detection via The Hive's v2 REST API.

Supports both call styles Hive offers:
  - POST /sync          upload and wait for the per-class scores
  - POST /async         enqueue a job, returns a task id
  - GET  /task/{id}     single status probe for an enqueued job

Authentication is `Authorization: Bearer <key>` with the caller's key.
"""

import logging
from typing import Any, Union
from urllib.parse import quote

from deepscan.ai.base_adapter import (
    AsyncDetectionAdapter,
    AuthScheme,
    predictions_from_entries,
    predictions_from_fake_score,
)
from deepscan.core.config import settings
from deepscan.core.errors import DetectionError, MalformedResponse, VendorError
from deepscan.models.detection import (
    CanonicalResult,
    DetectionFailure,
    DetectionPending,
    DetectionRequest,
    DetectionSuccess,
    Vendor,
)

logger = logging.getLogger(__name__)

# Fixed auxiliary parameters sent with every upload.
_DETECTION_FIELDS = {
    "model": "deepfake-detection",
    "confidence_threshold": "0.5",
    "return_metadata": "true",
}


class HiveAdapter(AsyncDetectionAdapter):
    """
    Adapter for Hive's deepfake-detection model.

    Sync response shape:
        {"status": "success",
         "results": [{"class": "real", "confidence": 0.92}, ...],
         "processing_time": 1.4, "model_version": "..."}

    Some Hive deployments report a single `score` (fake likelihood) instead
    of `results`; that is expanded into the canonical real/fake pair.
    """

    vendor = Vendor.HIVE
    display_name = "Hive"
    default_base_url = "https://api.thehive.ai/api/v2"
    auth_scheme = AuthScheme.BEARER
    error_message_key = "message"

    def __init__(self, credential, base_url=None, **kwargs: Any) -> None:
        super().__init__(credential, base_url=base_url or settings.hive_api_url, **kwargs)

    async def _detect(self, request: DetectionRequest) -> CanonicalResult:
        body = await self._post_media("/sync", request, "media", _DETECTION_FIELDS)

        status = body.get("status")
        if status == "error":
            raise VendorError(f"API Error: {body.get('message') or 'Detection failed'}")
        if status != "success":
            raise self.invalid_format(f"unexpected status {status!r}")

        return self._parse_results(body)

    async def submit(self, request: DetectionRequest) -> str:
        body = await self._post_media("/async", request, "media", _DETECTION_FIELDS)

        task_id = body.get("task_id")
        if body.get("status") != "success" or not task_id:
            raise MalformedResponse("Invalid async response format from Hive API")

        logger.info("Hive task %s submitted (%s)", task_id, request.media_kind.value)
        return str(task_id)

    async def poll(
        self, task_id: str
    ) -> Union[DetectionSuccess, DetectionFailure, DetectionPending]:
        try:
            endpoint = "/task/" + quote(task_id, safe="")
            body = await self._request("GET", endpoint, self.status_timeout)
            status = body.get("status")

            if status == "processing":
                return DetectionPending(task_id=task_id)
            if status == "failed":
                raise VendorError(str(body.get("error") or "Task failed"))
            if status == "completed":
                return DetectionSuccess(result=self._parse_results(body))
            raise MalformedResponse("Unknown task status")

        except DetectionError as exc:
            return DetectionFailure.from_error(exc)

    def _parse_results(self, body: dict[str, Any]) -> CanonicalResult:
        try:
            if "results" in body:
                predictions = predictions_from_entries(body["results"])
            elif "score" in body:
                predictions = predictions_from_fake_score(body["score"])
            else:
                raise ValueError("no results field")
        except ValueError as exc:
            raise self.invalid_format(str(exc)) from exc

        return self._canonical(predictions, body)
