"""
DeepAIAdapter — deepfake detection via DeepAI's model API.

DeepAI answers synchronously with a single fake likelihood:
    {"output": {"fake_score": 0.83}, "processing_time": 2.1}
which is expanded into [real@0.17, fake@0.83].

Authentication is a raw `api-key: <key>` header. DeepAI also exposes
GET /user, used as a cheap credential check before uploading media.
"""

import logging
from typing import Any

from deepscan.ai.base_adapter import AuthScheme, DetectionAdapter, predictions_from_fake_score
from deepscan.core.config import settings
from deepscan.models.detection import CanonicalResult, DetectionRequest, Vendor

logger = logging.getLogger(__name__)

MODEL_VERSION = "deepfake-detection-v1"


class DeepAIAdapter(DetectionAdapter):
    vendor = Vendor.DEEPAI
    display_name = "DeepAI"
    default_base_url = "https://api.deepai.org/api"
    auth_scheme = AuthScheme.API_KEY
    error_message_key = "err"

    supports_credential_check = True

    def __init__(self, credential, base_url=None, **kwargs: Any) -> None:
        super().__init__(credential, base_url=base_url or settings.deepai_api_url, **kwargs)

    async def _detect(self, request: DetectionRequest) -> CanonicalResult:
        # DeepAI takes both images and videos under the `image` field.
        body = await self._post_media(
            "/deepfake-detection",
            request,
            "image",
            {"model": "deepfake-detection"},
        )

        output = body.get("output")
        if not isinstance(output, dict):
            raise self.invalid_format("missing output object")

        try:
            predictions = predictions_from_fake_score(output.get("fake_score"))
        except ValueError as exc:
            raise self.invalid_format(str(exc)) from exc

        return self._canonical(predictions, body, model_version=MODEL_VERSION)

    async def check_credential(self) -> dict[str, Any]:
        user = await self._request("GET", "/user", self.status_timeout)
        logger.info("DeepAI credential check succeeded")
        return user
