"""
Unit tests for the vendor adapters (HiveAdapter, DeepAIAdapter).

Every test runs the adapter's real request-building and parsing code
against an httpx.MockTransport — no network access, no API keys.
"""

import httpx
import pytest

from deepscan.ai.base_adapter import (
    AuthScheme,
    predictions_from_entries,
    predictions_from_fake_score,
    redact_credential,
)
from deepscan.ai.deepai_adapter import MODEL_VERSION, DeepAIAdapter
from deepscan.ai.hive_adapter import HiveAdapter
from deepscan.ai.registry import ADAPTERS, build_adapter, credential_check_vendor
from deepscan.core.config import settings
from deepscan.core.errors import CredentialRequired, ErrorKind, MalformedResponse, NetworkError
from deepscan.models.detection import (
    DetectionFailure,
    DetectionPending,
    DetectionRequest,
    DetectionSuccess,
    MediaKind,
    PredictionClass,
    Vendor,
)

_IMAGE = DetectionRequest(
    content=b"\xff\xd8\xff\xe0fake-jpeg-bytes",
    media_kind=MediaKind.IMAGE,
    filename="photo.jpg",
    content_type="image/jpeg",
)


# ─── Normalisation helpers ────────────────────────────────────────────────────


class TestScoreSynthesis:
    @pytest.mark.parametrize("score", [0.0, 0.25, 0.5, 0.83, 1.0])
    def test_scalar_expands_to_real_then_fake(self, score):
        real, fake = predictions_from_fake_score(score)
        assert real.label == PredictionClass.REAL
        assert fake.label == PredictionClass.FAKE
        assert fake.confidence == pytest.approx(score)
        assert real.confidence == pytest.approx(1 - score)

    @pytest.mark.parametrize("score", [None, "0.4", True, 1.5, -0.1])
    def test_bad_scalar_raises(self, score):
        with pytest.raises(ValueError):
            predictions_from_fake_score(score)

    def test_single_entry_gets_complement(self):
        preds = predictions_from_entries([{"class": "real", "confidence": 0.92}])
        assert [p.label for p in preds] == [PredictionClass.REAL, PredictionClass.FAKE]
        assert preds[1].confidence == pytest.approx(0.08)

    def test_vendor_order_preserved(self):
        preds = predictions_from_entries(
            [{"class": "fake", "confidence": 0.7}, {"class": "real", "confidence": 0.3}]
        )
        assert preds[0].label == PredictionClass.FAKE

    @pytest.mark.parametrize(
        "entries",
        [
            [],
            None,
            "real",
            [{"class": "real"}],
            [{"confidence": 0.3}],
            [{"class": "maybe", "confidence": 0.3}],
            [{"class": "real", "confidence": 0.5}, {"class": "real", "confidence": 0.5}],
        ],
    )
    def test_malformed_entries_raise(self, entries):
        with pytest.raises(ValueError):
            predictions_from_entries(entries)


class TestRedaction:
    def test_keeps_last_four(self):
        assert redact_credential("sk-abcdef1234") == "****1234"

    def test_short_key_fully_masked(self):
        assert redact_credential("abc") == "****"


# ─── Construction ─────────────────────────────────────────────────────────────


class TestConstruction:
    @pytest.mark.parametrize("adapter_cls", [HiveAdapter, DeepAIAdapter])
    @pytest.mark.parametrize("credential", [None, "", "   "])
    def test_missing_credential_raises(self, adapter_cls, credential):
        with pytest.raises(CredentialRequired) as exc_info:
            adapter_cls(credential)
        assert exc_info.value.kind == ErrorKind.CREDENTIAL_REQUIRED

    def test_hive_uses_bearer_header(self):
        adapter = HiveAdapter("k1")
        assert adapter.auth_scheme is AuthScheme.BEARER
        assert adapter.auth_headers() == {"Authorization": "Bearer k1"}

    def test_deepai_uses_api_key_header(self):
        adapter = DeepAIAdapter("k1")
        assert adapter.auth_scheme is AuthScheme.API_KEY
        assert adapter.auth_headers() == {"api-key": "k1"}

    def test_base_url_override(self):
        adapter = HiveAdapter("k1", base_url="http://localhost:9000/v2/")
        assert adapter.base_url == "http://localhost:9000/v2"

    def test_timeouts_default_from_settings(self):
        adapter = HiveAdapter("k1")
        assert adapter.detect_timeout == pytest.approx(60.0)
        assert adapter.status_timeout == pytest.approx(10.0)

    def test_explicit_zero_timeout_is_kept(self):
        adapter = HiveAdapter("k1", detect_timeout=0.0, status_timeout=0.0)
        assert adapter.detect_timeout == 0.0
        assert adapter.status_timeout == 0.0

    def test_repr_does_not_leak_credential(self):
        assert "supersecretkey" not in repr(HiveAdapter("supersecretkey"))

    def test_capabilities(self):
        assert HiveAdapter.supports_async is True
        assert DeepAIAdapter.supports_async is False
        assert DeepAIAdapter.supports_credential_check is True
        assert HiveAdapter.supports_credential_check is False

    def test_registry_covers_every_vendor(self):
        assert set(ADAPTERS) == set(Vendor)

    def test_build_adapter_selects_vendor(self):
        assert isinstance(build_adapter("k1", vendor=Vendor.DEEPAI), DeepAIAdapter)
        assert isinstance(build_adapter("k1", vendor=Vendor.HIVE), HiveAdapter)

    def test_credential_check_vendor_skips_vendor_without_account_endpoint(self, monkeypatch):
        monkeypatch.setattr(settings, "detection_vendor", Vendor.HIVE)
        assert credential_check_vendor() == Vendor.DEEPAI

    def test_credential_check_vendor_keeps_configured_vendor(self, monkeypatch):
        monkeypatch.setattr(settings, "detection_vendor", Vendor.DEEPAI)
        assert credential_check_vendor() == Vendor.DEEPAI

    def test_build_adapter_per_credential(self):
        a = build_adapter("k1", vendor=Vendor.HIVE)
        b = build_adapter("k2", vendor=Vendor.HIVE)
        assert a is not b
        assert a.auth_headers() != b.auth_headers()


# ─── HiveAdapter — sync ───────────────────────────────────────────────────────


class TestHiveDetect:
    async def test_success_maps_results(self, recording_transport):
        transport = recording_transport(
            {
                "status": "success",
                "results": [{"class": "real", "confidence": 0.92}],
                "processing_time": 1.25,
                "model_version": "df-3.1",
            }
        )
        outcome = await HiveAdapter("k1", transport=transport).detect(_IMAGE)

        assert isinstance(outcome, DetectionSuccess)
        primary = outcome.result.primary
        assert primary.label == PredictionClass.REAL
        assert primary.confidence == pytest.approx(0.92)
        assert outcome.result.predictions[1].label == PredictionClass.FAKE
        assert outcome.result.metadata.processing_time == pytest.approx(1.25)
        assert outcome.result.metadata.model_version == "df-3.1"

    async def test_request_shape(self, recording_transport):
        transport = recording_transport(
            {"status": "success", "results": [{"class": "fake", "confidence": 0.6}]}
        )
        await HiveAdapter("k1", transport=transport).detect(_IMAGE)

        assert transport.call_count == 1
        request = transport.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/api/v2/sync"
        assert request.headers["Authorization"] == "Bearer k1"
        assert request.headers["Content-Type"].startswith("multipart/form-data")
        assert request.extensions["timeout"]["read"] == pytest.approx(60.0)

        body = request.read()
        assert b'name="media"; filename="photo.jpg"' in body
        assert b'name="model"' in body and b"deepfake-detection" in body
        assert b'name="confidence_threshold"' in body
        assert b'name="return_metadata"' in body

    async def test_scalar_score_is_synthesised(self, recording_transport):
        transport = recording_transport({"status": "success", "score": 0.3})
        outcome = await HiveAdapter("k1", transport=transport).detect(_IMAGE)

        assert isinstance(outcome, DetectionSuccess)
        labels = [(p.label, p.confidence) for p in outcome.result.predictions]
        assert labels[0][0] == PredictionClass.REAL
        assert labels[0][1] == pytest.approx(0.7)
        assert labels[1] == (PredictionClass.FAKE, pytest.approx(0.3))

    @pytest.mark.parametrize(
        "payload",
        [
            {"status": "success"},
            {"status": "success", "results": []},
            {"status": "success", "results": [{"class": "real"}]},
            {"status": "success", "results": [{"class": "real", "confidence": 1.7}]},
            {"results": [{"class": "real", "confidence": 0.9}]},
            ["not", "an", "object"],
        ],
    )
    async def test_malformed_body_is_failure_not_partial(self, recording_transport, payload):
        transport = recording_transport(payload)
        outcome = await HiveAdapter("k1", transport=transport).detect(_IMAGE)

        assert isinstance(outcome, DetectionFailure)
        assert outcome.kind == ErrorKind.MALFORMED_RESPONSE
        assert outcome.error == "Invalid response format from Hive API"

    async def test_non_json_body_is_malformed(self, recording_transport):
        transport = recording_transport(lambda request: httpx.Response(200, text="<html>oops</html>"))
        outcome = await HiveAdapter("k1", transport=transport).detect(_IMAGE)
        assert outcome.kind == ErrorKind.MALFORMED_RESPONSE

    async def test_vendor_reported_error(self, recording_transport):
        transport = recording_transport({"status": "error", "message": "quota exceeded"})
        outcome = await HiveAdapter("k1", transport=transport).detect(_IMAGE)

        assert outcome.kind == ErrorKind.VENDOR_ERROR
        assert "quota exceeded" in outcome.error

    async def test_http_500_single_attempt(self, recording_transport):
        transport = recording_transport({"message": "upstream exploded"}, status_code=500)
        outcome = await HiveAdapter("k1", transport=transport).detect(_IMAGE)

        assert transport.call_count == 1
        assert outcome.kind == ErrorKind.VENDOR_ERROR
        assert outcome.error == "API Error: upstream exploded"

    async def test_http_error_without_body_uses_reason_phrase(self, recording_transport):
        transport = recording_transport(lambda request: httpx.Response(401))
        outcome = await HiveAdapter("k1", transport=transport).detect(_IMAGE)
        assert outcome.error == "API Error: Unauthorized"

    async def test_connection_error_is_network_failure(self, recording_transport):
        def _refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        transport = recording_transport(_refuse)
        outcome = await HiveAdapter("k1", transport=transport).detect(_IMAGE)

        assert transport.call_count == 1
        assert outcome.kind == ErrorKind.NETWORK_ERROR
        assert outcome.error == "Network error: Unable to connect to Hive API"

    async def test_timeout_is_network_failure(self, recording_transport):
        def _stall(request):
            raise httpx.ReadTimeout("timed out", request=request)

        outcome = await HiveAdapter("k1", transport=recording_transport(_stall)).detect(_IMAGE)
        assert outcome.kind == ErrorKind.NETWORK_ERROR


# ─── HiveAdapter — async ──────────────────────────────────────────────────────


class TestHiveAsync:
    async def test_submit_returns_task_id(self, recording_transport):
        transport = recording_transport({"status": "success", "task_id": "task-42"})
        task_id = await HiveAdapter("k1", transport=transport).submit(_IMAGE)

        assert task_id == "task-42"
        assert transport.requests[0].url.path == "/api/v2/async"

    async def test_submit_without_task_id_raises(self, recording_transport):
        transport = recording_transport({"status": "success"})
        with pytest.raises(MalformedResponse):
            await HiveAdapter("k1", transport=transport).submit(_IMAGE)

    async def test_submit_transport_error_raises(self, recording_transport):
        def _refuse(request):
            raise httpx.ConnectError("down", request=request)

        with pytest.raises(NetworkError):
            await HiveAdapter("k1", transport=recording_transport(_refuse)).submit(_IMAGE)

    async def test_poll_processing_is_pending(self, recording_transport):
        transport = recording_transport({"status": "processing"})
        outcome = await HiveAdapter("k1", transport=transport).poll("task-42")

        assert isinstance(outcome, DetectionPending)
        assert outcome.task_id == "task-42"
        assert not isinstance(outcome, (DetectionSuccess, DetectionFailure))

    async def test_poll_uses_get_with_short_timeout(self, recording_transport):
        transport = recording_transport({"status": "processing"})
        await HiveAdapter("k1", transport=transport).poll("task-42")

        request = transport.requests[0]
        assert request.method == "GET"
        assert request.url.path == "/api/v2/task/task-42"
        assert request.extensions["timeout"]["read"] == pytest.approx(10.0)
        assert transport.call_count == 1

    async def test_poll_escapes_task_id_in_path(self, recording_transport):
        transport = recording_transport({"status": "processing"})
        outcome = await HiveAdapter("k1", transport=transport).poll("t-1?admin=true#x")

        request = transport.requests[0]
        assert request.url.raw_path == b"/api/v2/task/t-1%3Fadmin%3Dtrue%23x"
        assert request.url.query == b""
        assert outcome.task_id == "t-1?admin=true#x"

    async def test_poll_escapes_path_separators(self, recording_transport):
        transport = recording_transport({"status": "processing"})
        await HiveAdapter("k1", transport=transport).poll("../user")

        assert transport.requests[0].url.raw_path == b"/api/v2/task/..%2Fuser"

    async def test_poll_completed_is_success(self, recording_transport):
        transport = recording_transport(
            {"status": "completed", "results": [{"class": "fake", "confidence": 0.88}]}
        )
        outcome = await HiveAdapter("k1", transport=transport).poll("task-42")

        assert isinstance(outcome, DetectionSuccess)
        assert outcome.result.primary.label == PredictionClass.FAKE

    async def test_poll_completed_without_results_is_malformed(self, recording_transport):
        transport = recording_transport({"status": "completed"})
        outcome = await HiveAdapter("k1", transport=transport).poll("task-42")
        assert outcome.kind == ErrorKind.MALFORMED_RESPONSE

    async def test_poll_failed_carries_vendor_message(self, recording_transport):
        transport = recording_transport({"status": "failed", "error": "unsupported codec"})
        outcome = await HiveAdapter("k1", transport=transport).poll("task-42")

        assert outcome.kind == ErrorKind.VENDOR_ERROR
        assert outcome.error == "unsupported codec"

    async def test_poll_failed_default_message(self, recording_transport):
        transport = recording_transport({"status": "failed"})
        outcome = await HiveAdapter("k1", transport=transport).poll("task-42")
        assert outcome.error == "Task failed"

    async def test_poll_unknown_status(self, recording_transport):
        transport = recording_transport({"status": "queued-ish"})
        outcome = await HiveAdapter("k1", transport=transport).poll("task-42")

        assert outcome.kind == ErrorKind.MALFORMED_RESPONSE
        assert outcome.error == "Unknown task status"


# ─── DeepAIAdapter ────────────────────────────────────────────────────────────


class TestDeepAIDetect:
    async def test_fake_score_expanded(self, recording_transport):
        transport = recording_transport({"output": {"fake_score": 0.83}, "processing_time": 2.5})
        outcome = await DeepAIAdapter("k1", transport=transport).detect(_IMAGE)

        assert isinstance(outcome, DetectionSuccess)
        real, fake = outcome.result.predictions
        assert real.label == PredictionClass.REAL
        assert real.confidence == pytest.approx(0.17)
        assert fake.label == PredictionClass.FAKE
        assert fake.confidence == pytest.approx(0.83)
        assert outcome.result.metadata.model_version == MODEL_VERSION
        assert outcome.result.metadata.processing_time == pytest.approx(2.5)

    async def test_request_shape(self, recording_transport):
        transport = recording_transport({"output": {"fake_score": 0.1}})
        await DeepAIAdapter("k1", transport=transport).detect(_IMAGE)

        request = transport.requests[0]
        assert request.url.path == "/api/deepfake-detection"
        assert request.headers["api-key"] == "k1"
        assert "Authorization" not in request.headers
        assert b'name="image"; filename="photo.jpg"' in request.read()

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"output": None},
            {"output": {}},
            {"output": {"fake_score": "high"}},
            {"output": {"fake_score": 1.2}},
        ],
    )
    async def test_missing_or_bad_score_is_malformed(self, recording_transport, payload):
        transport = recording_transport(payload)
        outcome = await DeepAIAdapter("k1", transport=transport).detect(_IMAGE)

        assert isinstance(outcome, DetectionFailure)
        assert outcome.kind == ErrorKind.MALFORMED_RESPONSE
        assert outcome.error == "Invalid response format from DeepAI API"

    async def test_error_body_uses_err_key(self, recording_transport):
        transport = recording_transport({"err": "Invalid API key"}, status_code=401)
        outcome = await DeepAIAdapter("k1", transport=transport).detect(_IMAGE)
        assert outcome.error == "API Error: Invalid API key"

    async def test_credential_check_returns_user(self, recording_transport):
        transport = recording_transport({"id": 7, "username": "tester"})
        user = await DeepAIAdapter("k1", transport=transport).check_credential()

        assert user["username"] == "tester"
        request = transport.requests[0]
        assert request.method == "GET"
        assert request.url.path == "/api/user"
        assert request.extensions["timeout"]["read"] == pytest.approx(10.0)
