"""
Tests for the status and transcribe endpoints.

Routes are driven through FastAPI's TestClient with an in-memory engine.
"""

import numpy as np
from fastapi.testclient import TestClient

from saytype_bridge import __version__
from saytype_bridge.api.main import create_app
from saytype_bridge.api.state import ServerState
from saytype_bridge.config import ConfigStore
from saytype_bridge.tests.conftest import StubEngine


def _client_for(engine) -> TestClient:
    return TestClient(create_app(ServerState(token="t1", engine=engine)))


class TestStatus:
    def test_requires_token(self, client):
        """Test that a request without a token gets 401 UNAUTHORIZED."""
        response = client.get("/api/status")
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid token", "code": "UNAUTHORIZED"}

    def test_wrong_token_rejected(self, client):
        """Test that a token mismatch gets 401."""
        response = client.get("/api/status", headers={"Authorization": "Bearer t2"})
        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHORIZED"

    def test_ready_when_model_loaded(self, client, headers):
        """Test that a loaded model reports "ready" with its name and the version."""
        response = client.get("/api/status", headers=headers)
        assert response.status_code == 200
        assert response.json() == {
            "status": "ready",
            "model_loaded": True,
            "current_model": "stub-model",
            "version": __version__,
        }

    def test_loading_when_model_not_loaded(self, headers):
        """Test that an engine without a model reports "loading"."""
        response = _client_for(StubEngine(loaded=False)).get("/api/status", headers=headers)
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "loading"
        assert body["model_loaded"] is False
        assert body["current_model"] is None

    def test_loading_when_no_engine(self, headers):
        """Test that a missing engine reports "loading" rather than failing."""
        response = _client_for(None).get("/api/status", headers=headers)
        assert response.status_code == 200
        assert response.json()["status"] == "loading"
        assert response.json()["current_model"] is None


class TestTranscribe:
    def test_success(self, client, headers, mono_wav, b64encode, engine):
        """Test that a valid WAV returns the engine's transcript."""
        response = client.post(
            "/api/transcribe",
            headers=headers,
            json={"audio_base64": b64encode(mono_wav), "format": "wav"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["raw_text"] == "hello"
        assert body["polished_text"] == "hello"
        assert body["language"] == "auto"
        assert isinstance(body["processing_time_ms"], int)
        assert body["processing_time_ms"] >= 0

        assert len(engine.calls) == 1
        assert engine.calls[0].dtype == np.float32
        assert len(engine.calls[0]) == 8000

    def test_format_defaults_to_wav(self, client, headers, mono_wav, b64encode):
        """Test that an absent format is decoded as WAV."""
        response = client.post(
            "/api/transcribe", headers=headers, json={"audio_base64": b64encode(mono_wav)}
        )
        assert response.status_code == 200

    def test_accepts_camel_case_fields(self, client, headers, mono_wav, b64encode):
        """Test that camelCase request fields are accepted."""
        response = client.post(
            "/api/transcribe",
            headers=headers,
            json={"audioBase64": b64encode(mono_wav), "sampleRateHint": 16000},
        )
        assert response.status_code == 200
        assert response.json()["raw_text"] == "hello"

    def test_polish_flag_has_no_effect(self, headers, mono_wav, b64encode):
        """Test that polish=true returns the raw transcript unchanged."""
        client = _client_for(StubEngine(text="  um, hello there  "))
        response = client.post(
            "/api/transcribe",
            headers=headers,
            json={"audio_base64": b64encode(mono_wav), "polish": True},
        )
        body = response.json()
        assert body["raw_text"] == "  um, hello there  "
        assert body["polished_text"] == body["raw_text"]

    def test_engine_gets_canonical_audio(self, client, headers, wav_factory, b64encode, engine):
        """Test that stereo 48 kHz input reaches the engine as mono 16 kHz."""
        stereo_48k = np.full((4800, 2), 0.25, dtype=np.float32)
        payload = b64encode(wav_factory(stereo_48k, sample_rate=48000, subtype="FLOAT"))

        response = client.post("/api/transcribe", headers=headers, json={"audio_base64": payload})

        assert response.status_code == 200
        samples = engine.calls[0]
        assert len(samples) == 1600
        np.testing.assert_allclose(samples, 0.25, atol=1e-6)

    def test_requires_token(self, client, mono_wav, b64encode, engine):
        """Test that a request without a token gets 401 UNAUTHORIZED."""
        response = client.post("/api/transcribe", json={"audio_base64": b64encode(mono_wav)})
        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHORIZED"
        assert engine.calls == []

    def test_auth_checked_before_body(self, client):
        """Test that a bad body without a token is rejected as 401, not 400."""
        response = client.post(
            "/api/transcribe",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 401

    def test_invalid_base64(self, client, headers, engine):
        """Test that invalid base64 gets 400 DECODE_ERROR."""
        response = client.post(
            "/api/transcribe", headers=headers, json={"audio_base64": "not-valid-base64!!!"}
        )
        assert response.status_code == 400
        assert response.json()["code"] == "DECODE_ERROR"
        assert engine.calls == []

    def test_unknown_format(self, client, headers, mono_wav, b64encode):
        """Test that an unknown format tag gets 400 INVALID_FORMAT naming the tag."""
        response = client.post(
            "/api/transcribe",
            headers=headers,
            json={"audio_base64": b64encode(mono_wav), "format": "mp3"},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_FORMAT"
        assert "mp3" in response.json()["error"]

    def test_empty_format_is_not_the_default(self, client, headers, mono_wav, b64encode, engine):
        """Test that an explicit empty format fails instead of falling back to WAV."""
        response = client.post(
            "/api/transcribe",
            headers=headers,
            json={"audio_base64": b64encode(mono_wav), "format": ""},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_FORMAT"
        assert engine.calls == []

    def test_ogg_not_implemented(self, client, headers, mono_wav, b64encode):
        """Test that ogg is reported as not yet implemented."""
        response = client.post(
            "/api/transcribe",
            headers=headers,
            json={"audio_base64": b64encode(mono_wav), "format": "ogg"},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_FORMAT"
        assert "not yet implemented" in response.json()["error"]

    def test_malformed_wav(self, client, headers, b64encode):
        """Test that bytes that are not a WAV container get INVALID_FORMAT."""
        response = client.post(
            "/api/transcribe",
            headers=headers,
            json={"audio_base64": b64encode(bytes([0, 1, 2, 3]))},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_FORMAT"

    def test_missing_audio_field(self, client, headers):
        """Test that a body without audio_base64 gets INVALID_FORMAT."""
        response = client.post("/api/transcribe", headers=headers, json={"format": "wav"})
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_FORMAT"

    def test_body_not_json(self, client, headers):
        """Test that a non-JSON body gets INVALID_FORMAT."""
        response = client.post(
            "/api/transcribe",
            headers={**headers, "Content-Type": "application/json"},
            content=b"{not json",
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_FORMAT"

    def test_model_not_loaded(self, headers, mono_wav, b64encode):
        """Test that an unloaded model gets 503 and inference is not called."""
        engine = StubEngine(loaded=False)
        response = _client_for(engine).post(
            "/api/transcribe", headers=headers, json={"audio_base64": b64encode(mono_wav)}
        )
        assert response.status_code == 503
        assert response.json()["code"] == "MODEL_NOT_LOADED"
        assert engine.calls == []

    def test_no_engine(self, headers, mono_wav, b64encode):
        """Test that a missing engine gets 503 MODEL_NOT_LOADED."""
        response = _client_for(None).post(
            "/api/transcribe", headers=headers, json={"audio_base64": b64encode(mono_wav)}
        )
        assert response.status_code == 503
        assert response.json()["code"] == "MODEL_NOT_LOADED"

    def test_decode_error_reported_before_engine_state(self, headers):
        """Test that a bad payload is a 400 even without an engine."""
        response = _client_for(None).post(
            "/api/transcribe", headers=headers, json={"audio_base64": "not-valid-base64!!!"}
        )
        assert response.status_code == 400
        assert response.json()["code"] == "DECODE_ERROR"

    def test_inference_failure(self, headers, mono_wav, b64encode):
        """Test that an engine exception becomes 500 TRANSCRIBE_ERROR."""
        engine = StubEngine(error=RuntimeError("CUDA out of memory"))
        response = _client_for(engine).post(
            "/api/transcribe", headers=headers, json={"audio_base64": b64encode(mono_wav)}
        )
        assert response.status_code == 500
        assert response.json() == {"error": "CUDA out of memory", "code": "TRANSCRIBE_ERROR"}


class TestCors:
    def test_preflight_allows_any_origin(self, client):
        """Test that a LAN origin passes the CORS preflight."""
        response = client.options(
            "/api/transcribe",
            headers={
                "Origin": "http://192.168.1.20:3000",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "authorization,content-type",
            },
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
        assert "authorization" in response.headers["access-control-allow-headers"].lower()

    def test_simple_request_gets_cors_header(self, client, headers):
        """Test that simple requests carry the wildcard origin header."""
        response = client.get(
            "/api/status", headers={**headers, "Origin": "http://phone.local"}
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"


def test_running_server_keeps_token_it_started_with(tmp_path, mono_wav, b64encode):
    """Regenerating the stored token does not reach an already created app."""
    store = ConfigStore(tmp_path / "bridge.yaml")
    old_token = store.get().token
    client = TestClient(create_app(ServerState(token=old_token, engine=StubEngine())))

    new_token = store.regenerate_token()
    assert new_token != old_token

    old = client.get("/api/status", headers={"Authorization": f"Bearer {old_token}"})
    new = client.get("/api/status", headers={"Authorization": f"Bearer {new_token}"})
    assert old.status_code == 200
    assert new.status_code == 401
