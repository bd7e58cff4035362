"""Tests for audio download and the speech pipeline proxy."""

from services.api.src.helpline.adapters.speech_pipeline import PipelineOutput, SpeechPipelineError
from services.api.src.helpline.main import app
from services.api.src.helpline.routes import deps


def test_download_missing_audio(client):
    assert client.get("/api/helpline/audio/audio/nothing.wav").status_code == 404


def test_download_stored_audio(client, storage):
    storage.put("synth/m1.wav", b"RIFF-synth")
    res = client.get("/api/helpline/audio/synth/m1.wav")
    assert res.status_code == 200
    assert res.content == b"RIFF-synth"


class TestProcessAudio:
    def test_returns_pipeline_shape(self, client, login_as):
        _, headers = login_as("user")
        res = client.post("/api/helpline/process-audio", json={"base64Audio": "UklGRg=="},
                          headers=headers)
        assert res.status_code == 200
        stages = res.json()["pipelineResponse"]
        assert stages[0]["output"][0]["source"] == "मेरे घर में आग लगी है"
        assert stages[1]["output"][0]["target"] == "There is a fire in my house"
        assert stages[2]["audio"][0]["audioContent"] == ""

    def test_returns_raw_body_when_available(self, client, login_as):
        raw = {"pipelineResponse": [{"taskType": "asr", "output": [{"source": "raw"}]}]}

        def with_raw(base64_audio):
            return PipelineOutput("raw", "", "", "bhashini", raw=raw)

        app.dependency_overrides[deps._process_fn] = lambda: with_raw
        _, headers = login_as("agent")
        res = client.post("/api/helpline/process-audio", json={"base64Audio": "UklGRg=="},
                          headers=headers)
        assert res.json() == raw

    def test_empty_audio(self, client, login_as):
        _, headers = login_as("user")
        res = client.post("/api/helpline/process-audio", json={"base64Audio": ""}, headers=headers)
        assert res.status_code == 400
        assert res.json()["detail"] == "No audio data received"

    def test_pipeline_failure(self, client, login_as):
        def broken(base64_audio):
            raise SpeechPipelineError("Pipeline returned 502")

        app.dependency_overrides[deps._process_fn] = lambda: broken
        _, headers = login_as("user")
        res = client.post("/api/helpline/process-audio", json={"base64Audio": "UklGRg=="},
                          headers=headers)
        assert res.status_code == 500
        assert "Failed to process audio" in res.json()["detail"]

    def test_requires_login(self, client):
        res = client.post("/api/helpline/process-audio", json={"base64Audio": "UklGRg=="})
        assert res.status_code == 401
