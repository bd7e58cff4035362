"""Shared fixtures for API route tests."""

import pytest
from fastapi.testclient import TestClient

from services.api.src.helpline.adapters.speech_pipeline import PipelineOutput
from services.api.src.helpline.core.auth import issue_token
from services.api.src.helpline.main import app
from services.api.src.helpline.routes import deps


def fake_process(base64_audio):
    return PipelineOutput(
        transcription_text="मेरे घर में आग लगी है",
        translated_text="There is a fire in my house",
        audio_base64="",
        model="mock",
    )


@pytest.fixture
def client(engine, storage):
    """TestClient with overridden engine, storage and speech pipeline."""
    app.dependency_overrides[deps._engine] = lambda: engine
    app.dependency_overrides[deps._storage] = lambda: storage
    app.dependency_overrides[deps._process_fn] = lambda: fake_process
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def login_as(make_user):
    """Create an account with `role` and return (user_row, auth_headers)."""

    def _login(role: str = "user", name: str = "Test Person"):
        user = make_user(role, name)
        token = issue_token(user["id"], role)
        return user, {"Authorization": f"Bearer {token}"}

    return _login


@pytest.fixture
def submit(client):
    """Post a recording as the given caller and return the JSON body."""

    def _submit(headers, audio=b"RIFF-caller-WAVE", **form):
        res = client.post(
            "/api/helpline/messages",
            files={"audio": ("recording.wav", audio, "audio/wav")},
            data={k: str(v) for k, v in form.items()},
            headers=headers,
        )
        assert res.status_code == 200, res.text
        return res.json()

    return _submit
