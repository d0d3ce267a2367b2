import os
import tempfile

# must run before speechcoach.core.config builds its settings
_tmpdir = tempfile.mkdtemp(prefix="speechcoach-test-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmpdir, 'test.db')}"
os.environ["ELEVENLABS_API_KEY"] = ""

import httpx
import pytest
from fastapi.testclient import TestClient

from speechcoach.main import app
from speechcoach.services.stt.elevenlabs_client import ElevenLabsSTT, get_stt
from speechcoach.utils.idempotency import clear_caches


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    clear_caches()


class FakeElevenLabs:
    """Records calls and replays canned (status, json) responses in order."""

    def __init__(self, *responses):
        self.responses = list(responses) or [(200, {"text": "hello"})]
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        status, body = self.responses[min(len(self.requests), len(self.responses)) - 1]
        return httpx.Response(status, json=body)

    def client(self, **kw) -> ElevenLabsSTT:
        kw.setdefault("api_key", "test-key")
        kw.setdefault("base_url", "https://stt.test/v1")
        kw.setdefault("backoff_base", 0.0)
        return ElevenLabsSTT(transport=httpx.MockTransport(self), **kw)


@pytest.fixture
def fake_stt(client):
    """Route the app's STT dependency to a FakeElevenLabs; tweak `.responses` per test."""
    fake = FakeElevenLabs()
    stt = fake.client()
    app.dependency_overrides[get_stt] = lambda: stt
    return fake
