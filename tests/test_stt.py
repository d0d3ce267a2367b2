import asyncio

import httpx
import pytest

from conftest import FakeElevenLabs
from speechcoach.core.errors import AppError, ErrorCode
from speechcoach.services.stt.elevenlabs_client import ElevenLabsSTT, to_language_code

API = "/api"
AUDIO = b"\x01" * 2048


def _run(coro):
    return asyncio.run(coro)


# ---- client ----

@pytest.mark.parametrize("locale,code", [
    ("en-US", "en"), ("en-GB", "en"), ("tr-TR", "tr"), ("ko-KR", "ko"),
    ("de", "de"), ("FR", "fr"), ("xx-YY", "en"), (None, "en"), ("", "en"),
])
def test_language_codes(locale, code):
    assert to_language_code(locale) == code

def test_transcribe_sends_multipart_form():
    fake = FakeElevenLabs((200, {"text": "Guten Morgen"}))
    res = _run(fake.client().transcribe(AUDIO, language="de-DE", content_type="audio/m4a"))
    assert res.text == "Guten Morgen"
    assert res.language == "de"
    assert res.confidence == 1.0

    (req,) = fake.requests
    assert str(req.url) == "https://stt.test/v1/speech-to-text"
    assert req.headers["xi-api-key"] == "test-key"
    body = req.content
    assert b'name="model_id"' in body and b"scribe_v1" in body
    assert b'name="language"' in body
    assert b'filename="recording.m4a"' in body

def test_tiny_audio_is_silence_without_request():
    fake = FakeElevenLabs()
    res = _run(fake.client().transcribe(b"\x00" * 999))
    assert res.text == ""
    assert res.confidence == 0.0
    assert fake.requests == []

def test_missing_api_key():
    fake = FakeElevenLabs()
    with pytest.raises(AppError) as exc:
        _run(fake.client(api_key="").transcribe(AUDIO))
    assert exc.value.code == ErrorCode.API_KEY_MISSING
    assert fake.requests == []

def test_rate_limit_is_retried():
    fake = FakeElevenLabs((429, {}), (200, {"text": "hello"}))
    res = _run(fake.client().transcribe(AUDIO))
    assert res.text == "hello"
    assert len(fake.requests) == 2

def test_rate_limit_gives_up_after_max_retries():
    fake = FakeElevenLabs((429, {}))
    with pytest.raises(AppError) as exc:
        _run(fake.client(max_retries=3).transcribe(AUDIO))
    assert exc.value.code == ErrorCode.API_RATE_LIMIT
    assert len(fake.requests) == 3

@pytest.mark.parametrize("status,code", [
    (401, ErrorCode.API_KEY_INVALID),
    (403, ErrorCode.API_UNAUTHORIZED),
    (422, ErrorCode.AUDIO_ERROR),
    (500, ErrorCode.API_SERVER_ERROR),
])
def test_other_errors_are_not_retried(status, code):
    fake = FakeElevenLabs((status, {"detail": "nope"}))
    with pytest.raises(AppError) as exc:
        _run(fake.client().transcribe(AUDIO))
    assert exc.value.code == code
    assert len(fake.requests) == 1

def test_response_without_text():
    fake = FakeElevenLabs((200, {"alignment": {}}))
    with pytest.raises(AppError) as exc:
        _run(fake.client().transcribe(AUDIO))
    assert exc.value.code == ErrorCode.API_SERVER_ERROR

def test_network_error():
    def boom(request):
        raise httpx.ConnectError("connection refused", request=request)

    stt = ElevenLabsSTT(api_key="k", transport=httpx.MockTransport(boom))
    with pytest.raises(AppError) as exc:
        _run(stt.transcribe(AUDIO))
    assert exc.value.code == ErrorCode.NETWORK_ERROR

def test_timeout():
    def slow(request):
        raise httpx.ReadTimeout("too slow", request=request)

    stt = ElevenLabsSTT(api_key="k", transport=httpx.MockTransport(slow))
    with pytest.raises(AppError) as exc:
        _run(stt.transcribe(AUDIO))
    assert exc.value.code == ErrorCode.TIMEOUT_ERROR


# ---- router ----

def test_languages(client):
    r = client.get(f"{API}/stt/languages")
    assert r.status_code == 200
    data = r.json()
    assert data["default"] == "en"
    assert len(data["languages"]) == 13
    assert data["languages"]["ja-JP"] == "ja"

def test_stt_endpoint_reuses_transcription_for_same_audio(client, fake_stt):
    fake_stt.responses = [(200, {"text": "hello there"})]
    for _ in range(2):
        r = client.post(f"{API}/stt", data={"language": "en-US"}, files={"audio": ("a.wav", AUDIO, "audio/wav")})
        assert r.status_code == 200
        assert r.json() == {"text": "hello there", "language": "en", "confidence": 1.0}
    assert len(fake_stt.requests) == 1

def test_stt_endpoint_replays_request_id(client, fake_stt):
    fake_stt.responses = [(200, {"text": "first"}), (200, {"text": "second"})]
    headers = {"X-Req-Id": "req-1"}
    r1 = client.post(f"{API}/stt", headers=headers, files={"audio": ("a.wav", AUDIO, "audio/wav")})
    r2 = client.post(f"{API}/stt", headers=headers, files={"audio": ("a.wav", AUDIO + b"\x02", "audio/wav")})
    assert r1.json()["text"] == r2.json()["text"] == "first"
    assert len(fake_stt.requests) == 1

def test_stt_endpoint_missing_key(client):
    from speechcoach.main import app
    from speechcoach.services.stt.elevenlabs_client import get_stt

    app.dependency_overrides[get_stt] = lambda: ElevenLabsSTT(api_key="")
    r = client.post(f"{API}/stt", files={"audio": ("a.wav", AUDIO, "audio/wav")})
    assert r.status_code == 503
    assert r.json()["error"]["code"] == "API_KEY_MISSING"

def test_stt_endpoint_empty_upload(client):
    r = client.post(f"{API}/stt", files={"audio": ("a.wav", b"", "audio/wav")})
    assert r.status_code == 400
