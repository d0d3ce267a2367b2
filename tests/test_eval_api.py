API = "/api"
AUDIO = b"RIFF" + b"\x00" * 4000   # above MIN_AUDIO_BYTES


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["ok"] is True
    assert r.json()["stt_configured"] is False

def test_eval_text(client):
    r = client.post(f"{API}/eval", json={"expected_text": "Good morning", "spoken_text": "good morning everyone"})
    assert r.status_code == 200
    data = r.json()
    assert data["completeness"] == 100
    assert data["level"] == "excellent"
    assert [w["status"] for w in data["word_analysis"]] == ["correct", "correct", "extra"]
    assert data["word_analysis"][2] == {"expected": "", "spoken": "everyone", "status": "extra", "similarity": 0.0}

def test_eval_text_defaults_to_empty(client):
    r = client.post(f"{API}/eval", json={})
    assert r.status_code == 200
    assert r.json()["level"] == "poor"

def test_eval_text_too_long(client):
    r = client.post(f"{API}/eval", json={"expected_text": "a" * 1001, "spoken_text": "a"})
    assert r.status_code == 422

def test_eval_audio_records_practice(client, fake_stt):
    fake_stt.responses = [(200, {"text": "I like toffee."})]
    r = client.post(
        f"{API}/eval/audio",
        data={"expected_text": "I like coffee", "language": "en-GB", "user_id": "eval-u1", "mode": "practice"},
        files={"audio": ("rec.m4a", AUDIO, "audio/m4a")},
    )
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["transcription"] == "I like toffee."
    assert data["language"] == "en"
    assert data["evaluation"]["level"] == "excellent"
    assert data["practice_id"].startswith("practice_")

    r = client.get(f"{API}/practice/eval-u1/practice")
    assert r.status_code == 200
    rows = r.json()
    assert len(rows) == 1
    assert rows[0]["id"] == data["practice_id"]
    assert rows[0]["sentence"] == "I like coffee"
    assert rows[0]["accuracy"] == data["evaluation"]["accuracy"]
    assert rows[0]["word_analysis"][2]["status"] == "similar"

def test_eval_audio_without_user_does_not_record(client, fake_stt):
    fake_stt.responses = [(200, {"text": "hello"})]
    r = client.post(
        f"{API}/eval/audio",
        data={"expected_text": "hello"},
        files={"audio": ("rec.wav", AUDIO, "audio/wav")},
    )
    assert r.status_code == 200
    assert r.json()["practice_id"] is None
    assert r.json()["evaluation"]["accuracy"] == 100

def test_eval_audio_empty_upload(client, fake_stt):
    r = client.post(
        f"{API}/eval/audio",
        data={"expected_text": "hello"},
        files={"audio": ("rec.wav", b"", "audio/wav")},
    )
    assert r.status_code == 400
    assert fake_stt.requests == []

def test_eval_audio_vendor_error_is_rendered(client, fake_stt):
    fake_stt.responses = [(401, {"detail": "bad key"})]
    r = client.post(
        f"{API}/eval/audio",
        data={"expected_text": "hello"},
        files={"audio": ("rec.wav", AUDIO, "audio/wav")},
    )
    assert r.status_code == 502
    assert r.json()["error"]["code"] == "API_KEY_INVALID"

def test_eval_audio_retry_with_same_request_id_records_once(client, fake_stt):
    fake_stt.responses = [(200, {"text": "good morning"})]
    kwargs = dict(
        data={"expected_text": "Good morning", "user_id": "eval-retry", "mode": "learn"},
        files={"audio": ("rec.wav", AUDIO, "audio/wav")},
        headers={"X-Req-Id": "retry-1"},
    )
    first = client.post(f"{API}/eval/audio", **kwargs)
    second = client.post(f"{API}/eval/audio", **kwargs)
    assert first.status_code == second.status_code == 200
    assert first.json() == second.json()

    rows = client.get(f"{API}/practice/eval-retry/learn").json()
    assert [r["id"] for r in rows] == [first.json()["practice_id"]]
    assert len(fake_stt.requests) == 1

def test_eval_audio_request_id_does_not_replay_stt_response(client, fake_stt):
    fake_stt.responses = [(200, {"text": "hello"})]
    headers = {"X-Req-Id": "shared-1"}
    r = client.post(f"{API}/stt", headers=headers, files={"audio": ("a.wav", AUDIO, "audio/wav")})
    assert r.json()["text"] == "hello"

    r = client.post(
        f"{API}/eval/audio", headers=headers,
        data={"expected_text": "hello"},
        files={"audio": ("rec.wav", AUDIO, "audio/wav")},
    )
    assert r.status_code == 200
    assert r.json()["evaluation"]["accuracy"] == 100

def test_health_reports_stt_key(client, fake_stt):
    assert client.get("/health").json()["stt_configured"] is True
