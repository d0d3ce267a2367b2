# speechcoach/services/stt/elevenlabs_client.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from speechcoach.core.config import settings
from speechcoach.core.errors import AppError, ErrorCode, error_from_status
from speechcoach.schemas.stt import STTResponse
from speechcoach.utils.idempotency import (
    audio_fingerprint, cached_transcript, idempotency_get, idempotency_store, store_transcript,
)

log = logging.getLogger("stt")

STT_PATH = "/speech-to-text"

# App locale -> ISO 639-1 code expected by ElevenLabs
LANGUAGE_CODE_MAP: Dict[str, str] = {
    "tr-TR": "tr",
    "en-US": "en",
    "en-GB": "en",
    "de-DE": "de",
    "es-ES": "es",
    "fr-FR": "fr",
    "it-IT": "it",
    "pt-BR": "pt",
    "ru-RU": "ru",
    "ar-SA": "ar",
    "zh-CN": "zh",
    "ja-JP": "ja",
    "ko-KR": "ko",
}
DEFAULT_LANGUAGE = "en"


def to_language_code(language: Optional[str]) -> str:
    if not language:
        return DEFAULT_LANGUAGE
    if language in LANGUAGE_CODE_MAP:
        return LANGUAGE_CODE_MAP[language]
    if len(language) == 2 and language.isalpha():
        return language.lower()
    return DEFAULT_LANGUAGE


def _upload_name_and_mime(content_type: str, filename: Optional[str]) -> tuple[str, str]:
    ct = (content_type or "").lower()
    ext = (filename or "").rsplit(".", 1)[-1].lower() if filename and "." in filename else ""
    if "m4a" in ct or "mp4" in ct or "aac" in ct or ext == "m4a":
        return "recording.m4a", "audio/m4a"
    if "amr" in ct or ext == "amr":
        return "recording.amr", "audio/amr"
    if "webm" in ct or ext == "webm":
        return "recording.webm", "audio/webm"
    if "ogg" in ct or "opus" in ct or ext == "ogg":
        return "recording.ogg", "audio/ogg"
    if "mpeg" in ct or "mp3" in ct or ext == "mp3":
        return "recording.mp3", "audio/mpeg"
    return "recording.wav", "audio/wav"


class ElevenLabsSTT:
    """
    Async client for ElevenLabs `POST /v1/speech-to-text`.

      - multipart upload: file + model_id + language
      - 429 retried with exponential backoff (2s, 4s, ...), other failures raise at once
      - tiny uploads short-circuit to an empty transcription (silence)
      - vendor/network failures surface as AppError

    Example:
      stt = ElevenLabsSTT()
      res = await stt.transcribe(wav_bytes, language="de-DE", content_type="audio/wav")
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        min_audio_bytes: Optional[int] = None,
        backoff_base: float = 2.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.ELEVENLABS_API_KEY
        self.url = (base_url or settings.ELEVENLABS_BASE_URL).rstrip("/") + STT_PATH
        self.model = model or settings.ELEVENLABS_STT_MODEL
        self.timeout = timeout if timeout is not None else settings.STT_TIMEOUT
        self.max_retries = max(1, max_retries if max_retries is not None else settings.STT_MAX_RETRIES)
        self.min_audio_bytes = min_audio_bytes if min_audio_bytes is not None else settings.MIN_AUDIO_BYTES
        self.backoff_base = backoff_base
        self._transport = transport

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    # ----------------------- Low-level request helper -----------------------

    async def _apost_form(self, files: Dict[str, Any], data: Dict[str, str]) -> httpx.Response:
        headers = {"xi-api-key": self.api_key}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            attempt = 1
            while True:
                log.info("[STT] request attempt=%d/%d model=%s", attempt, self.max_retries, self.model)
                r = await client.post(self.url, headers=headers, files=files, data=data)
                if r.status_code != 429:
                    return r
                if attempt >= self.max_retries:
                    log.error("[STT] rate limited, giving up after %d attempts", attempt)
                    return r
                delay = self.backoff_base ** attempt
                log.warning("[STT] rate limited (attempt %d/%d), retrying in %.1fs",
                            attempt, self.max_retries, delay)
                await asyncio.sleep(delay)
                attempt += 1

    # ------------------------------ Transcribe ------------------------------

    async def transcribe(
        self,
        audio: bytes,
        language: Optional[str] = "en-US",
        content_type: str = "audio/wav",
        filename: Optional[str] = None,
    ) -> STTResponse:
        """
        Transcribe recorded audio bytes. `language` may be an app locale
        ("en-US") or a bare ISO code ("en").
        """
        lang = to_language_code(language)

        if len(audio) < self.min_audio_bytes:
            log.warning("[STT] audio too small (%d bytes), treating as silence", len(audio))
            return STTResponse(text="", language=lang, confidence=0.0)

        if not self.api_key:
            raise AppError(
                ErrorCode.API_KEY_MISSING,
                "ElevenLabs API key not found. Please configure ELEVENLABS_API_KEY.",
            )

        name, mime = _upload_name_and_mime(content_type, filename)
        files = {"file": (name, audio, mime)}
        data = {"model_id": self.model, "language": lang}
        log.info("[STT] sending bytes=%d mime=%s language=%s", len(audio), mime, lang)

        try:
            r = await self._apost_form(files, data)
        except httpx.TimeoutException as e:
            log.error("[STT] timeout: %s", e)
            raise AppError(ErrorCode.TIMEOUT_ERROR) from e
        except httpx.TransportError as e:
            log.error("[STT] network error: %s", e)
            raise AppError(ErrorCode.NETWORK_ERROR) from e

        if r.status_code not in (200, 201):
            log.error("[STT] API error status=%d body=%r", r.status_code, r.text[:200])
            raise error_from_status(r.status_code, r.text)

        try:
            body = r.json()
        except ValueError as e:
            raise AppError(ErrorCode.API_SERVER_ERROR, "Invalid response from ElevenLabs API") from e

        text = body.get("text") if isinstance(body, dict) else None
        if not text:
            log.error("[STT] response without text: %r", body)
            raise AppError(ErrorCode.API_SERVER_ERROR, "Invalid response from ElevenLabs API")

        log.info("[STT] ok language=%s text_len=%d text=%r", lang, len(text), text[:140])
        # ElevenLabs does not report confidence
        return STTResponse(text=text, language=lang, confidence=1.0)


# --- Lazy singleton + cached transcription -----------------------------------

_stt_singleton: Optional[ElevenLabsSTT] = None

def get_stt() -> ElevenLabsSTT:
    """FastAPI dependency; tests swap it through app.dependency_overrides."""
    global _stt_singleton
    if _stt_singleton is None:
        _stt_singleton = ElevenLabsSTT()
    return _stt_singleton


async def transcribe_cached(
    stt: ElevenLabsSTT,
    audio: bytes,
    language: Optional[str],
    content_type: str = "",
    filename: Optional[str] = None,
    req_id: Optional[str] = None,
) -> STTResponse:
    """
    Transcribe once per (audio bytes, language) within the cache TTL, and
    replay the stored result for a retried X-Req-Id.
    """
    hit = idempotency_get(req_id)
    if hit is not None:
        log.info("[STT] replaying cached result for req_id=%s", req_id)
        return hit

    fp = audio_fingerprint(audio, to_language_code(language))
    hit = cached_transcript(fp)
    if hit is not None:
        log.info("[STT] duplicate audio, reusing transcription hash=%s", fp[-10:])
        idempotency_store(req_id, hit)
        return hit

    res = await stt.transcribe(audio, language=language, content_type=content_type, filename=filename)
    store_transcript(fp, res)
    idempotency_store(req_id, res)
    return res
