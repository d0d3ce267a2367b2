# speechcoach/utils/idempotency.py
from __future__ import annotations
import hashlib
from typing import Any, Optional

from cachetools import TTLCache

from speechcoach.core.config import settings

# --- Simple TTL caches (in-memory). For multi-process, swap to Redis. ---

RESP_MAX = 2048
_response_cache: TTLCache = TTLCache(maxsize=RESP_MAX, ttl=settings.STT_CACHE_TTL)

TRANSCRIPT_MAX = 4096
_transcripts: TTLCache = TTLCache(maxsize=TRANSCRIPT_MAX, ttl=settings.STT_CACHE_TTL)

def _sha256(b: bytes) -> str:
    h = hashlib.sha256()
    h.update(b)
    return h.hexdigest()

def audio_fingerprint(audio_bytes: bytes, language: str) -> str:
    return f"{language}:{_sha256(audio_bytes)}"

def idempotency_get(req_id: Optional[str]) -> Optional[Any]:
    """Response previously stored under a client X-Req-Id, if still fresh."""
    if not req_id:
        return None
    return _response_cache.get(req_id)

def idempotency_store(req_id: Optional[str], value: Any) -> None:
    if req_id:
        _response_cache[req_id] = value

def cached_transcript(fingerprint: str) -> Optional[Any]:
    return _transcripts.get(fingerprint)

def store_transcript(fingerprint: str, value: Any) -> None:
    _transcripts[fingerprint] = value

def clear_caches() -> None:
    _response_cache.clear()
    _transcripts.clear()
