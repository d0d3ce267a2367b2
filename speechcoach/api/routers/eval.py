# speechcoach/api/routers/eval.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, UploadFile
from sqlalchemy.orm import Session

from speechcoach.core.config import settings
from speechcoach.core.db import get_db
from speechcoach.schemas.eval import AudioEvalResponse, EvalRequest, PronunciationEvaluation
from speechcoach.schemas.practice import LearningMode, PracticeCreate
from speechcoach.services.eval.pronunciation import evaluate
from speechcoach.services.history.practice_history import PracticeHistoryService
from speechcoach.services.stt.elevenlabs_client import ElevenLabsSTT, get_stt, transcribe_cached
from speechcoach.utils.idempotency import idempotency_get, idempotency_store

router = APIRouter(prefix="/eval", tags=["eval"])
log = logging.getLogger("eval")

@router.post("", response_model=PronunciationEvaluation)
def evaluate_text(req: EvalRequest):
    return evaluate(req.spoken_text, req.expected_text)

@router.post("/audio", response_model=AudioEvalResponse)
async def evaluate_audio(
    expected_text: str = Form(..., max_length=settings.MAX_TEXT_LENGTH),
    audio: UploadFile = File(...),
    language: str = Form("en-US"),
    user_id: Optional[str] = Form(None),
    mode: Optional[LearningMode] = Form(None),
    duration_sec: Optional[float] = Form(None, ge=0),
    x_req_id: Optional[str] = Header(None, alias="X-Req-Id"),
    stt: ElevenLabsSTT = Depends(get_stt),
    db: Session = Depends(get_db),
):
    """
    Transcribe the recording, score it against `expected_text` and, when
    `user_id` and `mode` are given, append the result to the practice history.
    A retried X-Req-Id gets the stored response back and records nothing new.
    """
    eval_key = f"eval:{x_req_id}" if x_req_id else None
    cached = idempotency_get(eval_key)
    if cached is not None:
        log.info("[EVAL] replaying cached response for req_id=%s", x_req_id)
        return cached

    data = await audio.read()
    if not data:
        raise HTTPException(status_code=400, detail="empty audio upload")

    heard = await transcribe_cached(
        stt, data, language,
        content_type=audio.content_type or "",
        filename=audio.filename,
        req_id=x_req_id,
    )
    result = evaluate(heard.text, expected_text)
    log.info("[EVAL] bytes=%d language=%s level=%s accuracy=%d",
             len(data), heard.language, result.level, result.accuracy)

    practice_id = None
    if user_id and mode:
        rec = PracticeHistoryService(db).add_practice(user_id, mode, PracticeCreate(
            sentence=expected_text,
            transcribed_text=heard.text,
            language=language,
            duration_sec=duration_sec,
            evaluation=result,
        ))
        practice_id = rec.id

    resp = AudioEvalResponse(
        transcription=heard.text,
        language=heard.language,
        evaluation=result,
        practice_id=practice_id,
    )
    idempotency_store(eval_key, resp)
    return resp
