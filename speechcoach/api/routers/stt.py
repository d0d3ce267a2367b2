from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, UploadFile

from speechcoach.schemas.stt import LanguagesResponse, STTResponse
from speechcoach.services.stt.elevenlabs_client import (
    DEFAULT_LANGUAGE, LANGUAGE_CODE_MAP, ElevenLabsSTT, get_stt, transcribe_cached,
)

router = APIRouter(prefix="/stt", tags=["stt"])

@router.get("/languages", response_model=LanguagesResponse)
def languages():
    return LanguagesResponse(default=DEFAULT_LANGUAGE, languages=LANGUAGE_CODE_MAP)

@router.post("", response_model=STTResponse)
async def transcribe(
    audio: UploadFile = File(...),
    language: str = Form("en-US"),
    x_req_id: Optional[str] = Header(None, alias="X-Req-Id"),
    stt: ElevenLabsSTT = Depends(get_stt),
):
    data = await audio.read()
    if not data:
        raise HTTPException(status_code=400, detail="empty audio upload")
    return await transcribe_cached(
        stt, data, language,
        content_type=audio.content_type or "",
        filename=audio.filename,
        req_id=x_req_id,
    )
