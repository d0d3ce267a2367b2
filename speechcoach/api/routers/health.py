from fastapi import APIRouter, Depends
from speechcoach.core.version import APP_NAME, APP_VERSION
from speechcoach.services.stt.elevenlabs_client import ElevenLabsSTT, get_stt

router = APIRouter(prefix="/health", tags=["health"])

@router.get("")
async def health(stt: ElevenLabsSTT = Depends(get_stt)):
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "ok": True,
        "stt_configured": stt.available,
    }
