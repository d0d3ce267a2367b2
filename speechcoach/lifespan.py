# speechcoach/lifespan.py
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from speechcoach.core.config import settings
from speechcoach.core.db import init_db

log = logging.getLogger("lifespan")

@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if not settings.ELEVENLABS_API_KEY:
        log.warning("[lifespan] ELEVENLABS_API_KEY not set; /stt and /eval/audio will fail for real audio")
    yield
