from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import mapped_column

from speechcoach.core.db import Base

def utcnow() -> datetime:
    # naive UTC: SQLite drops tzinfo on the way back anyway
    return datetime.now(timezone.utc).replace(tzinfo=None)

class PracticeRecord(Base):
    __tablename__ = "practices"
    seq = mapped_column(Integer, primary_key=True, autoincrement=True)
    id = mapped_column(String(64), unique=True, index=True, nullable=False)
    user_id = mapped_column(String(128), index=True, nullable=False)
    mode = mapped_column(String(16), index=True, nullable=False)   # "learn" | "practice"
    sentence = mapped_column(Text, nullable=False, default="")
    transcribed_text = mapped_column(Text, nullable=False, default="")
    language = mapped_column(String(16), nullable=False, default="en-US")
    accuracy = mapped_column(Integer, nullable=False, default=0)
    pronunciation = mapped_column(Integer, nullable=False, default=0)
    fluency = mapped_column(Integer, nullable=False, default=0)
    completeness = mapped_column(Integer, nullable=False, default=0)
    level = mapped_column(String(16), nullable=False, default="poor")
    feedback = mapped_column(Text, nullable=False, default="")
    word_analysis = mapped_column(JSON, nullable=False, default=list)
    duration_sec = mapped_column(Float, nullable=False, default=5.0)
    timestamp = mapped_column(DateTime, nullable=False, default=utcnow)
