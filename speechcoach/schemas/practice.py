# speechcoach/schemas/practice.py
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from speechcoach.core.config import settings
from speechcoach.schemas.eval import PerformanceLevel, PronunciationEvaluation, WordAnalysis

LearningMode = Literal["learn", "practice"]
LEARNING_MODES: tuple[str, ...] = ("learn", "practice")

class PracticeCreate(BaseModel):
    sentence: str = Field(..., max_length=settings.MAX_TEXT_LENGTH, examples=["Good morning"])
    transcribed_text: str = Field("", max_length=settings.MAX_TEXT_LENGTH, examples=["good morning everyone"])
    language: str = "en-US"
    duration_sec: Optional[float] = Field(None, ge=0)
    # scored server-side from sentence/transcribed_text when omitted
    evaluation: Optional[PronunciationEvaluation] = None

class PracticeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    mode: LearningMode
    sentence: str
    transcribed_text: str
    language: str
    accuracy: int
    pronunciation: int
    fluency: int
    completeness: int
    level: PerformanceLevel
    feedback: str
    word_analysis: List[WordAnalysis] = []
    duration_sec: float
    timestamp: datetime

class PracticeStats(BaseModel):
    total_practices: int = 0
    total_duration: float = 0.0
    average_score: float = 0.0
    best_score: int = 0
    worst_score: int = 0
    recent_practices: int = 0   # within the last 7 days

class PracticeHistoryExport(BaseModel):
    user_id: str
    mode: LearningMode
    practices: List[PracticeOut]
    total_practices: int
    total_duration: float
    average_score: float
    updated_at: datetime

class PracticeDeleteReq(BaseModel):
    ids: List[str] = Field(..., min_length=1)
