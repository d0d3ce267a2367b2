# speechcoach/schemas/eval.py
from typing import List, Literal

from pydantic import BaseModel, Field

from speechcoach.core.config import settings

WordStatus = Literal["correct", "similar", "incorrect", "missing", "extra"]
PerformanceLevel = Literal["excellent", "good", "fair", "poor"]


class WordAnalysis(BaseModel):
    expected: str = ""  # "" for an extra spoken word
    spoken: str = ""    # "" when the expected word was not heard
    status: WordStatus
    similarity: float = Field(0.0, ge=0, le=100)


class PronunciationEvaluation(BaseModel):
    accuracy: int = Field(..., ge=0, le=100)
    pronunciation: int = Field(..., ge=0, le=100)
    fluency: int = Field(..., ge=0, le=100)
    completeness: int = Field(..., ge=0, le=100)
    word_analysis: List[WordAnalysis] = []
    feedback: str
    level: PerformanceLevel


class EvalRequest(BaseModel):
    expected_text: str = Field("", max_length=settings.MAX_TEXT_LENGTH, examples=["Hello how are you"])
    spoken_text: str = Field("", max_length=settings.MAX_TEXT_LENGTH, examples=["hello how are you"])


class AudioEvalResponse(BaseModel):
    transcription: str
    language: str
    evaluation: PronunciationEvaluation
    practice_id: str | None = None
