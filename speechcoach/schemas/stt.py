from typing import Dict

from pydantic import BaseModel

class STTResponse(BaseModel):
    text: str
    language: str
    confidence: float | None = None

class LanguagesResponse(BaseModel):
    default: str
    languages: Dict[str, str]   # app locale -> ISO 639-1
