# speechcoach/api/routers/practice.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from speechcoach.core.db import get_db
from speechcoach.core.errors import AppError, ErrorCode
from speechcoach.schemas.practice import (
    LearningMode, PracticeCreate, PracticeDeleteReq, PracticeOut, PracticeStats,
)
from speechcoach.services.history.practice_history import PracticeHistoryService

router = APIRouter(prefix="/practice", tags=["practice"])

def _svc(db: Session = Depends(get_db)) -> PracticeHistoryService:
    return PracticeHistoryService(db)

@router.post("/{user_id}/{mode}", response_model=PracticeOut, status_code=201)
def add_practice(user_id: str, mode: LearningMode, req: PracticeCreate,
                 svc: PracticeHistoryService = Depends(_svc)):
    return svc.add_practice(user_id, mode, req)

@router.get("/{user_id}/{mode}", response_model=List[PracticeOut])
def list_practices(user_id: str, mode: LearningMode,
                   limit: Optional[int] = Query(None, ge=1, le=500),
                   svc: PracticeHistoryService = Depends(_svc)):
    return svc.get_practices(user_id, mode, limit)

@router.get("/{user_id}/{mode}/stats", response_model=PracticeStats)
def practice_stats(user_id: str, mode: LearningMode, svc: PracticeHistoryService = Depends(_svc)):
    return svc.get_statistics(user_id, mode)

@router.get("/{user_id}/{mode}/export")
def export_history(user_id: str, mode: LearningMode, svc: PracticeHistoryService = Depends(_svc)):
    exported = svc.export_history(user_id, mode)
    body = exported.model_dump_json(indent=2) if exported else '{"error": "No history found"}'
    return Response(content=body, media_type="application/json")

@router.post("/{user_id}/{mode}/delete")
def delete_practices(user_id: str, mode: LearningMode, req: PracticeDeleteReq,
                     svc: PracticeHistoryService = Depends(_svc)):
    return {"ok": True, "deleted": svc.delete_practices(user_id, mode, req.ids)}

@router.get("/{user_id}/{mode}/{practice_id}", response_model=PracticeOut)
def get_practice(user_id: str, mode: LearningMode, practice_id: str,
                 svc: PracticeHistoryService = Depends(_svc)):
    rec = svc.get_practice(user_id, mode, practice_id)
    if rec is None:
        raise AppError(ErrorCode.NOT_FOUND, "Practice not found")
    return rec

@router.delete("/{user_id}/{mode}/{practice_id}")
def delete_practice(user_id: str, mode: LearningMode, practice_id: str,
                    svc: PracticeHistoryService = Depends(_svc)):
    svc.delete_practice(user_id, mode, practice_id)
    return {"ok": True}

@router.delete("/{user_id}/{mode}")
def clear_history(user_id: str, mode: LearningMode, svc: PracticeHistoryService = Depends(_svc)):
    return {"ok": True, "deleted": svc.clear_history(user_id, mode)}

@router.delete("/{user_id}")
def clear_all_histories(user_id: str, svc: PracticeHistoryService = Depends(_svc)):
    return {"ok": True, "deleted": svc.clear_all_histories(user_id)}
