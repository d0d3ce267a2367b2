# speechcoach/services/history/practice_history.py
from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from typing import Iterable, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from speechcoach.core.errors import AppError, ErrorCode
from speechcoach.models.practice import PracticeRecord, utcnow
from speechcoach.schemas.practice import (
    LEARNING_MODES, PracticeCreate, PracticeHistoryExport, PracticeOut, PracticeStats,
)
from speechcoach.services.eval.pronunciation import evaluate

log = logging.getLogger("practice")

DEFAULT_DURATION_SEC = 5.0   # used when the client does not know the recording length
RECENT_DAYS = 7


class PracticeHistoryService:
    """
    Practice results per (user, learning mode), newest first.

    Every write commits immediately; SQLAlchemy failures are rolled back and
    re-raised as AppError(STORAGE_ERROR).
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    # ----------------------------- helpers -----------------------------

    def _query(self, user_id: str, mode: str):
        return select(PracticeRecord).where(
            PracticeRecord.user_id == user_id, PracticeRecord.mode == mode
        )

    def _commit(self, what: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            log.error("[practice] failed to %s: %s", what, e)
            raise AppError(ErrorCode.STORAGE_ERROR, f"Failed to {what}") from e

    # ----------------------------- writes ------------------------------

    def add_practice(self, user_id: str, mode: str, data: PracticeCreate) -> PracticeRecord:
        ev = data.evaluation or evaluate(data.transcribed_text, data.sentence)
        rec = PracticeRecord(
            id=f"practice_{uuid.uuid4().hex}",
            user_id=user_id,
            mode=mode,
            sentence=data.sentence,
            transcribed_text=data.transcribed_text,
            language=data.language,
            accuracy=ev.accuracy,
            pronunciation=ev.pronunciation,
            fluency=ev.fluency,
            completeness=ev.completeness,
            level=ev.level,
            feedback=ev.feedback,
            word_analysis=[w.model_dump() for w in ev.word_analysis],
            duration_sec=data.duration_sec if data.duration_sec is not None else DEFAULT_DURATION_SEC,
            timestamp=utcnow(),
        )
        self.db.add(rec)
        self._commit("add practice to history")
        self.db.refresh(rec)
        log.info("[practice] added user=%s mode=%s id=%s accuracy=%d", user_id, mode, rec.id, rec.accuracy)
        return rec

    def delete_practice(self, user_id: str, mode: str, practice_id: str) -> None:
        rec = self.get_practice(user_id, mode, practice_id)
        if rec is None:
            raise AppError(ErrorCode.NOT_FOUND, "Practice not found in history")
        self.db.delete(rec)
        self._commit("delete practice")
        log.info("[practice] deleted user=%s mode=%s id=%s", user_id, mode, practice_id)

    def delete_practices(self, user_id: str, mode: str, practice_ids: Iterable[str]) -> int:
        """All ids must exist; nothing is deleted when one is unknown."""
        ids = list(dict.fromkeys(practice_ids))
        recs = list(self.db.scalars(self._query(user_id, mode).where(PracticeRecord.id.in_(ids))))
        found = {r.id for r in recs}
        missing = [pid for pid in ids if pid not in found]
        if missing:
            raise AppError(ErrorCode.NOT_FOUND, "Practice not found in history", details={"ids": missing})
        for rec in recs:
            self.db.delete(rec)
        self._commit("delete practices")
        log.info("[practice] deleted user=%s mode=%s count=%d", user_id, mode, len(recs))
        return len(recs)

    def clear_history(self, user_id: str, mode: str) -> int:
        res = self.db.execute(
            delete(PracticeRecord).where(PracticeRecord.user_id == user_id, PracticeRecord.mode == mode)
        )
        self._commit("clear practice history")
        log.info("[practice] cleared user=%s mode=%s rows=%d", user_id, mode, res.rowcount or 0)
        return res.rowcount or 0

    def clear_all_histories(self, user_id: str) -> int:
        return sum(self.clear_history(user_id, mode) for mode in LEARNING_MODES)

    # ----------------------------- reads -------------------------------

    def get_practices(self, user_id: str, mode: str, limit: Optional[int] = None) -> List[PracticeRecord]:
        q = self._query(user_id, mode).order_by(PracticeRecord.seq.desc())
        if limit and limit > 0:
            q = q.limit(limit)
        return list(self.db.scalars(q))

    def get_practice(self, user_id: str, mode: str, practice_id: str) -> Optional[PracticeRecord]:
        return self.db.scalars(self._query(user_id, mode).where(PracticeRecord.id == practice_id)).first()

    def has_history(self, user_id: str, mode: str) -> bool:
        return self.db.scalars(self._query(user_id, mode).limit(1)).first() is not None

    def get_statistics(self, user_id: str, mode: str) -> PracticeStats:
        row = self.db.execute(
            select(
                func.count(PracticeRecord.seq),
                func.coalesce(func.sum(PracticeRecord.duration_sec), 0.0),
                func.avg(PracticeRecord.accuracy),
                func.max(PracticeRecord.accuracy),
                func.min(PracticeRecord.accuracy),
            ).where(PracticeRecord.user_id == user_id, PracticeRecord.mode == mode)
        ).one()
        total, duration, avg, best, worst = row
        if not total:
            return PracticeStats()

        since = utcnow() - timedelta(days=RECENT_DAYS)
        recent = self.db.scalar(
            select(func.count(PracticeRecord.seq)).where(
                PracticeRecord.user_id == user_id,
                PracticeRecord.mode == mode,
                PracticeRecord.timestamp >= since,
            )
        )
        return PracticeStats(
            total_practices=total,
            total_duration=float(duration),
            average_score=float(avg),
            best_score=best,
            worst_score=worst,
            recent_practices=recent or 0,
        )

    def export_history(self, user_id: str, mode: str) -> Optional[PracticeHistoryExport]:
        practices = self.get_practices(user_id, mode)
        if not practices:
            return None
        stats = self.get_statistics(user_id, mode)
        return PracticeHistoryExport(
            user_id=user_id,
            mode=mode,
            practices=[PracticeOut.model_validate(p) for p in practices],
            total_practices=stats.total_practices,
            total_duration=stats.total_duration,
            average_score=stats.average_score,
            updated_at=max(p.timestamp for p in practices),
        )
