"""
Vote Manager：記錄投票與統計結果

並發：
    同一人對同一 nomination 的兩次投票可能同時到達。
    這裡不做應用層 lock，而是交給資料庫原生的 upsert
    （INSERT ... ON CONFLICT(user_hash, nomination_id) DO UPDATE），
    最後一次寫入的 nominee_id / cast_at 會留下。
"""
from datetime import datetime
from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session
from typing import List
import logging

from models import Nominee, Vote
from schemas import NomineeResult
from database import transactional

logger = logging.getLogger(__name__)


def _insert_for(db: Session):
    """依照連線的 dialect 選擇支援 on_conflict_do_update 的 insert"""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    return sqlite.insert


class VoteManager:
    """Vote 管理器"""

    @staticmethod
    @transactional
    def record_vote(
        db: Session,
        user_hash: str,
        nomination_id: int,
        nominee_id: int,
        cast_at: datetime,
    ) -> None:
        """
        記錄投票（upsert）

        以 (user_hash, nomination_id) 為 key：
        - 沒有舊票：新增
        - 已有舊票：覆蓋 nominee_id 與 cast_at，不會多出第二筆

        注意：
            不檢查 nominee 是否屬於 nomination_id，由呼叫者保證
        """
        insert = _insert_for(db)
        stmt = insert(Vote).values(
            user_hash=user_hash,
            nomination_id=nomination_id,
            nominee_id=nominee_id,
            cast_at=cast_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_hash", "nomination_id"],
            set_={
                "nominee_id": stmt.excluded.nominee_id,
                "cast_at": stmt.excluded.cast_at,
            },
        )
        db.execute(stmt)
        logger.info(f"Recorded vote for nominee {nominee_id} in nomination {nomination_id}")

    @staticmethod
    def results_by_nomination(db: Session, nomination_id: int) -> List[NomineeResult]:
        """
        統計 nomination 的結果

        LEFT OUTER JOIN：沒有票的 nominee 也會出現（vote_count = 0）

        排序：
            票數多的在前，同票時 nominee id 小的在前
        """
        vote_count = func.count(Vote.id).label("vote_count")
        rows = db.execute(
            select(Nominee.id, Nominee.name, vote_count)
            .outerjoin(Vote, Vote.nominee_id == Nominee.id)
            .where(Nominee.nomination_id == nomination_id)
            .group_by(Nominee.id, Nominee.name)
            .order_by(vote_count.desc(), Nominee.id.asc())
        ).all()

        return [
            NomineeResult(nominee_id=row.id, name=row.name, vote_count=row.vote_count)
            for row in rows
        ]

    @staticmethod
    def count_votes_for_nominee(db: Session, nominee_id: int) -> int:
        return db.scalar(select(func.count(Vote.id)).where(Vote.nominee_id == nominee_id)) or 0
