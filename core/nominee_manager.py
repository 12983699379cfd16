"""
Nominee Manager：管理 Nomination 內的 Nominee 與其媒體

刪除 Nominee 只會 cascade 刪除它自己的 votes，同一 Nomination 的其他 nominee 不受影響
"""
from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session
from typing import List, Tuple
import logging

from models import MediaKind, Nomination, Nominee, Room
from core.exceptions import NominationNotFound, NomineeNotFound
from core.nomination_manager import NominationManager
from database import transactional

logger = logging.getLogger(__name__)


class NomineeManager:
    """Nominee 管理器"""

    @staticmethod
    @transactional
    def create_nominee(db: Session, nomination_id: int, name: str) -> int:
        nominee = Nominee(nomination_id=nomination_id, name=name, media_kind=MediaKind.NONE)
        db.add(nominee)
        db.flush()

        logger.info(f"Created nominee {nominee.id} in nomination {nomination_id}")
        return nominee.id

    @staticmethod
    @transactional
    def delete_nominee(db: Session, nominee_id: int) -> bool:
        """
        刪除 Nominee（冪等）

        返回：
            True 如果真的刪除了一筆，False 如果 id 不存在
        """
        result = db.execute(delete(Nominee).where(Nominee.id == nominee_id))
        deleted = result.rowcount > 0
        if deleted:
            logger.info(f"Deleted nominee {nominee_id} (cascade to votes)")
        return deleted

    @staticmethod
    @transactional
    def update_media(db: Session, nominee_id: int, file_id: str, kind: MediaKind) -> bool:
        """
        替換 Nominee 的媒體（可重複呼叫，後者覆蓋前者）

        返回：
            False 如果 nominee 已不存在
        """
        result = db.execute(
            update(Nominee)
            .where(Nominee.id == nominee_id)
            .values(media_file_id=file_id, media_kind=kind)
        )
        updated = result.rowcount > 0
        if updated:
            logger.info(f"Nominee {nominee_id} media set to {kind.value}")
        return updated

    @staticmethod
    def is_owner(db: Session, nominee_id: int, user_id: int) -> bool:
        """Nominee -> Nomination -> Room 一次查詢；不存在時回傳 False"""
        owner_id = db.scalar(
            select(Room.owner_user_id)
            .join(Nomination, Nomination.room_id == Room.id)
            .join(Nominee, Nominee.nomination_id == Nomination.id)
            .where(Nominee.id == nominee_id)
        )
        return owner_id is not None and owner_id == user_id

    @staticmethod
    def get_name(db: Session, nominee_id: int) -> str:
        name = db.scalar(select(Nominee.name).where(Nominee.id == nominee_id))
        if name is None:
            raise NomineeNotFound(nominee_id)
        return name

    @staticmethod
    def get_nomination_and_room(db: Session, nominee_id: int) -> Tuple[int, int]:
        """
        返回：
            (nomination_id, room_id)

        異常：
            NomineeNotFound
        """
        row = db.execute(
            select(Nominee.nomination_id, Nomination.room_id)
            .join(Nomination, Nominee.nomination_id == Nomination.id)
            .where(Nominee.id == nominee_id)
        ).first()
        if row is None:
            raise NomineeNotFound(nominee_id)
        return row.nomination_id, row.room_id

    @staticmethod
    def list_nominees(db: Session, nomination_id: int) -> List[Nominee]:
        if not NominationManager.nomination_exists(db, nomination_id):
            raise NominationNotFound(nomination_id)
        return list(
            db.scalars(select(Nominee).where(Nominee.nomination_id == nomination_id).order_by(Nominee.id))
        )
