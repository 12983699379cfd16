"""
Nomination Manager：管理房間內的 Nomination

刪除 Nomination 時由資料庫 cascade 一併刪除其 nominees 與這些 nominees 的 votes
"""
from sqlalchemy import delete, select
from sqlalchemy.orm import Session
from typing import List
import logging

from models import Nomination, Room
from core.exceptions import NominationNotFound, RoomNotFound
from core.room_manager import RoomManager
from database import transactional

logger = logging.getLogger(__name__)


class NominationManager:
    """Nomination 管理器"""

    @staticmethod
    @transactional
    def create_nomination(db: Session, room_id: int, name: str, description: str = "") -> int:
        """
        在房間內建立 Nomination

        名稱不需唯一，允許重複

        返回：
            新 Nomination 的 id
        """
        nomination = Nomination(room_id=room_id, name=name, description=description or "")
        db.add(nomination)
        db.flush()

        logger.info(f"Created nomination {nomination.id} in room {room_id}")
        return nomination.id

    @staticmethod
    @transactional
    def delete_nomination(db: Session, nomination_id: int) -> bool:
        """
        刪除 Nomination（冪等）

        返回：
            True 如果真的刪除了一筆，False 如果 id 不存在
        """
        result = db.execute(delete(Nomination).where(Nomination.id == nomination_id))
        deleted = result.rowcount > 0
        if deleted:
            logger.info(f"Deleted nomination {nomination_id} (cascade to nominees and votes)")
        return deleted

    @staticmethod
    def is_owner(db: Session, nomination_id: int, user_id: int) -> bool:
        """Nomination -> Room 一次查詢；不存在時回傳 False"""
        owner_id = db.scalar(
            select(Room.owner_user_id)
            .join(Nomination, Nomination.room_id == Room.id)
            .where(Nomination.id == nomination_id)
        )
        return owner_id is not None and owner_id == user_id

    @staticmethod
    def get_room_id(db: Session, nomination_id: int) -> int:
        room_id = db.scalar(select(Nomination.room_id).where(Nomination.id == nomination_id))
        if room_id is None:
            raise NominationNotFound(nomination_id)
        return room_id

    @staticmethod
    def get_name(db: Session, nomination_id: int) -> str:
        name = db.scalar(select(Nomination.name).where(Nomination.id == nomination_id))
        if name is None:
            raise NominationNotFound(nomination_id)
        return name

    @staticmethod
    def is_in_room(db: Session, nomination_id: int, room_id: int) -> bool:
        found = db.scalar(
            select(Nomination.id).where(Nomination.id == nomination_id, Nomination.room_id == room_id)
        )
        return found is not None

    @staticmethod
    def nomination_exists(db: Session, nomination_id: int) -> bool:
        return db.scalar(select(Nomination.id).where(Nomination.id == nomination_id)) is not None

    @staticmethod
    def list_nominations(db: Session, room_id: int) -> List[Nomination]:
        """
        列出房間內的 Nominations（依 id 排序）

        異常：
            RoomNotFound: 房間本身不存在（空房間回傳空 list）
        """
        if not RoomManager.room_exists(db, room_id):
            raise RoomNotFound(room_id)
        return list(
            db.scalars(select(Nomination).where(Nomination.room_id == room_id).order_by(Nomination.id))
        )
