"""
Room Manager：管理 Room 的建立與查詢

職責：
1. 建立 Room
2. 以 ID + 密碼取得 Room（加入房間）
3. 擁有權檢查
4. 查詢 Room 資訊

房間沒有刪除操作；nominations 由 NominationManager 負責
"""
from sqlalchemy import select
from sqlalchemy.orm import Session
from typing import List
import logging

from models import Room
from core.exceptions import RoomNotFound
from database import transactional

logger = logging.getLogger(__name__)


class RoomManager:
    """Room 管理器"""

    @staticmethod
    @transactional
    def create_room(db: Session, owner_id: int, title: str, password: str) -> int:
        """
        建立新房間

        參數：
            db: SQLAlchemy Session
            owner_id: 建立者的 user id（即 owner）
            title: 房間名稱（不可為空）
            password: 共享密碼（明文，以相等比較）

        返回：
            新房間的 id
        """
        room = Room(owner_user_id=owner_id, title=title, password=password)
        db.add(room)
        db.flush()  # 取得 room.id

        logger.info(f"Created room {room.id} for owner {owner_id}")
        return room.id

    @staticmethod
    def get_room_by_credentials(db: Session, room_id: int, password: str) -> Room:
        """
        以 ID + 密碼取得 Room

        異常：
            RoomNotFound: 房間不存在或密碼錯誤（刻意不區分）
        """
        room = db.scalar(select(Room).where(Room.id == room_id, Room.password == password))
        if not room:
            raise RoomNotFound(room_id)
        return room

    @staticmethod
    def is_owner(db: Session, room_id: int, user_id: int) -> bool:
        """房間不存在時回傳 False，不拋異常"""
        owner_id = db.scalar(select(Room.owner_user_id).where(Room.id == room_id))
        return owner_id is not None and owner_id == user_id

    @staticmethod
    def get_room_title(db: Session, room_id: int) -> str:
        title = db.scalar(select(Room.title).where(Room.id == room_id))
        if title is None:
            raise RoomNotFound(room_id)
        return title

    @staticmethod
    def room_exists(db: Session, room_id: int) -> bool:
        return db.scalar(select(Room.id).where(Room.id == room_id)) is not None

    @staticmethod
    def list_rooms_by_owner(db: Session, owner_id: int) -> List[Room]:
        """
        取得使用者擁有的所有房間（新的在前）

        created_at 精度只到秒，同一秒建立的房間再用 id 排序
        """
        return list(
            db.scalars(
                select(Room)
                .where(Room.owner_user_id == owner_id)
                .order_by(Room.created_at.desc(), Room.id.desc())
            )
        )
