"""
ORM Models

外鍵關係（全部 ON DELETE CASCADE）：
    nominations.room_id      -> rooms.id
    nominees.nomination_id   -> nominations.id
    votes.nominee_id         -> nominees.id

votes 以 (user_hash, nomination_id) 唯一：每個人每個 nomination 最多一票
rooms.title、nominations.name、nominees.name 由 CHECK 限制不可為空字串
"""
from datetime import datetime
from typing import List, Optional
import enum

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base


class MediaKind(str, enum.Enum):
    NONE = "none"
    PHOTO = "photo"
    VIDEO = "video"


class Room(Base):
    __tablename__ = "rooms"
    __table_args__ = (CheckConstraint("title <> ''", name="ck_rooms_title_not_empty"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    nominations: Mapped[List["Nomination"]] = relationship(
        back_populates="room", cascade="all, delete-orphan", passive_deletes=True
    )


class Nomination(Base):
    __tablename__ = "nominations"
    __table_args__ = (CheckConstraint("name <> ''", name="ck_nominations_name_not_empty"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    room_id: Mapped[int] = mapped_column(ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    room: Mapped["Room"] = relationship(back_populates="nominations")
    nominees: Mapped[List["Nominee"]] = relationship(
        back_populates="nomination", cascade="all, delete-orphan", passive_deletes=True
    )


class Nominee(Base):
    __tablename__ = "nominees"
    __table_args__ = (CheckConstraint("name <> ''", name="ck_nominees_name_not_empty"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    nomination_id: Mapped[int] = mapped_column(
        ForeignKey("nominations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    media_file_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    media_kind: Mapped[MediaKind] = mapped_column(
        Enum(MediaKind, native_enum=False, length=16), nullable=False, default=MediaKind.NONE
    )

    nomination: Mapped["Nomination"] = relationship(back_populates="nominees")
    votes: Mapped[List["Vote"]] = relationship(
        back_populates="nominee", cascade="all, delete-orphan", passive_deletes=True
    )


class Vote(Base):
    __tablename__ = "votes"
    __table_args__ = (UniqueConstraint("user_hash", "nomination_id", name="uq_votes_user_nomination"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    # 不設外鍵：nominee 是否屬於這個 nomination 由呼叫者負責
    nomination_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    nominee_id: Mapped[int] = mapped_column(ForeignKey("nominees.id", ondelete="CASCADE"), nullable=False, index=True)
    cast_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    nominee: Mapped["Nominee"] = relationship(back_populates="votes")
