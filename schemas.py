"""
Transport Schemas

Inbound 事件由訊息 transport 送進來；outbound 訊息是 bot 要 transport 送回去的內容
"""
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field


# ============ Inbound ============

class TextEvent(BaseModel):
    sender_id: int
    chat_id: int
    text: str = ""
    is_command: bool = False
    command_name: str = ""
    command_args: str = ""
    photo_refs: List[str] = Field(default_factory=list)
    video_ref: Optional[str] = None

    @property
    def has_media(self) -> bool:
        return bool(self.photo_refs) or bool(self.video_ref)


class ButtonEvent(BaseModel):
    sender_id: int
    chat_id: int
    message_ref: Optional[str] = None
    payload: str


# ============ Outbound ============

class Button(BaseModel):
    label: str
    payload: str


ButtonGrid = List[List[Button]]


class SendText(BaseModel):
    kind: Literal["text"] = "text"
    chat_id: int
    text: str
    buttons: Optional[ButtonGrid] = None


class SendPhoto(BaseModel):
    kind: Literal["photo"] = "photo"
    chat_id: int
    file_ref: str
    caption: str = ""
    buttons: Optional[ButtonGrid] = None


class SendVideo(BaseModel):
    kind: Literal["video"] = "video"
    chat_id: int
    file_ref: str
    caption: str = ""
    buttons: Optional[ButtonGrid] = None


OutboundMessage = Union[SendText, SendPhoto, SendVideo]


class EventResponse(BaseModel):
    messages: List[OutboundMessage] = Field(default_factory=list)


# ============ Query results ============

class NomineeResult(BaseModel):
    nominee_id: int
    name: str
    vote_count: int
