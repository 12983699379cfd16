"""
Event API Endpoints

Messaging transport 把事件 POST 進來，回應中帶回要送出的訊息

職責：
1. 文字 / 指令 / 媒體訊息
2. 按鈕按下事件
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
import logging

from database import get_db
from schemas import ButtonEvent, EventResponse, TextEvent
from core.dispatcher import EventDispatcher
from core.transport import Outbox

router = APIRouter(prefix="/api/events", tags=["events"])
logger = logging.getLogger(__name__)


def get_dispatcher(request: Request) -> EventDispatcher:
    return request.app.state.dispatcher


@router.post("/text", response_model=EventResponse)
def receive_text(
    event: TextEvent,
    db: Session = Depends(get_db),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    """
    接收文字訊息（含指令、照片、影片）

    返回：
        - messages: 依序要送出的訊息
    """
    outbox = Outbox()
    dispatcher.handle_text(db, event, outbox)
    logger.debug(f"Text event from {event.sender_id} produced {len(outbox.messages)} message(s)")
    return EventResponse(messages=outbox.messages)


@router.post("/button", response_model=EventResponse)
def receive_button(
    event: ButtonEvent,
    db: Session = Depends(get_db),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    """
    接收按鈕事件（payload 原樣傳回）

    返回：
        - messages: 依序要送出的訊息
    """
    outbox = Outbox()
    dispatcher.handle_button(db, event, outbox)
    logger.debug(f"Button {event.payload!r} from {event.sender_id} produced {len(outbox.messages)} message(s)")
    return EventResponse(messages=outbox.messages)
