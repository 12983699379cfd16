"""
Event Dispatcher：把一個 inbound 事件轉成 storage 操作 + session 變更 + 回覆訊息

流程：
    事件 -> 查 Session -> 權限檢查 + CRUD（Managers）-> 更新 Session -> 透過 Transport 回覆

文字訊息的優先順序（先符合者處理，後面跳過）：
    1. AwaitingMedia 且訊息帶照片/影片     -> 綁定媒體
    2. AwaitingNomineeName 且為非指令文字  -> 建立 nominee
    3. 指令
    4. 一般文字（提示）

原則：
- 權限每次都重新查（不快取），多步驟流程中途被撤銷的權限也會生效
- 錯誤在 _reply_on_error 統一轉成回覆訊息，不自動重試
"""
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Dict
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import MediaKind
from schemas import ButtonEvent, TextEvent
from core.exceptions import (
    NominationNotFound,
    NomineeNotFound,
    NotFound,
    PermissionDenied,
    RoomNotFound,
    StorageFailure,
    ValidationError,
)
from core.nomination_manager import NominationManager
from core.nominee_manager import NomineeManager
from core.room_manager import RoomManager
from core.session_store import SessionStore
from core.state_machine import AwaitingMedia, AwaitingNomineeName, UserSession
from core.transport import Transport
from core.vote_manager import VoteManager
from services import render_service as render
from services.command_service import parse_id, split_id_args, split_pipe_args
from services.hashing_service import hash_user_id
from services.payload_service import ButtonAction, PayloadKind, parse_payload

logger = logging.getLogger(__name__)

NOT_FOUND_TEXT = {
    RoomNotFound: "Room not found or wrong password.",
    NominationNotFound: "Nomination not found.",
    NomineeNotFound: "Nominee not found.",
}


def _require(allowed: bool, message: str) -> None:
    if not allowed:
        raise PermissionDenied(message)


def _require_room_access(session: UserSession, room_id: int) -> None:
    """成員資格 = 目前的 ActiveRoom 就是該實體所屬的房間"""
    _require(session.active_room_id == room_id, render.NO_ROOM_ACCESS)


class EventDispatcher:
    """
    參數：
        sessions: 整個 process 共用的 SessionStore
        vote_salt: 計算 user hash 的 salt
        clock: 回傳投票時間的函式（測試可替換）
    """

    def __init__(
        self,
        sessions: SessionStore,
        vote_salt: str,
        clock: Callable[[], datetime] = None,
    ):
        self.sessions = sessions
        self.vote_salt = vote_salt
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self._commands: Dict[str, Callable] = {
            "start": self._cmd_start,
            "help": self._cmd_help,
            "create_room": self._cmd_create_room,
            "my_rooms": self._cmd_my_rooms,
            "room": self._cmd_join_room,
            "nominations": self._cmd_nominations,
            "add_nomination": self._cmd_add_nomination,
            "add_nominee": self._cmd_add_nominee,
            "set_nominee_media": self._cmd_set_nominee_media,
            "delete_nomination": self._cmd_delete_nomination,
            "delete_nominee": self._cmd_delete_nominee,
            "results": self._cmd_results,
        }
        self._buttons: Dict[PayloadKind, Callable] = {
            PayloadKind.OPEN_NOMINATION: self._btn_open_nomination,
            PayloadKind.VOTE: self._btn_vote,
            PayloadKind.RESULTS: self._btn_results,
            PayloadKind.ADD_NOMINEE: self._btn_add_nominee,
            PayloadKind.SET_MEDIA: self._btn_set_media,
            PayloadKind.DELETE_NOMINEE: self._btn_delete_nominee,
            PayloadKind.BACK: self._btn_back,
        }

    # ============ 入口 ============

    def handle_text(self, db: Session, event: TextEvent, transport: Transport) -> None:
        session = self.sessions.get(event.sender_id)
        with self._reply_on_error(db, transport, event.chat_id, f"text from user {event.sender_id}"):
            self._route_text(db, event, session, transport)

    def handle_button(self, db: Session, event: ButtonEvent, transport: Transport) -> None:
        session = self.sessions.get(event.sender_id)
        with self._reply_on_error(db, transport, event.chat_id, f"button {event.payload!r} from user {event.sender_id}"):
            action = parse_payload(event.payload)
            self._buttons[action.kind](db, event, session, action, transport)

    @contextmanager
    def _reply_on_error(self, db: Session, transport: Transport, chat_id: int, context: str):
        try:
            yield
        except NotFound as e:
            transport.send_text(chat_id, NOT_FOUND_TEXT.get(type(e), "Not found."))
        except PermissionDenied as e:
            logger.warning(f"Permission denied for {context}: {e}")
            transport.send_text(chat_id, str(e))
        except ValidationError as e:
            text = str(e)
            if e.usage:
                text = f"{text}\n\n{e.usage}"
            transport.send_text(chat_id, text)
        except (StorageFailure, SQLAlchemyError) as e:
            logger.error(f"Storage failure while handling {context}: {e}", exc_info=True)
            db.rollback()
            transport.send_text(chat_id, render.GENERIC_FAILURE)
        except Exception as e:
            logger.error(f"Unexpected error while handling {context}: {e}", exc_info=True)
            db.rollback()
            transport.send_text(chat_id, render.GENERIC_FAILURE)

    def _route_text(self, db: Session, event: TextEvent, session: UserSession, transport: Transport) -> None:
        pending = session.pending

        # 1) 等媒體
        if isinstance(pending, AwaitingMedia) and event.has_media:
            self._consume_media(db, event, session, pending, transport)
            return

        # 2) 等 nominee 名字
        if isinstance(pending, AwaitingNomineeName) and not event.is_command and event.text:
            self._consume_nominee_name(db, event, session, pending, transport)
            return

        # 3) 指令
        if event.is_command:
            name = event.command_name.lstrip("/").split("@", 1)[0].lower()
            handler = self._commands.get(name)
            if handler is None:
                transport.send_text(event.chat_id, render.UNKNOWN_COMMAND)
                return
            handler(db, event, session, transport)
            return

        # 4) 一般文字
        if "nomination" in event.text.lower():
            transport.send_text(event.chat_id, render.NOMINATIONS_HINT)

    # ============ 多步驟輸入 ============

    def _consume_media(self, db: Session, event: TextEvent, session: UserSession, pending: AwaitingMedia, transport: Transport) -> None:
        nominee_id = pending.nominee_id
        session.reset_pending()

        _require(
            NomineeManager.is_owner(db, nominee_id, event.sender_id),
            "Only the room owner can change nominee media.",
        )

        if event.photo_refs:
            # 同一張照片的多個尺寸，最後一個最大
            file_ref, kind = event.photo_refs[-1], MediaKind.PHOTO
        else:
            file_ref, kind = event.video_ref, MediaKind.VIDEO

        if not NomineeManager.update_media(db, nominee_id, file_ref, kind):
            raise NomineeNotFound(nominee_id)
        transport.send_text(event.chat_id, render.MEDIA_SAVED)

    def _consume_nominee_name(self, db: Session, event: TextEvent, session: UserSession, pending: AwaitingNomineeName, transport: Transport) -> None:
        nomination_id = pending.nomination_id
        # 不論名字是否合法都離開等待狀態，避免卡在輸入迴圈
        session.reset_pending()

        name = event.text.strip()
        if not name:
            raise ValidationError(
                "The nominee name cannot be empty.",
                "Press ➕ Add nominee again and send the name as text.",
            )

        _require(
            NominationManager.is_owner(db, nomination_id, event.sender_id),
            "Only the room owner can add nominees.",
        )

        nominee_id = NomineeManager.create_nominee(db, nomination_id, name)
        session.expect_media(nominee_id)

        transport.send_text(
            event.chat_id,
            f"Nominee «{name}» added ✅\nNow send a photo or video for it as one message (optional).",
            render.back_grid(),
        )

    # ============ 指令 ============

    def _cmd_start(self, db: Session, event: TextEvent, session: UserSession, transport: Transport) -> None:
        transport.send_text(event.chat_id, render.START_TEXT)

    def _cmd_help(self, db: Session, event: TextEvent, session: UserSession, transport: Transport) -> None:
        transport.send_text(event.chat_id, render.HELP_TEXT)

    def _cmd_create_room(self, db: Session, event: TextEvent, session: UserSession, transport: Transport) -> None:
        args = event.command_args.strip()
        if not args:
            transport.send_text(event.chat_id, render.USAGE_CREATE_ROOM)
            return

        parts = split_pipe_args(args, 2)
        if len(parts) < 2:
            raise ValidationError("Both a title and a password are required, separated by '|'.", render.USAGE_CREATE_ROOM)
        title, password = parts

        room_id = RoomManager.create_room(db, event.sender_id, title, password)
        transport.send_text(event.chat_id, render.room_created_text(room_id, title, password))

    def _cmd_my_rooms(self, db: Session, event: TextEvent, session: UserSession, transport: Transport) -> None:
        rooms = RoomManager.list_rooms_by_owner(db, event.sender_id)
        transport.send_text(event.chat_id, render.rooms_list_text(rooms))

    def _cmd_join_room(self, db: Session, event: TextEvent, session: UserSession, transport: Transport) -> None:
        args = event.command_args.strip()
        if not args:
            transport.send_text(event.chat_id, render.USAGE_JOIN_ROOM)
            return

        parts = split_id_args(args, 2)
        if len(parts) < 2:
            raise ValidationError("Both the room ID and the password are required.", render.USAGE_JOIN_ROOM)
        room_id = parse_id(parts[0], "Room ID", render.USAGE_JOIN_ROOM)
        password = parts[1].strip()

        room = RoomManager.get_room_by_credentials(db, room_id, password)
        session.enter_room(room.id)

        logger.info(f"User {event.sender_id} entered room {room.id}")
        transport.send_text(event.chat_id, render.room_entered_text(room))

    def _cmd_nominations(self, db: Session, event: TextEvent, session: UserSession, transport: Transport) -> None:
        if session.active_room_id is None:
            transport.send_text(event.chat_id, render.ENTER_ROOM_FIRST)
            return
        self._send_nominations_list(db, event.chat_id, event.sender_id, session.active_room_id, transport)

    def _cmd_add_nomination(self, db: Session, event: TextEvent, session: UserSession, transport: Transport) -> None:
        args = event.command_args.strip()
        if not args:
            transport.send_text(event.chat_id, render.USAGE_ADD_NOMINATION)
            return

        parts = split_pipe_args(args, 3)
        if len(parts) < 2:
            raise ValidationError("At least a roomID and a title are required, separated by '|'.", render.USAGE_ADD_NOMINATION)
        room_id = parse_id(parts[0], "roomID", render.USAGE_ADD_NOMINATION)
        title = parts[1]
        description = parts[2] if len(parts) >= 3 else ""

        _require(RoomManager.is_owner(db, room_id, event.sender_id), "Only the room owner can add nominations.")

        nomination_id = NominationManager.create_nomination(db, room_id, title, description)
        transport.send_text(
            event.chat_id,
            f"Nomination added ✅ (ID {nomination_id})\nAll IDs are shown by /nominations.",
        )

    def _cmd_add_nominee(self, db: Session, event: TextEvent, session: UserSession, transport: Transport) -> None:
        args = event.command_args.strip()
        if not args:
            transport.send_text(event.chat_id, render.USAGE_ADD_NOMINEE)
            return

        parts = split_pipe_args(args, 2)
        if len(parts) < 2:
            raise ValidationError("Both a nominationID and a name are required, separated by '|'.", render.USAGE_ADD_NOMINEE)
        nomination_id = parse_id(parts[0], "nominationID", render.USAGE_ADD_NOMINEE)
        name = parts[1]

        _require(
            NominationManager.is_owner(db, nomination_id, event.sender_id),
            "Only the room owner can add nominees.",
        )

        nominee_id = NomineeManager.create_nominee(db, nomination_id, name)
        transport.send_text(
            event.chat_id,
            f"Nominee added ✅ (ID {nominee_id})\n"
            "To add or replace its media use /set_nominee_media with the nominee ID.",
        )

    def _cmd_set_nominee_media(self, db: Session, event: TextEvent, session: UserSession, transport: Transport) -> None:
        args = event.command_args.strip()
        if not args:
            transport.send_text(event.chat_id, render.USAGE_SET_MEDIA)
            return

        nominee_id = parse_id(args, "nomineeID", render.USAGE_SET_MEDIA)
        _require(
            NomineeManager.is_owner(db, nominee_id, event.sender_id),
            "Only the room owner can change nominee media.",
        )

        session.expect_media(nominee_id)
        transport.send_text(event.chat_id, render.SEND_MEDIA_PROMPT)

    def _cmd_delete_nomination(self, db: Session, event: TextEvent, session: UserSession, transport: Transport) -> None:
        args = event.command_args.strip()
        if not args:
            transport.send_text(event.chat_id, render.USAGE_DELETE_NOMINATION)
            return

        nomination_id = parse_id(args, "nominationID", render.USAGE_DELETE_NOMINATION)
        _require(
            NominationManager.is_owner(db, nomination_id, event.sender_id),
            "Only the room owner can delete nominations.",
        )

        if not NominationManager.delete_nomination(db, nomination_id):
            raise NominationNotFound(nomination_id)
        transport.send_text(event.chat_id, "Nomination deleted together with its nominees and votes ✅")

    def _cmd_delete_nominee(self, db: Session, event: TextEvent, session: UserSession, transport: Transport) -> None:
        args = event.command_args.strip()
        if not args:
            transport.send_text(event.chat_id, render.USAGE_DELETE_NOMINEE)
            return

        nominee_id = parse_id(args, "nomineeID", render.USAGE_DELETE_NOMINEE)
        _require(
            NomineeManager.is_owner(db, nominee_id, event.sender_id),
            "Only the room owner can delete nominees.",
        )

        if not NomineeManager.delete_nominee(db, nominee_id):
            raise NomineeNotFound(nominee_id)
        transport.send_text(event.chat_id, "Nominee deleted together with its votes ✅")

    def _cmd_results(self, db: Session, event: TextEvent, session: UserSession, transport: Transport) -> None:
        args = split_id_args(event.command_args.strip(), 2)
        if not args:
            transport.send_text(event.chat_id, render.USAGE_RESULTS)
            return

        if len(args) == 1:
            nomination_id = parse_id(args[0], "nominationID", render.USAGE_RESULTS)
            room_id = NominationManager.get_room_id(db, nomination_id)
            _require(RoomManager.is_owner(db, room_id, event.sender_id), "Only the room owner can see the results.")
        else:
            room_id = parse_id(args[0], "roomID", render.USAGE_RESULTS)
            nomination_id = parse_id(args[1], "nominationID", render.USAGE_RESULTS)
            _require(RoomManager.is_owner(db, room_id, event.sender_id), "Only the room owner can see the results.")
            if not NominationManager.is_in_room(db, nomination_id, room_id):
                raise ValidationError("This nomination does not belong to that room.", render.USAGE_RESULTS)

        self._send_results(db, event.chat_id, room_id, nomination_id, transport)

    # ============ 按鈕 ============

    def _btn_open_nomination(self, db: Session, event: ButtonEvent, session: UserSession, action: ButtonAction, transport: Transport) -> None:
        room_id = NominationManager.get_room_id(db, action.target_id)
        _require_room_access(session, room_id)
        self._send_nominees(db, event.chat_id, event.sender_id, action.target_id, transport)

    def _btn_vote(self, db: Session, event: ButtonEvent, session: UserSession, action: ButtonAction, transport: Transport) -> None:
        nominee_id = action.target_id
        # nomination 一律由 nominee 推導，不信任其他來源
        nomination_id, room_id = NomineeManager.get_nomination_and_room(db, nominee_id)
        _require_room_access(session, room_id)

        user_hash = hash_user_id(self.vote_salt, event.sender_id)
        VoteManager.record_vote(db, user_hash, nomination_id, nominee_id, self._clock())

        name = NomineeManager.get_name(db, nominee_id)
        transport.send_text(event.chat_id, f"Vote accepted! You voted for: {name}")

        # 直接再列一次 nominations，不用往上捲
        self._send_nominations_list(db, event.chat_id, event.sender_id, room_id, transport)

    def _btn_results(self, db: Session, event: ButtonEvent, session: UserSession, action: ButtonAction, transport: Transport) -> None:
        room_id = NominationManager.get_room_id(db, action.target_id)
        _require(RoomManager.is_owner(db, room_id, event.sender_id), "Only the room owner can see the results.")
        self._send_results(db, event.chat_id, room_id, action.target_id, transport, render.back_grid())

    def _btn_add_nominee(self, db: Session, event: ButtonEvent, session: UserSession, action: ButtonAction, transport: Transport) -> None:
        _require(
            NominationManager.is_owner(db, action.target_id, event.sender_id),
            "Only the room owner can add nominees.",
        )
        session.expect_nominee_name(action.target_id)
        transport.send_text(event.chat_id, render.SEND_NOMINEE_NAME_PROMPT, render.back_grid())

    def _btn_set_media(self, db: Session, event: ButtonEvent, session: UserSession, action: ButtonAction, transport: Transport) -> None:
        _require(
            NomineeManager.is_owner(db, action.target_id, event.sender_id),
            "Only the room owner can change nominee media.",
        )
        session.expect_media(action.target_id)
        transport.send_text(event.chat_id, render.SEND_MEDIA_PROMPT, render.back_grid())

    def _btn_delete_nominee(self, db: Session, event: ButtonEvent, session: UserSession, action: ButtonAction, transport: Transport) -> None:
        _require(
            NomineeManager.is_owner(db, action.target_id, event.sender_id),
            "Only the room owner can delete nominees.",
        )
        if not NomineeManager.delete_nominee(db, action.target_id):
            raise NomineeNotFound(action.target_id)
        transport.send_text(
            event.chat_id,
            "Nominee deleted together with its votes ✅\nOpen the nomination again to refresh the list.",
            render.back_grid(),
        )

    def _btn_back(self, db: Session, event: ButtonEvent, session: UserSession, action: ButtonAction, transport: Transport) -> None:
        # 讓使用者能跳出卡住的輸入流程
        session.reset_pending()

        if session.active_room_id is None:
            transport.send_text(event.chat_id, render.ENTER_ROOM_FIRST)
            return
        self._send_nominations_list(db, event.chat_id, event.sender_id, session.active_room_id, transport)

    # ============ 畫面 ============

    def _send_nominations_list(self, db: Session, chat_id: int, user_id: int, room_id: int, transport: Transport) -> None:
        nominations = NominationManager.list_nominations(db, room_id)
        is_owner = RoomManager.is_owner(db, room_id, user_id)
        text, grid = render.nominations_list(nominations, is_owner)
        transport.send_text(chat_id, text, grid or None)

    def _send_nominees(self, db: Session, chat_id: int, user_id: int, nomination_id: int, transport: Transport) -> None:
        name = NominationManager.get_name(db, nomination_id)
        nominees = NomineeManager.list_nominees(db, nomination_id)
        is_owner = NominationManager.is_owner(db, nomination_id, user_id)

        transport.send_text(chat_id, render.nomination_header(nomination_id, name))
        if is_owner:
            transport.send_text(chat_id, "Nomination controls:", render.owner_controls(nomination_id))

        if not nominees:
            transport.send_text(chat_id, "There are no nominees in this nomination yet.", render.back_grid())
            return

        for nominee in nominees:
            caption, grid = render.nominee_card(nominee, is_owner)
            if nominee.media_file_id and nominee.media_kind is MediaKind.PHOTO:
                transport.send_photo(chat_id, nominee.media_file_id, caption, grid)
            elif nominee.media_file_id and nominee.media_kind is MediaKind.VIDEO:
                transport.send_video(chat_id, nominee.media_file_id, caption, grid)
            else:
                transport.send_text(chat_id, caption, grid)

    def _send_results(self, db: Session, chat_id: int, room_id: int, nomination_id: int, transport: Transport, buttons=None) -> None:
        room_title = RoomManager.get_room_title(db, room_id)
        nomination_name = NominationManager.get_name(db, nomination_id)
        results = VoteManager.results_by_nomination(db, nomination_id)
        transport.send_text(
            chat_id,
            render.results_text(room_title, room_id, nomination_name, nomination_id, results),
            buttons,
        )
