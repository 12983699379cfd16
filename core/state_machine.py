"""
狀態機：使用者的「等待輸入」狀態

每個使用者同一時間只會處在以下其中一個狀態：

    Idle                              沒有等待任何輸入
    AwaitingNomineeName(nomination)   下一則非指令文字 = 新 nominee 的名字
    AwaitingMedia(nominee)            下一則照片/影片 = 該 nominee 的媒體

合法轉換：
    任何狀態 -> Idle                    （back 按鈕、輸入被消耗）
    任何狀態 -> AwaitingNomineeName     （addnom 按鈕）
    任何狀態 -> AwaitingMedia           （setmedia 按鈕、/set_nominee_media、建立 nominee 後）

ActiveRoom 與這裡無關，另外存在 UserSession.active_room_id
"""
from dataclasses import dataclass, field
from typing import Optional, Union


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class AwaitingNomineeName:
    nomination_id: int


@dataclass(frozen=True)
class AwaitingMedia:
    nominee_id: int


PendingInput = Union[Idle, AwaitingNomineeName, AwaitingMedia]

IDLE = Idle()


@dataclass
class UserSession:
    """
    單一使用者的互動狀態（只存在記憶體中）

    pending 是單一欄位，因此「同時等名字又等媒體」在結構上不可能發生
    """
    active_room_id: Optional[int] = None
    pending: PendingInput = field(default=IDLE)

    def enter_room(self, room_id: int) -> None:
        self.active_room_id = room_id

    def expect_nominee_name(self, nomination_id: int) -> None:
        self.pending = AwaitingNomineeName(nomination_id)

    def expect_media(self, nominee_id: int) -> None:
        self.pending = AwaitingMedia(nominee_id)

    def reset_pending(self) -> None:
        self.pending = IDLE

    @property
    def is_idle(self) -> bool:
        return isinstance(self.pending, Idle)
