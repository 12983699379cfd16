"""
Transport：dispatcher 對外送訊息的介面

Outbox 把要送出的訊息依序收集起來，由 API 層一次回傳給 messaging transport
"""
from typing import List, Optional, Protocol

from schemas import ButtonGrid, OutboundMessage, SendPhoto, SendText, SendVideo


class Transport(Protocol):
    def send_text(self, chat_id: int, text: str, buttons: Optional[ButtonGrid] = None) -> None:
        ...

    def send_photo(self, chat_id: int, file_ref: str, caption: str = "", buttons: Optional[ButtonGrid] = None) -> None:
        ...

    def send_video(self, chat_id: int, file_ref: str, caption: str = "", buttons: Optional[ButtonGrid] = None) -> None:
        ...


class Outbox:
    """收集 outbound 訊息的 Transport 實作"""

    def __init__(self):
        self.messages: List[OutboundMessage] = []

    def send_text(self, chat_id: int, text: str, buttons: Optional[ButtonGrid] = None) -> None:
        self.messages.append(SendText(chat_id=chat_id, text=text, buttons=buttons))

    def send_photo(self, chat_id: int, file_ref: str, caption: str = "", buttons: Optional[ButtonGrid] = None) -> None:
        self.messages.append(SendPhoto(chat_id=chat_id, file_ref=file_ref, caption=caption, buttons=buttons))

    def send_video(self, chat_id: int, file_ref: str, caption: str = "", buttons: Optional[ButtonGrid] = None) -> None:
        self.messages.append(SendVideo(chat_id=chat_id, file_ref=file_ref, caption=caption, buttons=buttons))

    @property
    def texts(self) -> List[str]:
        """每則訊息的文字（text 或 caption），測試與 log 用"""
        return [m.text if isinstance(m, SendText) else m.caption for m in self.messages]
