"""
Button payload 文法

    nomination:<id>       打開 nomination，列出 nominees
    vote:<nomineeID>      投票
    res_nom:<id>          查看結果（owner）
    addnom:<id>           新增 nominee（owner，接著等名字）
    setmedia:<nomineeID>  設定媒體（owner，接著等照片/影片）
    delnom:<nomineeID>    刪除 nominee（owner）
    back:nominations      回到 nomination 列表

payload 會原封不動地由 ButtonEvent 傳回來，必須完全照文法解析
"""
from dataclasses import dataclass
from typing import Optional
import enum

from core.exceptions import ValidationError
from services.command_service import is_id_literal


class PayloadKind(str, enum.Enum):
    OPEN_NOMINATION = "nomination"
    VOTE = "vote"
    RESULTS = "res_nom"
    ADD_NOMINEE = "addnom"
    SET_MEDIA = "setmedia"
    DELETE_NOMINEE = "delnom"
    BACK = "back"


BACK_TARGET = "nominations"
BACK_PAYLOAD = f"{PayloadKind.BACK.value}:{BACK_TARGET}"


@dataclass(frozen=True)
class ButtonAction:
    kind: PayloadKind
    target_id: Optional[int] = None


def format_payload(kind: PayloadKind, target_id: int) -> str:
    return f"{kind.value}:{target_id}"


def parse_payload(payload: str) -> ButtonAction:
    """
    解析 button payload

    異常：
        ValidationError: 前綴未知、缺少冒號、ID 不是正整數
    """
    prefix, sep, value = payload.partition(":")
    if not sep:
        raise ValidationError(f"Unknown button: {payload!r}")

    try:
        kind = PayloadKind(prefix)
    except ValueError:
        raise ValidationError(f"Unknown button: {payload!r}")

    if kind is PayloadKind.BACK:
        if value != BACK_TARGET:
            raise ValidationError(f"Unknown button: {payload!r}")
        return ButtonAction(kind)

    if not is_id_literal(value):
        raise ValidationError(f"Malformed button id: {payload!r}")
    return ButtonAction(kind, int(value))
