"""
指令參數解析

純計算邏輯：把 command_args 字串切成參數，錯誤時拋 ValidationError
"""
from typing import List

from core.exceptions import ValidationError


def split_pipe_args(args: str, n: int) -> List[str]:
    """
    以 '|' 切分參數（最多 n 段，最後一段保留剩餘內容）

    每段去除前後空白，空的段落直接丟掉

    範例：
        split_pipe_args("Title | Pass", 2)   -> ["Title", "Pass"]
        split_pipe_args("A|B|C", 2)          -> ["A", "B|C"]
        split_pipe_args("A||B", 3)           -> ["A", "B"]
        split_pipe_args(" | P", 2)           -> ["P"]

    n == 0 時回傳空 list；n < 0 表示不限段數
    """
    if n == 0:
        return []
    raw = args.split("|", n - 1) if n > 0 else args.split("|")
    return [part.strip() for part in raw if part.strip()]


def split_id_args(args: str, n: int) -> List[str]:
    """
    切分純 ID / 密碼類的參數

    有 '|' 就用 '|' 切，否則用空白切，
    所以 "/room 1 secret" 與 "/room 1 | secret" 都可以
    """
    if "|" in args:
        return split_pipe_args(args, n)
    return args.split(None, n - 1) if n > 0 else args.split()


# SQLite / PostgreSQL BIGINT 上限
MAX_ID = 2 ** 63 - 1


def is_id_literal(raw: str) -> bool:
    """只接受 ASCII 十進位數字，且落在 1..MAX_ID 之內"""
    return raw.isascii() and raw.isdigit() and 0 < int(raw) <= MAX_ID


def parse_id(raw: str, field_name: str, usage: str = "") -> int:
    """
    解析正整數 ID

    "+5"、"0_1"、全形數字、超過 64 位元的數字一律不接受

    異常：
        ValidationError: 不是數字或不是正數
    """
    value = raw.strip()
    if not (value.isascii() and value.isdigit()):
        raise ValidationError(f"{field_name} must be a number.", usage)
    if int(value) == 0:
        raise ValidationError(f"{field_name} must be a positive number.", usage)
    if not is_id_literal(value):
        raise ValidationError(f"{field_name} must be a number.", usage)
    return int(value)
