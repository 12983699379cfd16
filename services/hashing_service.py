"""
投票者匿名化

votes 表只存 user hash，不存原始 user id
"""
import hashlib


def hash_user_id(salt: str, user_id: int) -> str:
    """
    sha256("<salt>:<user_id>") 的 hex 字串

    同樣的 salt + user id 永遠得到同樣的結果（讓 upsert 能找到舊票）
    """
    data = f"{salt}:{user_id}".encode("utf-8")
    return hashlib.sha256(data).hexdigest()
