"""
Session Store：以 user id 為 key 的記憶體內 session

並發：
- 整個 map 由一把 threading.Lock 保護（只在查找/建立時持有）
- 取得 UserSession 之後，呼叫者視為自己擁有這筆紀錄；
  同一使用者同時只會有一個事件在處理
"""
from collections import OrderedDict
from threading import Lock
import logging

from core.state_machine import UserSession

logger = logging.getLogger(__name__)


class SessionStore:
    """
    參數：
        max_users: 最多保留多少使用者的 session。
                   0 表示不限制（永不淘汰）；
                   > 0 時超過上限會淘汰最久沒使用的（LRU）
    """

    def __init__(self, max_users: int = 0):
        if max_users < 0:
            raise ValueError(f"max_users must be >= 0, got {max_users}")
        self._max_users = max_users
        self._sessions: "OrderedDict[int, UserSession]" = OrderedDict()
        self._lock = Lock()

    def get(self, user_id: int) -> UserSession:
        """取得（必要時建立）使用者的 session"""
        with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                session = UserSession()
                self._sessions[user_id] = session
                self._evict_locked()
            else:
                self._sessions.move_to_end(user_id)
            return session

    def _evict_locked(self) -> None:
        if not self._max_users:
            return
        while len(self._sessions) > self._max_users:
            evicted_id, _ = self._sessions.popitem(last=False)
            logger.debug(f"Evicted session for user {evicted_id}")

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, user_id) -> bool:
        with self._lock:
            return user_id in self._sessions
