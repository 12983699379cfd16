"""
自定義異常類別

集中管理所有業務邏輯異常，方便 dispatcher 統一轉成回覆訊息
"""


class VoteBotException(Exception):
    """所有業務異常的基類"""
    pass


# ============ NotFound ============

class NotFound(VoteBotException):
    """實體不存在"""
    pass


class RoomNotFound(NotFound):
    """房間不存在（或密碼錯誤，兩者不區分）"""
    def __init__(self, room_id):
        self.room_id = room_id
        super().__init__(f"Room {room_id} not found")


class NominationNotFound(NotFound):
    """Nomination 不存在"""
    def __init__(self, nomination_id):
        self.nomination_id = nomination_id
        super().__init__(f"Nomination {nomination_id} not found")


class NomineeNotFound(NotFound):
    """Nominee 不存在"""
    def __init__(self, nominee_id):
        self.nominee_id = nominee_id
        super().__init__(f"Nominee {nominee_id} not found")


# ============ 權限 ============

class PermissionDenied(VoteBotException):
    """擁有權檢查失敗（不是房間 owner，或不在該房間內）"""
    pass


# ============ 輸入驗證 ============

class ValidationError(VoteBotException):
    """
    使用者輸入格式錯誤

    usage: 附在回覆中的用法提示（可為空）
    """
    def __init__(self, message, usage=""):
        self.usage = usage
        super().__init__(message)


# ============ Storage ============

class StorageFailure(VoteBotException):
    """底層資料庫錯誤（不自動重試）"""
    pass
