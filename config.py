"""
應用程式設定

透過 pydantic-settings 從環境變數 / .env 讀取
"""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    database_url: str = "sqlite:///./vote_bot.db"

    # 投票者雜湊用的 salt（固定值，不輪替）
    vote_salt: str = "dev_salt_change_me"

    # 0 表示不限制 session 數量（永不淘汰）
    session_max_users: int = 0

    debug: bool = False
    log_level: str = "INFO"


@lru_cache()
def get_settings():
    return Settings()
