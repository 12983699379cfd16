"""
核心業務邏輯層

這個 package 包含所有核心業務邏輯，包括：
- Managers：Room / Nomination / Nominee / Vote 的持久化操作
- 狀態機 + Session Store：使用者多步驟輸入的狀態
- Dispatcher：把 inbound 事件轉成操作與回覆
"""
