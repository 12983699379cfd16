"""
服務層

這個 package 包含純計算邏輯，不碰資料庫也不改 session：
- CommandService：指令參數解析
- PayloadService：按鈕 payload 文法
- HashingService：投票者雜湊
- RenderService：訊息文字與按鈕排版
"""
