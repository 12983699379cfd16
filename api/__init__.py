"""
API 層：messaging transport 的 webhook endpoints
"""
