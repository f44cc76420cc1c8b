"""
HTTP entry point and composition root for order notifications.

Run with: uv run uvicorn api.main:app --reload
"""
