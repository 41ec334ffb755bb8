"""API endpoint modules for v1."""

from app.api.v1.endpoints import cron, notifications

__all__ = ["cron", "notifications"]
