"""
Database models package.
"""
from app.models.base import Base
from app.models.file_analytics import FileAnalytics

__all__ = [
    "Base",
    "FileAnalytics",
]
