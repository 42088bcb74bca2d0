"""Storage layer for article persistence."""

from archv.storage.database import Database
from archv.storage.repository import ArticleRepository

__all__ = ["Database", "ArticleRepository"]
