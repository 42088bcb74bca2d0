"""Data ingestion module - adapters, schemas, and derivation helpers."""

from archv.ingestion.schemas import (
    Article,
    Category,
)

__all__ = [
    "Article",
    "Category",
]
