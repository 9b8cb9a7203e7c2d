"""Wiki page indexing."""

from .service import IngestionConfig, IngestionError, WikiPageIngestor, load_pages

__all__ = [
    "IngestionConfig",
    "IngestionError",
    "WikiPageIngestor",
    "load_pages",
]
