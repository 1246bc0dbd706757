"""Background consumers."""
from .ingestion_queue import IngestionJob, IngestionQueue

__all__ = ["IngestionJob", "IngestionQueue"]
