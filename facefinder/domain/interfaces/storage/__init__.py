"""Storage interfaces."""
from .embedding_store import EmbeddingStore
from .match_ledger import MatchLedger

__all__ = ["EmbeddingStore", "MatchLedger"]
