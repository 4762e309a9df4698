"""Web research tools: search, extraction, summarization and source handling."""

from .contracts import EvidenceItem, ExtractionResult, SearchError, SearchRecord, SearchResult, SourceDoc

__all__ = [
    "EvidenceItem",
    "ExtractionResult",
    "SearchError",
    "SearchRecord",
    "SearchResult",
    "SourceDoc",
]
