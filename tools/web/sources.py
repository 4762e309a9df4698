"""Cross-query URL deduplication and the canonical source list."""

from typing import Iterable, Sequence
from urllib.parse import urlsplit, urlunsplit

from .contracts import SearchRecord, SearchResult, SourceDoc


def normalize_url(url: str) -> str:
    """
    Identity used for deduplication.

    Lowercases scheme and host, drops the fragment and a trailing slash on
    the path. Query strings are kept since they often select the content.
    """
    raw = (url or "").strip()
    try:
        parts = urlsplit(raw)
    except ValueError:
        return raw
    if not parts.scheme or not parts.netloc:
        return raw
    path = parts.path.rstrip("/")
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path, parts.query, ""))


def deduplicate_results(
    batches: Sequence[tuple[str, Sequence[SearchResult]]], max_sources: int
) -> list[tuple[str, SearchResult]]:
    """
    Deduplicate search hits across every query of one iteration.

    Batches are walked in query issue order and results in rank order, so
    each URL is kept once and attributed to the first query that returned it.

    Args:
        batches: (query, results) pairs in the order queries were issued
        max_sources: Cap on the surviving set

    Returns:
        (query, result) pairs, at most max_sources, no duplicate URLs
    """
    seen: set[str] = set()
    kept: list[tuple[str, SearchResult]] = []
    for query, results in batches:
        for result in results:
            if len(kept) >= max_sources:
                return kept
            identity = normalize_url(result.url)
            if not identity or identity in seen:
                continue
            seen.add(identity)
            kept.append((query, result))
    return kept


def build_source_list(records: Iterable[SearchRecord]) -> list[SourceDoc]:
    """Flatten search history into one citation list without duplicate URLs."""
    seen: set[str] = set()
    sources: list[SourceDoc] = []
    for record in records:
        for item in record.results:
            identity = normalize_url(item.url)
            if identity in seen:
                continue
            seen.add(identity)
            sources.append(
                SourceDoc(id=len(sources) + 1, title=item.title, url=item.url, snippet=item.snippet)
            )
    return sources
