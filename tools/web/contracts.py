"""Data contracts for the web research pipeline."""

from dataclasses import dataclass, field


class SearchError(Exception):
    """A search provider call failed."""


@dataclass(frozen=True)
class SearchResult:
    """One ranked hit from a search provider."""

    title: str
    url: str
    snippet: str = ""
    date: str = ""  # ISO date (YYYY-MM-DD)


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of fetching the readable text of one page."""

    url: str
    success: bool
    content: str = ""
    error: str | None = None

    def as_text(self) -> str:
        """Extracted text, or an explicit error marker when extraction failed."""
        if self.success:
            return self.content
        return f"Error: {self.error or 'Unknown error'}"


@dataclass(frozen=True)
class EvidenceItem:
    """One web source folded into the research context."""

    url: str
    title: str
    snippet: str
    date: str
    extracted_text: str
    summary: str


@dataclass
class SearchRecord:
    """One planned query and the evidence resolved for it."""

    query: str
    results: list[EvidenceItem] = field(default_factory=list)


@dataclass(frozen=True)
class SourceDoc:
    """A deduplicated source for display and citation."""

    id: int
    title: str
    url: str
    snippet: str = ""

    def to_dict(self) -> dict[str, object]:
        return {"id": self.id, "title": self.title, "url": self.url, "snippet": self.snippet}
