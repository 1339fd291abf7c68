"""Data models shared by the search augmentation pipeline.

Every model here is created fresh for one search invocation and dropped when
the invocation ends.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# Marker stored in WebContent.content when a page yielded nothing usable.
NO_CONTENT = "No content found"


class SearchEngine(str, Enum):
    """Engines the orchestrator can route a search through."""

    DISABLED = "disabled"
    GOOGLE = "google"
    BING = "bing"
    BAIDU = "baidu"
    DUCKDUCKGO = "duckduckgo"
    TAVILY = "tavily"

    @property
    def uses_browser(self) -> bool:
        """Whether results come from scraping an engine page in a browser."""
        return self in (SearchEngine.GOOGLE, SearchEngine.BING, SearchEngine.BAIDU)


class SearchPhase(str, Enum):
    """Progress labels reported to the caller, in execution order."""

    ANALYZING = "Analyzing search intent..."
    SEARCHING = "Searching the web..."
    FETCHING = "Fetching content..."
    BUILDING = "Building enhanced prompt..."


class SearchIntent(BaseModel):
    """Outcome of intent classification for one user turn."""

    model_config = ConfigDict(frozen=True)

    needs_search: bool = Field(description="Whether external search is warranted")
    keywords: tuple[str, ...] = Field(
        default=(),
        description="Search queries, most comprehensive first",
    )
    links: frozenset[str] | None = Field(
        default=None,
        description="URLs the user referred to explicitly",
    )

    @classmethod
    def no_search(cls) -> "SearchIntent":
        """The intent used whenever classification fails or is skipped."""
        return cls(needs_search=False)


class SearchResultItem(BaseModel):
    """A candidate page returned by a search engine."""

    title: str = Field(description="Result title as shown by the engine")
    url: str = Field(description="Absolute URL of the result")


class WebContent(BaseModel):
    """Distilled content of one fetched page."""

    title: str = Field(description="Article title, or the result title")
    url: str = Field(description="URL the content was fetched from")
    content: str = Field(description="Distilled body in markdown")
    excerpt: str | None = Field(default=None, description="Short summary of the page")

    @property
    def has_content(self) -> bool:
        """Whether the page produced usable content."""
        return bool(self.content.strip()) and self.content != NO_CONTENT

    def truncated(self, max_chars: int) -> "WebContent":
        """Return a copy whose content is capped at ``max_chars``.

        Args:
            max_chars: Maximum characters kept before the ellipsis marker

        Returns:
            WebContent: Self when already short enough, otherwise a capped copy
        """
        if len(self.content) <= max_chars:
            return self
        return self.model_copy(update={"content": self.content[:max_chars] + "..."})


class Citation(BaseModel):
    """A numbered reference shown to the end user."""

    number: int = Field(ge=1, description="1-based reference number used as [n]")
    title: str
    url: str
    excerpt: str | None = None


class AugmentationResult(BaseModel):
    """The pipeline's output: a system prompt plus its reference list."""

    augmented_prompt: str = Field(description="System prompt carrying the reference materials")
    citations: list[Citation] = Field(default_factory=list)
    query: str | None = Field(default=None, description="Query that produced the references")
    engine: SearchEngine | None = Field(default=None, description="Engine that served the search")
