from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class ArticleStub:
    """Article reference produced by a source fetch."""

    title: str
    url: str
    published_at: datetime
    source: str


@dataclass(slots=True)
class ScrapeResult:
    """Outcome of one ``scrape_news`` call for a single source."""

    articles: List[ArticleStub] = field(default_factory=list)
    success: bool = False
    errors: List[str] = field(default_factory=list)


@dataclass(slots=True)
class ArticleMetadata:
    image_url: Optional[str] = None
    description: Optional[str] = None


@dataclass(slots=True)
class MatchedArticle:
    """A stub that matched at least one keyword and has not been delivered yet."""

    title: str
    url: str
    published_at: datetime
    source: str
    matched_keywords: List[str]
    processed_at: datetime = field(default_factory=utc_now)
    image_url: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.matched_keywords:
            raise ValueError("MatchedArticle requires at least one matched keyword")

    @classmethod
    def from_stub(
        cls,
        stub: ArticleStub,
        matched_keywords: List[str],
        metadata: Optional[ArticleMetadata] = None,
    ) -> "MatchedArticle":
        metadata = metadata or ArticleMetadata()
        return cls(
            title=stub.title,
            url=stub.url,
            published_at=stub.published_at,
            source=stub.source,
            matched_keywords=list(matched_keywords),
            image_url=metadata.image_url,
            description=metadata.description,
        )


@dataclass(slots=True)
class ArticleRecord:
    """Row persisted in the article store."""

    id: int
    url: str
    title: str
    source: str
    published_at: datetime
    processed_at: datetime
    matched_keywords: List[str]
    image_url: Optional[str] = None
    description: Optional[str] = None


@dataclass(slots=True)
class StoreStats:
    total: int
    by_source: Dict[str, int] = field(default_factory=dict)


@dataclass(slots=True)
class JobStatus:
    name: str
    running: bool
    next_run: Optional[datetime]
    runs: int = 0
    skipped: int = 0


@dataclass(slots=True)
class CycleReport:
    """Diagnostics for one monitoring cycle."""

    started_at: datetime
    duration_seconds: float = 0.0
    articles_by_source: Dict[str, int] = field(default_factory=dict)
    matched: int = 0
    sent: int = 0
    saved: int = 0
    errors: List[str] = field(default_factory=list)
    cancelled: bool = False
