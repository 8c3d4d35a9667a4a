"""Pydantic models for news source configuration.

These models provide type-safe access to the YAML configuration
in news_sources.yaml.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator

from bali_report.constants import SCRAPER_MAX_ARTICLES
from bali_report.news.models import NewsCategory


def _require_http_url(value: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Not an http(s) URL: {value}")
    return value


class SourceConfig(BaseModel):
    """Configuration for a single RSS feed."""

    name: str
    url: str
    category: NewsCategory
    active: bool = True
    language: str = "en"
    reliability: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        return _require_http_url(v)

    @field_validator("category", mode="before")
    @classmethod
    def parse_category(cls, v):
        return NewsCategory.parse(v)


class ScraperSelectors(BaseModel):
    """CSS selectors used to pull articles out of a listing page."""

    article_list: str
    article_link: str
    article_title: str
    article_description: Optional[str] = None
    article_date: Optional[str] = None
    article_author: Optional[str] = None
    article_image: Optional[str] = None


class ScraperConfig(BaseModel):
    """Configuration for a site without a usable feed."""

    name: str
    url: str
    base_url: str
    category: NewsCategory
    selectors: ScraperSelectors
    max_articles: int = Field(default=SCRAPER_MAX_ARTICLES, ge=1, le=50)
    active: bool = True

    @field_validator("url", "base_url")
    @classmethod
    def validate_urls(cls, v: str) -> str:
        return _require_http_url(v)

    @field_validator("category", mode="before")
    @classmethod
    def parse_category(cls, v):
        return NewsCategory.parse(v)


class NewsSourcesConfig(BaseModel):
    """Root configuration model."""

    version: str = "1.0"
    sources: list[SourceConfig] = Field(default_factory=list)
    scrapers: list[ScraperConfig] = Field(default_factory=list)

    @field_validator("sources")
    @classmethod
    def unique_source_urls(cls, v: list[SourceConfig]) -> list[SourceConfig]:
        seen: set[str] = set()
        for source in v:
            if source.url in seen:
                raise ValueError(f"Duplicate source URL: {source.url}")
            seen.add(source.url)
        return v

    @property
    def active_source_count(self) -> int:
        return sum(1 for s in self.sources if s.active)

    @property
    def active_scraper_count(self) -> int:
        return sum(1 for s in self.scrapers if s.active)
