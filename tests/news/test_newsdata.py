"""Tests for the NewsData.io API tier client."""

from __future__ import annotations

from datetime import date

import httpx
import pytest

from bali_report.news.models import NewsCategory
from bali_report.news.newsdata import (
    CATEGORY_PARAMS,
    CreditBudget,
    NewsDataClient,
    NewsDataError,
)

RESULT = {
    "article_id": "abc123",
    "title": "Bali tourism hits record high",
    "link": "https://news.example.com/bali-record",
    "description": "Arrivals to the island exceeded forecasts this quarter.",
    "pubDate": "2024-05-01 08:00:00",
    "source_id": "baliwire",
    "creator": ["Made Wirawan"],
    "image_url": "https://img.example.com/bali.jpg",
}


def client_with(mock_http, payload: dict, status: int = 200, requests: list | None = None, **kwargs):
    def handler(request):
        if requests is not None:
            requests.append(request)
        return httpx.Response(status, json=payload)

    return NewsDataClient("test-key", client=mock_http(handler), rate_limit_seconds=0, **kwargs)


class TestAvailability:
    """Key, budget and category coverage."""

    def test_unavailable_without_key(self):
        assert not NewsDataClient(None).is_available()

    def test_opinion_not_supported(self):
        client = NewsDataClient("key")
        assert NewsCategory.OPINION not in CATEGORY_PARAMS
        assert not client.is_available(NewsCategory.OPINION)
        assert client.is_available(NewsCategory.BALI)

    def test_exhausted_budget(self):
        client = NewsDataClient("key", budget=CreditBudget(daily_limit=1, used=1))
        assert not client.is_available()

    def test_budget_resets_on_new_day(self):
        budget = CreditBudget(daily_limit=5, used=5, day=date(2000, 1, 1))
        assert budget.remaining == 5


class TestFetchArticles:
    """Request building and response conversion."""

    @pytest.mark.asyncio
    async def test_converts_results(self, mock_http):
        client = client_with(mock_http, {"status": "success", "results": [RESULT]})

        articles = await client.fetch_articles(NewsCategory.BALI, limit=5)

        assert len(articles) == 1
        article = articles[0]
        assert article.id == "abc123"
        assert article.source == "baliwire (NewsData.io)"
        assert article.author == "Made Wirawan"
        assert article.image_url == "https://img.example.com/bali.jpg"
        assert article.category == NewsCategory.BALI
        assert article.pub_date.year == 2024

    @pytest.mark.asyncio
    async def test_request_params(self, mock_http):
        requests = []
        client = client_with(mock_http, {"status": "success", "results": []}, requests=requests)

        await client.fetch_articles(NewsCategory.BALI, limit=50)

        params = requests[0].url.params
        assert params["apikey"] == "test-key"
        assert params["size"] == "10"
        assert params["country"] == "id"
        assert params["q"] == "bali"

    @pytest.mark.asyncio
    async def test_consumes_one_credit_per_request(self, mock_http):
        client = client_with(mock_http, {"status": "success", "results": []})
        await client.fetch_articles(NewsCategory.BRICS)
        await client.fetch_articles(NewsCategory.BRICS)
        assert client.get_status()["credits_used"] == 2

    @pytest.mark.asyncio
    async def test_error_status_raises(self, mock_http):
        client = client_with(mock_http, {"status": "error", "results": {"message": "quota"}}, status=429)
        with pytest.raises(NewsDataError, match="429"):
            await client.fetch_articles(NewsCategory.BRICS)

    @pytest.mark.asyncio
    async def test_transport_error_raises(self, mock_http):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = NewsDataClient("key", client=mock_http(handler), rate_limit_seconds=0)
        with pytest.raises(NewsDataError, match="ConnectError"):
            await client.fetch_articles(NewsCategory.BRICS)

    @pytest.mark.asyncio
    async def test_unsupported_category_raises(self):
        with pytest.raises(NewsDataError):
            await NewsDataClient("key").fetch_articles(NewsCategory.OPINION)

    def test_convert_skips_incomplete(self):
        assert NewsDataClient.convert_article({"title": "No link"}, NewsCategory.BALI) is None
