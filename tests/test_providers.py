"""Tests for the source adapters and their feed-then-markup fallback."""

from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
import time
from unittest.mock import Mock

import pytest
import requests

from news_monitor.providers import PROVIDERS, build_providers
from news_monitor.providers.bbc_indonesia import BBCIndonesiaProvider
from news_monitor.providers.cnn_indonesia import CNNIndonesiaProvider
from news_monitor.providers.detik import INDEX_URL, DetikProvider

from .helpers import StaticProvider, make_stub


def _response(content, status=200):
    response = Mock()
    response.content = content.encode("utf-8") if isinstance(content, str) else content
    response.text = content if isinstance(content, str) else content.decode("utf-8")
    response.status_code = status
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    else:
        response.raise_for_status.return_value = None
    return response


def _session(*responses):
    session = Mock()
    session.headers = {}
    session.get.side_effect = list(responses)
    return session


def _feed(*items):
    body = "".join(
        f"<item><title>{title}</title><link>{link}</link><pubDate>{format_datetime(published)}</pubDate></item>"
        for title, link, published in items
    )
    return f'<?xml version="1.0"?><rss version="2.0"><channel><title>t</title>{body}</channel></rss>'


class TestScrapeNewsFallback:
    def test_feed_results_skip_markup(self):
        provider = StaticProvider("A", articles=[make_stub("Prabowo hadir", "https://x/1")])

        result = provider.scrape_news()

        assert result.success
        assert [article.url for article in result.articles] == ["https://x/1"]
        assert provider.markup_calls == 0
        assert provider.last_scrape_time is not None

    def test_empty_feed_falls_back_to_markup(self):
        provider = StaticProvider("A", articles=[], markup=[make_stub("Dari halaman", "https://x/2")])

        result = provider.scrape_news()

        assert result.success
        assert [article.url for article in result.articles] == ["https://x/2"]
        assert provider.markup_calls == 1
        assert result.errors == []

    def test_feed_error_is_recorded_and_markup_used(self):
        provider = StaticProvider("A", markup=[make_stub("Dari halaman", "https://x/2")])
        provider.fetch_feed = Mock(side_effect=RuntimeError("feed down"))

        result = provider.scrape_news()

        assert result.success
        assert len(result.errors) == 1
        assert "feed down" in result.errors[0]

    def test_both_channels_failing_is_not_raised(self):
        provider = StaticProvider("A")
        provider.fetch_feed = Mock(side_effect=RuntimeError("feed down"))
        provider.fetch_markup = Mock(side_effect=RuntimeError("page down"))

        result = provider.scrape_news()

        assert not result.success
        assert result.articles == []
        assert len(result.errors) == 2


class TestConcreteProviders:
    def test_sets_request_headers(self):
        session = _session()

        CNNIndonesiaProvider(user_agent="TestAgent/1.0", session=session)

        assert session.headers["User-Agent"] == "TestAgent/1.0"
        assert session.headers["Accept-Language"].startswith("id-ID")

    def test_network_failure_everywhere_reports_errors(self):
        session = _session(requests.ConnectionError("feed"), requests.ConnectionError("page"))
        provider = CNNIndonesiaProvider(session=session)

        result = provider.scrape_news()

        assert not result.success
        assert len(result.errors) == 1
        assert "CNN Indonesia" in result.errors[0]

    def test_bbc_feed_keeps_only_indonesian_service(self):
        now = datetime.now(timezone.utc)
        feed = _feed(
            ("Prabowo bertemu delegasi", "https://www.bbc.com/indonesia/articles/abc", now - timedelta(hours=1)),
            ("World headline elsewhere", "https://www.bbc.com/news/world-1", now - timedelta(hours=1)),
        )
        provider = BBCIndonesiaProvider(session=_session(_response(feed)))

        articles = provider.fetch_feed()

        assert [article.url for article in articles] == ["https://www.bbc.com/indonesia/articles/abc"]
        assert articles[0].source == "BBC Indonesia"

    def test_detik_falls_back_to_index_page(self):
        stamp = int(time.time()) - 600
        index_html = f"""
        <article>
          <a href="https://news.detik.com/berita/d-7000000/prabowo-rapat">
            <h3 class="media__title">Prabowo pimpin rapat kabinet</h3>
          </a>
          <div class="media__date"><span d-time="{stamp}">10 menit lalu</span></div>
        </article>
        """
        session = _session(
            requests.ConnectionError("feed 1"),
            requests.ConnectionError("feed 2"),
            _response("<html><body>kosong</body></html>"),
            _response(index_html),
        )
        provider = DetikProvider(session=session)

        result = provider.scrape_news()

        assert result.success
        assert [article.url for article in result.articles] == [
            "https://news.detik.com/berita/d-7000000/prabowo-rapat"
        ]
        assert result.articles[0].title == "Prabowo pimpin rapat kabinet"
        assert session.get.call_args_list[-1].args[0] == INDEX_URL


class TestBuildProviders:
    def test_builds_in_requested_order(self):
        providers = build_providers(["detik", "cnn_indonesia"], "Agent/1.0")

        assert [provider.name for provider in providers] == ["Detik.com", "CNN Indonesia"]

    def test_unknown_source(self):
        with pytest.raises(ValueError):
            build_providers(["nope"], "Agent/1.0")

    def test_registry_has_all_sources(self):
        assert set(PROVIDERS) == {"cnn_indonesia", "detik", "bbc_indonesia", "kompas"}
