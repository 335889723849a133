"""Tests for the feed channel."""

from datetime import datetime, timezone
from unittest.mock import Mock

import requests

from news_monitor.providers.rss import _parse_entry, fetch_feed_articles

NOW = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)

FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Berita</title>
    <item>
      <title>Prabowo resmikan bendungan baru</title>
      <link>https://www.example.co.id/berita/1</link>
      <pubDate>Mon, 15 Jan 2024 10:00:00 +0700</pubDate>
    </item>
    <item>
      <title>Pemerintah umumkan kebijakan pangan</title>
      <link>https://www.example.co.id/berita/2</link>
      <pubDate>Mon, 15 Jan 2024 11:00:00 +0700</pubDate>
    </item>
    <item>
      <title>Berita lama sekali</title>
      <link>https://www.example.co.id/berita/3</link>
      <pubDate>Mon, 01 Jan 2024 10:00:00 +0700</pubDate>
    </item>
    <item>
      <title>Tanpa tautan</title>
    </item>
  </channel>
</rss>
"""


def _session(*responses):
    session = Mock(spec=requests.Session)
    session.get.side_effect = list(responses)
    return session


def _response(content: bytes) -> Mock:
    response = Mock()
    response.content = content
    response.raise_for_status.return_value = None
    return response


class TestFetchFeedArticles:
    def test_parses_fresh_entries_newest_first(self):
        session = _session(_response(FEED))

        articles = fetch_feed_articles(session, ["https://feed/1"], "Contoh", 24, 20, now=NOW)

        assert [article.url for article in articles] == [
            "https://www.example.co.id/berita/2",
            "https://www.example.co.id/berita/1",
        ]
        assert articles[0].source == "Contoh"
        assert articles[0].published_at == datetime(2024, 1, 15, 4, 0, tzinfo=timezone.utc)
        session.get.assert_called_once_with("https://feed/1", timeout=10)

    def test_failing_feed_does_not_stop_others(self):
        session = _session(requests.ConnectionError("boom"), _response(FEED))

        articles = fetch_feed_articles(session, ["https://feed/bad", "https://feed/good"], "Contoh", 24, 20, now=NOW)

        assert len(articles) == 2
        assert session.get.call_count == 2

    def test_garbage_feed_yields_nothing(self):
        session = _session(_response(b"this is not xml at all <<<"))

        assert fetch_feed_articles(session, ["https://feed/1"], "Contoh", 24, 20, now=NOW) == []

    def test_limit_caps_results(self):
        session = _session(_response(FEED))

        articles = fetch_feed_articles(session, ["https://feed/1"], "Contoh", 24, 1, now=NOW)

        assert len(articles) == 1


class TestParseEntry:
    def test_requires_title_and_url(self):
        assert _parse_entry({"title": "Judul", "link": ""}, "S", NOW) is None
        assert _parse_entry({"title": "", "link": "https://x/1"}, "S", NOW) is None

    def test_falls_back_to_published_string(self):
        entry = {"title": "Judul", "link": "https://x/1", "published": "15 Januari 2024 10:30 WIB"}

        stub = _parse_entry(entry, "S", NOW)

        assert stub.published_at == datetime(2024, 1, 15, 3, 30, tzinfo=timezone.utc)

    def test_missing_date_uses_now(self):
        stub = _parse_entry({"title": "Judul", "link": "https://x/1"}, "S", NOW)

        assert stub.published_at == NOW
