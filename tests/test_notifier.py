"""Tests for Discord webhook delivery."""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest
import requests

from news_monitor.models import MatchedArticle
from news_monitor.notifier import (
    DEFAULT_COLOR,
    DiscordNotifier,
    SOURCE_COLORS,
    build_embed,
    format_relative_time,
    truncate_text,
)

from .helpers import WEBHOOK_URL

NOW = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


def _article(**overrides):
    values = dict(
        title="Prabowo resmikan bendungan",
        url="https://x/1",
        published_at=NOW - timedelta(minutes=30),
        source="CNN Indonesia",
        matched_keywords=["prabowo"],
    )
    values.update(overrides)
    return MatchedArticle(**values)


def _response(status, payload=None):
    response = Mock()
    response.status_code = status
    response.text = "" if payload is None else str(payload)
    response.json.return_value = payload if payload is not None else {}
    return response


class FakeClock:
    def __init__(self):
        self.now = 1000.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


def _notifier(session, clock, rpm=30):
    return DiscordNotifier(WEBHOOK_URL, rate_limit_rpm=rpm, session=session, clock=clock, sleep=clock.sleep)


class TestBuildEmbed:
    def test_embed_fields(self):
        embed = build_embed(_article(description="Ringkasan", image_url="https://x/img.jpg"), now=NOW)

        assert embed["title"] == "**Prabowo** resmikan bendungan"
        assert embed["url"] == "https://x/1"
        assert embed["color"] == 0xFF0000
        assert embed["footer"] == {"text": "CNN Indonesia"}
        assert embed["fields"][0]["value"] == "`prabowo`"
        assert embed["fields"][1]["value"] == "30m ago"
        assert embed["description"] == "Ringkasan"
        assert embed["thumbnail"] == {"url": "https://x/img.jpg"}

    def test_every_shipped_source_has_a_color(self):
        for source in ("CNN Indonesia", "Detik.com", "BBC Indonesia", "Kompas.com"):
            assert build_embed(_article(source=source), now=NOW)["color"] == SOURCE_COLORS[source]
        assert SOURCE_COLORS["Kompas.com"] != DEFAULT_COLOR

    def test_unknown_source_uses_default_color(self):
        embed = build_embed(_article(source="Other News"), now=NOW)

        assert embed["color"] == DEFAULT_COLOR
        assert "thumbnail" not in embed
        assert "description" not in embed

    def test_title_is_truncated(self):
        embed = build_embed(_article(title="prabowo " + "x" * 400), now=NOW)

        assert len(embed["title"]) == 256
        assert embed["title"].endswith("...")


class TestFormatting:
    @pytest.mark.parametrize(
        "delta,expected",
        [
            (timedelta(seconds=20), "Just now"),
            (timedelta(minutes=5), "5m ago"),
            (timedelta(hours=3), "3h ago"),
            (timedelta(hours=30), "Yesterday"),
            (timedelta(days=4), "4d ago"),
        ],
    )
    def test_relative_time(self, delta, expected):
        assert format_relative_time(NOW - delta, now=NOW) == expected

    def test_truncate_text(self):
        assert truncate_text("abc", 5) == "abc"
        assert truncate_text("abcdefgh", 6) == "abc..."


class TestDiscordNotifier:
    def test_success_on_204(self, clock):
        session = Mock()
        session.post.return_value = _response(204)

        assert _notifier(session, clock).send_article(_article()) is True
        args, kwargs = session.post.call_args
        assert args[0] == WEBHOOK_URL
        assert kwargs["timeout"] == 10
        assert kwargs["json"]["embeds"][0]["url"] == "https://x/1"

    def test_success_on_200(self, clock):
        session = Mock()
        session.post.return_value = _response(200)

        assert _notifier(session, clock).send_article(_article()) is True

    def test_server_error_returns_false(self, clock):
        session = Mock()
        session.post.return_value = _response(500, "oops")

        assert _notifier(session, clock).send_article(_article()) is False

    def test_network_error_returns_false(self, clock):
        session = Mock()
        session.post.side_effect = requests.ConnectionError("down")

        assert _notifier(session, clock).send_article(_article()) is False

    def test_429_blocks_until_retry_after(self, clock):
        session = Mock()
        session.post.side_effect = [_response(429, {"retry_after": 5}), _response(204)]
        notifier = _notifier(session, clock)

        assert notifier.send_article(_article()) is False
        assert notifier.is_rate_limited
        assert notifier.send_article(_article(url="https://x/2")) is False
        assert session.post.call_count == 1

        clock.now += 6
        assert notifier.send_article(_article(url="https://x/3")) is True
        assert session.post.call_count == 2

    def test_sends_are_spaced_by_rate_limit(self, clock):
        session = Mock()
        session.post.return_value = _response(204)
        notifier = _notifier(session, clock, rpm=30)

        notifier.send_article(_article())
        clock.now += 0.5
        notifier.send_article(_article(url="https://x/2"))

        assert clock.sleeps == [pytest.approx(1.5)]
        assert session.post.call_count == 2

    def test_test_connection(self, clock):
        session = Mock()
        session.post.return_value = _response(204)

        assert _notifier(session, clock).test_connection() is True

    def test_test_connection_failure(self, clock):
        session = Mock()
        session.post.return_value = _response(404, "Unknown Webhook")

        assert _notifier(session, clock).test_connection() is False

    def test_rejects_non_positive_rate(self):
        with pytest.raises(ValueError):
            DiscordNotifier(WEBHOOK_URL, rate_limit_rpm=0)
