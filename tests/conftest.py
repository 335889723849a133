from __future__ import annotations

import pytest

from news_monitor.config import MonitorConfig
from news_monitor.storage import ArticleStore

from .helpers import WEBHOOK_URL


@pytest.fixture
def config() -> MonitorConfig:
    return MonitorConfig(
        webhook_url=WEBHOOK_URL,
        keywords=["prabowo", "pemerintah"],
        source_delay_seconds=0,
        batch_delay_seconds=0,
        fetch_metadata=False,
        log_file=None,
        shutdown_grace_seconds=1,
    )


@pytest.fixture
def store(tmp_path):
    article_store = ArticleStore(tmp_path / "news.db")
    article_store.initialize()
    yield article_store
    article_store.close()
