"""Open Graph image and description extraction for a single article page."""

from __future__ import annotations

import logging
from typing import Optional

from bs4 import BeautifulSoup
import requests

from ..models import ArticleMetadata
from ..preview import build_preview, truncate
from .parsing import is_valid_url, make_absolute_url

PAGE_TIMEOUT = 15

_IMAGE_KEYS = ("og:image", "twitter:image", "twitter:image:src")
_DESCRIPTION_KEYS = ("og:description", "twitter:description", "description")
_BODY_SELECTORS = (
    ".detail__body-text p",
    ".read__content p",
    ".detail-text p",
    "article p",
    "main p",
    "p",
)

logger = logging.getLogger(__name__)


def fetch_article_metadata(session: requests.Session, url: str) -> ArticleMetadata:
    """Fetch ``url`` and pull an image and a short description from it.

    Never raises; a failed fetch returns empty metadata.
    """
    try:
        response = session.get(url, timeout=PAGE_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as exc:
        logger.warning("Metadata fetch failed for %s: %s", url, exc)
        return ArticleMetadata()
    return extract_metadata(response.text, url)


def extract_metadata(html: str, url: str) -> ArticleMetadata:
    soup = BeautifulSoup(html, "html.parser")
    image = _meta_content(soup, _IMAGE_KEYS)
    if image:
        image = make_absolute_url(image, url)
        if not is_valid_url(image):
            image = None
    description = truncate(_meta_content(soup, _DESCRIPTION_KEYS))
    if not description:
        description = _body_preview(soup)
    return ArticleMetadata(image_url=image, description=description)


def _meta_content(soup: BeautifulSoup, keys: tuple[str, ...]) -> Optional[str]:
    for key in keys:
        tag = soup.find("meta", attrs={"property": key}) or soup.find("meta", attrs={"name": key})
        if tag is not None:
            content = str(tag.get("content") or "").strip()
            if content:
                return content
    return None


def _body_preview(soup: BeautifulSoup) -> Optional[str]:
    for selector in _BODY_SELECTORS:
        paragraphs = [p.get_text(" ", strip=True) for p in soup.select(selector)]
        preview = build_preview(paragraphs)
        if preview:
            return preview
    return None
