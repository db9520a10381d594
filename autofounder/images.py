"""
AutoFounder Slide Images
========================
Pixabay lookup for per-slide pictures (best effort, None on any miss) and the
byte download the exporter needs (raises, since a half-illustrated export is a failure).
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import requests  # type: ignore[reportMissingImports]

from autofounder.errors import ImageFetchError

logger = logging.getLogger(__name__)

PIXABAY_URL = "https://pixabay.com/api/"

SECTION_QUERIES: Dict[str, str] = {
    "problem": "business problem",
    "solution": "innovation technology",
    "market": "market analysis",
    "model": "business strategy",
    "traction": "growth chart",
    "team": "startup team",
    "ask": "investment funding",
}

RELEVANCE_KEYWORDS: Dict[str, List[str]] = {
    "problem": ["problem", "issue", "challenge", "difficulty", "struggle", "pain", "frustration"],
    "solution": ["solution", "innovation", "technology", "fix", "improve", "solve", "breakthrough"],
    "market": ["market", "analysis", "chart", "graph", "data", "research", "trend"],
    "model": ["business", "strategy", "model", "revenue", "money", "profit", "plan"],
    "traction": ["growth", "success", "chart", "graph", "metrics", "achievement", "progress"],
    "team": ["team", "people", "meeting", "collaboration", "group", "professionals"],
    "ask": ["investment", "funding", "money", "capital", "investor", "handshake", "deal"],
}
STARTUP_TERMS = ("startup", "business", "entrepreneur", "innovation")


def is_image_relevant(tags: str, section: str) -> bool:
    tags = (tags or "").lower()
    if any(kw in tags for kw in RELEVANCE_KEYWORDS.get(section, [])):
        return True
    return any(term in tags for term in STARTUP_TERMS)


class PixabayImageFinder:
    def __init__(self, api_key: str, session: Optional[Any] = None, timeout: float = 10.0):
        self.api_key = api_key
        self.session = session or requests.Session()
        self.timeout = timeout

    def _search(self, query: str) -> Optional[Dict[str, Any]]:
        params = {
            "key": self.api_key,
            "q": query,
            "image_type": "photo",
            "orientation": "horizontal",
            "category": "business",
            "min_width": 800,
            "per_page": 3,
            "safesearch": "true",
        }
        response = self.session.get(PIXABAY_URL, params=params, timeout=self.timeout)
        response.raise_for_status()
        hits = (response.json() or {}).get("hits") or []
        return hits[0] if hits else None

    def find_image_sync(self, section: str) -> Optional[str]:
        query = SECTION_QUERIES.get(section)
        if not query:
            return None
        hit = self._search(query)
        if not hit:
            logger.info("No Pixabay images for %s (query=%r)", section, query)
            return None
        if not is_image_relevant(hit.get("tags", ""), section):
            logger.info("Pixabay image for %s not relevant: %s", section, hit.get("tags"))
            return None
        return hit.get("webformatURL") or None

    async def find_image(self, section: str) -> Optional[str]:
        return await asyncio.to_thread(self.find_image_sync, section)


def fetch_image_bytes(url: str, session: Optional[Any] = None, timeout: float = 15.0) -> bytes:
    http = session or requests
    try:
        response = http.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise ImageFetchError(f"Could not fetch image {url}: {e}") from e
    content = response.content or b""
    if not content:
        raise ImageFetchError(f"Image {url} is empty")
    return content
