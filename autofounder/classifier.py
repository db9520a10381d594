"""
AutoFounder Category Classifier
===============================
Keyword heuristic that scores deck text per category and picks a visual theme.
An LLM classifier may be tried first; it always falls back to the heuristic.
"""

import json
import logging
import math
import re
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Protocol

from autofounder.categories import (
    CATEGORY_KEYWORDS,
    FALLBACK_CATEGORY,
    Category,
    ThemeKey,
    resolve_theme,
)
from autofounder.models import Slide, ThemeConfig

logger = logging.getLogger(__name__)

LOW_CONFIDENCE = 0.3
WHOLE_WORD_SCORE = 2
SUBSTRING_SCORE = 1


@dataclass(frozen=True)
class Classification:
    category: Category
    confidence: float
    theme: ThemeKey
    assets: ThemeConfig
    via: str = "heuristic"

    def as_meta(self) -> Dict[str, object]:
        return {
            "category": self.category.value,
            "theme": self.theme.value,
            "themeAssets": self.assets.model_dump(by_alias=True),
            "categoryConfidence": self.confidence,
            "classifiedVia": self.via,
        }


def deck_text(title: str, slides: Iterable[Slide]) -> str:
    pieces = []
    if title:
        pieces.append(title)
    for s in slides:
        if s.heading:
            pieces.append(s.heading)
        if s.bullets:
            pieces.append("\n".join(s.bullets))
    return "\n".join(pieces).lower()


def score_text(text: str) -> Dict[Category, int]:
    text = (text or "").lower()
    scores: Dict[Category, int] = {}
    for category, keywords in CATEGORY_KEYWORDS.items():
        score = 0
        for kw in keywords:
            low = kw.lower()
            if re.search(rf"\b{re.escape(low)}\b", text):
                score += WHOLE_WORD_SCORE
            elif low in text:
                score += SUBSTRING_SCORE
        scores[category] = score
    return scores


def confidence_for(score: int) -> float:
    """LOW_CONFIDENCE for no evidence, then rises strictly with score towards 1 without reaching it."""
    if score <= 0:
        return LOW_CONFIDENCE
    return LOW_CONFIDENCE + (1 - LOW_CONFIDENCE) * math.tanh(score / 10)


def _result(category: Category, confidence: float, via: str) -> Classification:
    theme, assets = resolve_theme(category)
    return Classification(category=category, confidence=confidence, theme=theme, assets=assets, via=via)


def heuristic_classify(text: str) -> Classification:
    scores = score_text(text)
    best = FALLBACK_CATEGORY
    best_score = 0
    # Strict '>' keeps the first declared category on ties
    for category, score in scores.items():
        if score > best_score:
            best, best_score = category, score
    return _result(best, confidence_for(best_score), "heuristic")


class CategoryClassifier(Protocol):
    async def classify(self, title: str, slides: Iterable[Slide]) -> Classification: ...


class HeuristicClassifier:
    async def classify(self, title: str, slides: Iterable[Slide]) -> Classification:
        return heuristic_classify(deck_text(title, slides))


def _parse_llm_category(raw: str) -> Optional[Classification]:
    match = re.search(r"\{.*\}", raw or "", re.DOTALL)
    if not match:
        return None
    data = json.loads(match.group(0))
    if not isinstance(data, dict):
        return None
    try:
        category = Category(str(data.get("category", "")).strip().lower())
    except ValueError:
        return None
    try:
        confidence = float(data.get("confidence", 0.8))
    except (TypeError, ValueError):
        confidence = 0.8
    if confidence <= 0:
        confidence = LOW_CONFIDENCE
    confidence = min(1.0, confidence)
    return _result(category, confidence, "llm")


class LLMCategoryClassifier:
    """Asks the LLM for a category; any failure or unknown category falls back to the heuristic."""

    def __init__(self, client):
        self.client = client

    def _build_prompt(self, text: str) -> str:
        categories = ", ".join(c.value for c in Category)
        return f"""Classify this startup pitch into exactly one business category.

Allowed categories: {categories}

Pitch:
{text[:2500]}

Return ONLY a JSON object: {{"category": "<one of the allowed categories>", "confidence": <number between 0 and 1>}}"""

    async def classify(self, title: str, slides: Iterable[Slide]) -> Classification:
        slides = list(slides)
        text = deck_text(title, slides)
        try:
            raw = await self.client.generate_async(
                self._build_prompt(text), temperature=0.0, max_output_tokens=60
            )
            result = _parse_llm_category(raw)
            if result is not None:
                return result
            logger.warning("LLM classifier returned an unusable category: %r", (raw or "")[:120])
        except Exception as e:
            logger.warning("LLM classification failed, falling back to heuristic: %s", e)
        return heuristic_classify(text)
