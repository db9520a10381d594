"""
AutoFounder Deck Builder
========================
Questionnaire answers -> (best-effort text enhancement) -> fixed-order slides ->
Deck -> (best-effort classification/theme, images, script).
Only "no slide survived" is a hard failure; every enhancement degrades silently.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, Field  # type: ignore[reportMissingImports]

from autofounder.classifier import CategoryClassifier, HeuristicClassifier, LLMCategoryClassifier
from autofounder.config import Settings
from autofounder.enhancer import (
    LLMScriptWriter,
    NullTextEnhancer,
    ScriptWriter,
    TextEnhancer,
    build_enhancer,
)
from autofounder.errors import DeckBuildError
from autofounder.gemini_client import LLMClient
from autofounder.images import PixabayImageFinder
from autofounder.models import TONES, Deck, Slide
from autofounder.pipeline import BestEffortPipeline, Stage

logger = logging.getLogger(__name__)

DECK_SCHEMA_VERSION = 1
DECK_SOURCE = "autofounder"


class DeckAnswers(BaseModel):
    # Required questions
    startupName: str = Field(default="", max_length=40)
    oneLiner: str = Field(default="", max_length=120)
    problem: str = Field(default="", max_length=280)
    solution: str = Field(default="", max_length=280)
    customer: str = Field(default="", max_length=80)
    traction: str = Field(default="", max_length=200)
    ask: str = Field(default="", max_length=140)
    # Optional questions
    model: str = Field(default="", max_length=200)
    market: str = Field(default="", max_length=120)
    competition: str = Field(default="", max_length=240)
    team: str = Field(default="", max_length=240)
    roadmap: str = Field(default="", max_length=240)
    contact: str = Field(default="", max_length=120)


REQUIRED_FIELDS = ("startupName", "oneLiner", "problem", "solution", "customer", "traction", "ask")
OPTIONAL_FIELDS = ("model", "market", "competition", "team", "roadmap", "contact")
ANSWER_FIELDS = REQUIRED_FIELDS + OPTIONAL_FIELDS


@dataclass(frozen=True)
class Section:
    key: str
    field: str
    default_header: str


# Presentation order. The cover heading is the startup name, not a fixed header.
SECTIONS: List[Section] = [
    Section("cover", "oneLiner", ""),
    Section("problem", "problem", "Problem"),
    Section("solution", "solution", "Solution"),
    Section("customer", "customer", "Target Customer"),
    Section("traction", "traction", "Traction"),
    Section("ask", "ask", "Ask"),
    Section("model", "model", "Business Model"),
    Section("market", "market", "Market"),
    Section("competition", "competition", "Competition"),
    Section("team", "team", "Team"),
    Section("roadmap", "roadmap", "Roadmap"),
    Section("contact", "contact", "Contact"),
]
HEADER_KEYS = [s.key for s in SECTIONS if s.key not in ("cover", "contact")]

_BULLET_GLYPH = re.compile(r"^[\*•\-\+]\s*")


def flatten_answers(answers: Union[DeckAnswers, Mapping[str, Any]]) -> Dict[str, str]:
    data = answers.model_dump() if isinstance(answers, BaseModel) else dict(answers or {})
    return {k: str(data.get(k) or "").strip() for k in ANSWER_FIELDS}


def split_bullets(text: str) -> List[str]:
    bullets = []
    for line in (text or "").split("\n"):
        cleaned = _BULLET_GLYPH.sub("", line.strip()).strip()
        if cleaned:
            bullets.append(cleaned)
    return bullets


def assemble_slides(fields: Dict[str, str], headers: Optional[Dict[str, str]] = None) -> List[Slide]:
    """Fixed template order; a section whose text yields no bullets is dropped."""
    headers = headers or {}
    slides: List[Slide] = []
    for section in SECTIONS:
        bullets = split_bullets(fields.get(section.field, ""))
        if not bullets:
            continue
        if section.key == "cover":
            heading = fields.get("startupName", "")
        elif section.key in HEADER_KEYS:
            heading = (headers.get(section.key) or "").strip() or section.default_header
        else:
            heading = section.default_header
        slides.append(Slide(heading=heading, bullets=bullets, kind=section.key))
    return slides


@dataclass
class DeckDraft:
    fields: Dict[str, str]
    headers: Dict[str, str] = field(default_factory=dict)


class DeckBuilder:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        enhancer: Optional[TextEnhancer] = None,
        classifier: Optional[CategoryClassifier] = None,
        script_writer: Optional[ScriptWriter] = None,
        image_finder: Optional[PixabayImageFinder] = None,
    ):
        self.settings = settings or Settings()
        self.enhancer = enhancer or NullTextEnhancer()
        self.classifier = classifier or HeuristicClassifier()
        self.script_writer = script_writer
        self.image_finder = image_finder

    @classmethod
    def from_settings(cls, settings: Settings) -> "DeckBuilder":
        """Wire LLM-backed stages when a key is configured, plain fallbacks otherwise."""
        client = LLMClient(settings) if settings.has_llm else None
        return cls(
            settings=settings,
            enhancer=build_enhancer(settings, client),
            classifier=LLMCategoryClassifier(client) if client else HeuristicClassifier(),
            script_writer=LLMScriptWriter(client) if client else None,
            image_finder=PixabayImageFinder(settings.pixabay_api_key) if settings.pixabay_api_key else None,
        )

    # --- Pre-assembly stages (operate on the flat record) ---
    async def _enhance_fields(self, draft: DeckDraft) -> DeckDraft:
        enhanced = await self.enhancer.enhance_fields(dict(draft.fields))
        if not isinstance(enhanced, dict):
            raise TypeError(f"enhancer returned {type(enhanced).__name__}, expected dict")
        merged = dict(draft.fields)
        merged.update({k: str(v) for k, v in enhanced.items() if k in ANSWER_FIELDS and v is not None})
        return replace(draft, fields=merged)

    async def _suggest_headers(self, draft: DeckDraft) -> DeckDraft:
        headers = await self.enhancer.suggest_headers(dict(draft.fields), HEADER_KEYS)
        cleaned = {k: str(v).strip() for k, v in (headers or {}).items() if k in HEADER_KEYS and str(v).strip()}
        return replace(draft, headers=cleaned)

    # --- Post-assembly stages (operate on the Deck) ---
    async def _classify(self, deck: Deck) -> Deck:
        result = await self.classifier.classify(deck.title, deck.slides)
        return deck.model_copy(update={"meta": {**deck.meta, **result.as_meta()}})

    async def _lookup_image(self, section: str) -> Optional[str]:
        return await asyncio.wait_for(self.image_finder.find_image(section), timeout=self.settings.image_timeout)

    async def _find_images(self, deck: Deck) -> Deck:
        """Concurrent per-slide lookups; a failed or timed-out lookup only costs its own slide."""
        wanted = [i for i, s in enumerate(deck.slides) if s.kind and not s.image_url]
        found = await asyncio.gather(
            *(self._lookup_image(deck.slides[i].kind) for i in wanted), return_exceptions=True
        )
        slides = list(deck.slides)
        for i, url in zip(wanted, found):
            if isinstance(url, BaseException):
                logger.warning("Image lookup failed for %s slide: %s", slides[i].kind, str(url) or type(url).__name__)
                continue
            if url:
                slides[i] = slides[i].model_copy(update={"image_url": url})
        return deck.model_copy(update={"slides": slides})

    async def _write_script(self, deck: Deck) -> Deck:
        script = await self.script_writer.write_script(deck.title, deck.slides)
        return deck.model_copy(update={"meta": {**deck.meta, "script": script}})

    async def build(
        self,
        answers: Union[DeckAnswers, Mapping[str, Any]],
        text_tone: Optional[str] = None,
        slide_format: Optional[str] = None,
    ) -> Deck:
        if text_tone is not None and text_tone not in TONES:
            raise ValueError(f"text_tone must be 'light' or 'dark', got {text_tone!r}")

        record = flatten_answers(answers)
        timeout = self.settings.enhance_timeout

        pre = BestEffortPipeline([
            Stage("enhance_fields", self._enhance_fields, timeout),
            Stage("suggest_headers", self._suggest_headers, timeout),
        ])
        draft = (await pre.run(DeckDraft(fields=record))).value

        slides = assemble_slides(draft.fields, draft.headers)
        if not slides:
            raise DeckBuildError("No slide has any content. Answer at least one question to build a deck.")

        title = draft.fields.get("startupName") or record["startupName"] or slides[0].heading
        meta: Dict[str, Any] = {
            "version": DECK_SCHEMA_VERSION,
            "source": DECK_SOURCE,
            "startupName": title,
            "oneLiner": draft.fields.get("oneLiner", ""),
        }
        if slide_format:
            meta["slideFormat"] = slide_format
        if text_tone:
            meta["textTone"] = text_tone
        deck = Deck.create(title=title, slides=slides, meta=meta)

        stages: List[Stage[Deck]] = [Stage("classify", self._classify, timeout)]
        if self.image_finder is not None:
            stages.append(Stage("images", self._find_images))
        if self.script_writer is not None:
            stages.append(Stage("script", self._write_script, timeout))
        result = await BestEffortPipeline(stages).run(deck)

        logger.info(
            "Built deck %s: %d slides, stages %s",
            result.value.id, len(result.value.slides),
            ", ".join(f"{o.name}={'ok' if o.ok else 'fallback'}" for o in result.outcomes),
        )
        return result.value
