"""
AutoFounder Text Enhancement
============================
The opaque text-transform capability: rewrite a flat answer record, suggest slide
headers, and write a presentation script. Every implementation here may be slow or
fail; callers run it as a best-effort stage.
"""

import json
import logging
import re
from typing import Dict, List, Optional, Protocol, Sequence

from autofounder.config import Settings
from autofounder.errors import EnhancementError
from autofounder.gemini_client import LLMClient
from autofounder.models import Slide

logger = logging.getLogger(__name__)

MAX_WORDS_PER_BULLET = 8
MAX_HEADER_WORDS = 6

_BULLET_RULES = (
    f"3-4 diverse bullet points (max {MAX_WORDS_PER_BULLET} words each). "
    "Do NOT include asterisks (*) or bullet symbols. Just return plain text, one point per line"
)


class TextEnhancer(Protocol):
    async def enhance_fields(self, record: Dict[str, str]) -> Dict[str, str]: ...

    async def suggest_headers(self, record: Dict[str, str], keys: Sequence[str]) -> Dict[str, str]: ...


class ScriptWriter(Protocol):
    async def write_script(self, title: str, slides: Sequence[Slide]) -> List[Dict[str, str]]: ...


class NullTextEnhancer:
    """Leaves every field as answered and suggests no headers."""

    async def enhance_fields(self, record: Dict[str, str]) -> Dict[str, str]:
        return dict(record)

    async def suggest_headers(self, record: Dict[str, str], keys: Sequence[str]) -> Dict[str, str]:
        return {}


def _is_blank(value: Optional[str]) -> bool:
    return not (value or "").strip()


def parse_headers(text: str, keys: Sequence[str]) -> Dict[str, str]:
    """Parse 'key: header' lines; keys are matched case-insensitively, spaces as underscores."""
    wanted = {k.lower(): k for k in keys}
    headers: Dict[str, str] = {}
    for line in (text or "").splitlines():
        if ":" not in line:
            continue
        key, _, value = line.partition(":")
        norm = re.sub(r"\s+", "_", key.strip().strip("*-• ").lower())
        value = value.strip().strip('"').strip()
        if norm in wanted and value:
            headers[wanted[norm]] = " ".join(value.split()[:MAX_HEADER_WORDS])
    return headers


class LLMTextEnhancer:
    def __init__(self, client: LLMClient):
        self.client = client

    async def _generate(self, prompt: str) -> str:
        text = await self.client.generate_async(prompt, temperature=0.4, max_output_tokens=300)
        if _is_blank(text):
            raise EnhancementError("LLM returned an empty response")
        return text.strip()

    async def enhance_fields(self, record: Dict[str, str]) -> Dict[str, str]:
        enhanced = dict(record)
        name = record.get("startupName", "")

        if not _is_blank(record.get("problem")):
            enhanced["problem"] = await self._generate(
                f"Make this problem statement into {_BULLET_RULES}. "
                f"Each point should address a different aspect of the problem:\n\n{record['problem']}"
            )
        if not _is_blank(record.get("solution")):
            enhanced["solution"] = await self._generate(
                f"Make this solution into {_BULLET_RULES}. "
                f"Each point should highlight a different benefit or feature:\n\n{record['solution']}"
            )
        if _is_blank(record.get("market")) and not _is_blank(record.get("problem")) and not _is_blank(record.get("solution")):
            enhanced["market"] = await self._generate(
                f"Generate {_BULLET_RULES} about the market opportunity for {name}: "
                "size, growth, competition, opportunity."
            )
        if _is_blank(record.get("model")) and not _is_blank(record.get("solution")):
            enhanced["model"] = await self._generate(
                f"Generate {_BULLET_RULES} about the revenue model for {name}. "
                f"Solution: {record['solution']}"
            )
        traction = (record.get("traction") or "").strip()
        if traction and traction.lower() != "n/a":
            enhanced["traction"] = await self._generate(
                f"Make this into {_BULLET_RULES}. Each point should highlight different metrics "
                f"or achievements. Avoid repetition:\n\n{traction}"
            )
        # Team is never generated; invented team members do not belong in a pitch.
        return enhanced

    async def suggest_headers(self, record: Dict[str, str], keys: Sequence[str]) -> Dict[str, str]:
        if not keys:
            return {}
        context = "\n".join(
            f"{k}: {(record.get(k) or 'Not specified').strip()[:300]}"
            for k in ("startupName", "problem", "solution", "customer", "traction", "ask")
        )
        lines = "\n".join(f"{k}: [header]" for k in keys)
        prompt = f"""{context}

Generate compelling slide headers that logically connect to the content for this startup's pitch deck.
Return only the headers, one per line, in this exact format:
{lines}

Keep headers under {MAX_HEADER_WORDS} words each and avoid repetition."""
        text = await self._generate(prompt)
        headers = parse_headers(text, keys)
        if not headers:
            raise EnhancementError("LLM header response had no usable 'key: header' lines")
        return headers


class LLMScriptWriter:
    """Speaker notes, one entry per slide, in deck order."""

    def __init__(self, client: LLMClient):
        self.client = client

    def _build_prompt(self, title: str, slides: Sequence[Slide]) -> str:
        blocks = []
        for i, s in enumerate(slides):
            bullets = "\n".join(f"- {b}" for b in s.bullets[:6]) or "(no bullets)"
            blocks.append(f"Slide {i + 1} | {s.heading}\n{bullets}")
        return f"""Write a short spoken presentation script for the pitch deck "{title}".
Two or three sentences per slide, first person plural, no markdown.

SLIDES:
---
""" + "\n---\n".join(blocks) + """

Return ONLY a valid JSON array of strings, one string per slide, in order."""

    async def write_script(self, title: str, slides: Sequence[Slide]) -> List[Dict[str, str]]:
        slides = list(slides)
        raw = await self.client.generate_async(
            self._build_prompt(title, slides), temperature=0.5, max_output_tokens=1500
        )
        match = re.search(r"\[.*\]", raw or "", re.DOTALL)
        if not match:
            raise EnhancementError("Script response is not a JSON array")
        notes = json.loads(match.group(0))
        if not isinstance(notes, list) or len(notes) != len(slides):
            raise EnhancementError(f"Expected {len(slides)} script entries, got {len(notes) if isinstance(notes, list) else 'none'}")
        return [{"heading": s.heading, "notes": str(n).strip()} for s, n in zip(slides, notes)]


def build_enhancer(settings: Settings, client: Optional[LLMClient] = None) -> TextEnhancer:
    if not settings.has_llm:
        return NullTextEnhancer()
    return LLMTextEnhancer(client or LLMClient(settings))
