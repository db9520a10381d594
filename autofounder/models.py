"""
AutoFounder Deck schema
=======================
The canonical Deck / Slide records. Validated once where a deck enters a process
(build or resolve) so every consumer downstream can assume defaults are filled in.
Serialized form uses camelCase keys (createdAt, imageUrl, textTone, themeAssets).
"""

import re
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import (  # type: ignore[reportMissingImports]
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

TextTone = Literal["light", "dark"]
TONES = ("light", "dark")
DEFAULT_TONE: TextTone = "dark"


def new_deck_id() -> str:
    return str(uuid.uuid4())


def slugify(text: str, fallback: str = "") -> str:
    """Lowercase, collapse every non-alphanumeric run to one '-', trim the ends."""
    slug = re.sub(r"[^a-z0-9]+", "-", (text or "").lower()).strip("-")
    return slug or fallback


class ThemeConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    cover_bg: str = Field(alias="coverBg")
    content_bg: str = Field(alias="contentBg")
    default_text: TextTone = Field(alias="defaultText")


class Slide(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    heading: str = Field(default="", validation_alias=AliasChoices("heading", "title"))
    bullets: List[str] = Field(default_factory=list)
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    text_tone: Optional[TextTone] = Field(default=None, alias="textTone")
    kind: Optional[str] = None

    @field_validator("heading", mode="before")
    @classmethod
    def heading_as_text(cls, v: Any) -> str:
        return str(v).strip() if v is not None else ""

    @field_validator("bullets", mode="before")
    @classmethod
    def clean_bullets(cls, v: Any) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split("\n")
        return [str(b).strip() for b in v if b is not None and str(b).strip()]


class Deck(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(min_length=1)
    created_at: datetime = Field(alias="createdAt")
    title: str = ""
    slug: str = ""
    slides: List[Slide] = Field(min_length=1)
    meta: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def derive_slug(cls, data: Any) -> Any:
        if isinstance(data, dict) and not (data.get("slug") or "").strip():
            data = dict(data)
            deck_id = str(data.get("id") or "")
            data["slug"] = slugify(str(data.get("title") or ""), fallback=deck_id[:8])
        return data

    @field_validator("slides")
    @classmethod
    def positional_headings(cls, slides: List[Slide]) -> List[Slide]:
        return [
            s if s.heading else s.model_copy(update={"heading": f"Slide {i + 1}"})
            for i, s in enumerate(slides)
        ]

    @field_validator("meta", mode="before")
    @classmethod
    def check_text_tone(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, dict) and "textTone" in v:
            tone = v["textTone"]
            if tone is None:
                v = {k: val for k, val in v.items() if k != "textTone"}
            elif tone not in TONES:
                raise ValueError(f"meta.textTone must be 'light' or 'dark', got {tone!r}")
        return v

    # --- Construction / serialization ---
    @classmethod
    def create(
        cls,
        title: str,
        slides: List[Slide],
        meta: Optional[Dict[str, Any]] = None,
        deck_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> "Deck":
        return cls(
            id=deck_id or new_deck_id(),
            created_at=created_at or datetime.now(timezone.utc),
            title=title,
            slides=slides,
            meta=dict(meta or {}),
        )

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_payload(cls, data: Any) -> "Deck":
        return cls.model_validate(data)

    # --- Presentation metadata ---
    @property
    def theme_assets(self) -> Optional[ThemeConfig]:
        raw = self.meta.get("themeAssets")
        if not isinstance(raw, dict):
            return None
        try:
            return ThemeConfig.model_validate(raw)
        except ValidationError:
            return None

    def tone_for(self, slide: Slide) -> TextTone:
        """Slide override, then deck tone, then theme default, then dark."""
        if slide.text_tone:
            return slide.text_tone
        deck_tone = self.meta.get("textTone")
        if deck_tone in TONES:
            return deck_tone
        assets = self.theme_assets
        if assets is not None:
            return assets.default_text
        return DEFAULT_TONE
