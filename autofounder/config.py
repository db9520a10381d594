"""
AutoFounder configuration
=========================
One explicit Settings object, built once from the environment (and .env) and passed
into the builder, the LLM client and the transport. Nothing else reads os.environ.
"""

import logging
import os
from pathlib import Path
from typing import Literal, Mapping, Optional

from dotenv import load_dotenv  # type: ignore[reportMissingImports]
from pydantic import BaseModel, field_validator  # type: ignore[reportMissingImports]

logger = logging.getLogger(__name__)

_ROOT_DIR = Path(__file__).resolve().parent.parent

DEFAULT_ORIGIN = "http://localhost:8000"
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"
DEFAULT_STORE_QUOTA = 5 * 1024 * 1024


def _clean(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value if value else None


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = _clean(env.get(name))
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


class Settings(BaseModel):
    groq_api_key: Optional[str] = None
    cerebras_api_key: Optional[str] = None
    google_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_GEMINI_MODEL
    pixabay_api_key: Optional[str] = None

    origin: str = DEFAULT_ORIGIN
    store_backend: Literal["memory", "file", "none"] = "memory"
    store_dir: Path = _ROOT_DIR / "decks"
    store_quota_bytes: Optional[int] = DEFAULT_STORE_QUOTA

    resolve_timeout: float = 1.2
    broadcast_close_after: float = 1.5
    enhance_timeout: float = 30.0
    image_timeout: float = 10.0

    output_dir: Path = _ROOT_DIR / "output"
    assets_dir: Optional[Path] = None
    watermark: Optional[str] = None

    @field_validator("origin")
    @classmethod
    def origin_without_trailing_slash(cls, v: str) -> str:
        cleaned = (v or "").strip().rstrip("/")
        if not cleaned:
            raise ValueError("origin cannot be empty")
        return cleaned

    @field_validator("resolve_timeout", "broadcast_close_after", "enhance_timeout", "image_timeout")
    @classmethod
    def positive_seconds(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts must be positive")
        return v

    @property
    def has_llm(self) -> bool:
        return bool(self.groq_api_key or self.cerebras_api_key or self.google_api_key)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None, load_dotenv_file: bool = True) -> "Settings":
        """Build settings from a mapping (default: os.environ after loading .env)."""
        if env is None:
            if load_dotenv_file:
                env_path = _ROOT_DIR / ".env"
                if env_path.exists():
                    load_dotenv(str(env_path), override=False)
            env = os.environ

        quota_raw = _clean(env.get("AUTOFOUNDER_STORE_QUOTA"))
        if quota_raw is None:
            quota: Optional[int] = DEFAULT_STORE_QUOTA
        elif quota_raw == "0":
            quota = None
        else:
            try:
                quota = int(quota_raw)
            except ValueError:
                raise ValueError(f"AUTOFOUNDER_STORE_QUOTA must be an integer, got {quota_raw!r}") from None

        data = {
            "groq_api_key": _clean(env.get("GROQ_API_KEY")),
            "cerebras_api_key": _clean(env.get("CEREBRAS_API_KEY")),
            "google_api_key": _clean(env.get("GOOGLE_API_KEY")),
            "pixabay_api_key": _clean(env.get("PIXABAY_API_KEY")),
            "store_quota_bytes": quota,
            "resolve_timeout": _float(env, "AUTOFOUNDER_RESOLVE_TIMEOUT", 1.2),
            "broadcast_close_after": _float(env, "AUTOFOUNDER_BROADCAST_CLOSE_AFTER", 1.5),
            "enhance_timeout": _float(env, "AUTOFOUNDER_ENHANCE_TIMEOUT", 30.0),
            "image_timeout": _float(env, "AUTOFOUNDER_IMAGE_TIMEOUT", 10.0),
            "watermark": _clean(env.get("AUTOFOUNDER_WATERMARK")),
        }
        optional = {
            "gemini_model": _clean(env.get("GEMINI_MODEL")),
            "origin": _clean(env.get("AUTOFOUNDER_ORIGIN")),
            "store_backend": _clean(env.get("AUTOFOUNDER_STORE")),
            "store_dir": _clean(env.get("AUTOFOUNDER_STORE_DIR")),
            "output_dir": _clean(env.get("AUTOFOUNDER_OUTPUT_DIR")),
            "assets_dir": _clean(env.get("AUTOFOUNDER_ASSETS_DIR")),
        }
        data.update({k: v for k, v in optional.items() if v is not None})

        settings = cls(**data)
        if not settings.has_llm:
            logger.info("No LLM key configured; decks will be built without text enhancement.")
        return settings
