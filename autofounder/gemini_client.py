"""
Shared LLM client for the AutoFounder text-enhancement capability.
Fallback order: Groq (primary) → Cerebras → Gemini.
Keys come from the injected Settings; a provider without a key is skipped.
"""

import asyncio
import logging
import threading
from typing import Any, Optional

from autofounder.config import Settings
from autofounder.errors import LLMUnavailableError

logger = logging.getLogger(__name__)

GROQ_MODEL = "llama-3.3-70b-versatile"
CEREBRAS_MODEL = "llama-3.3-70b"

_genai_lock = threading.Lock()


def _generate_text_groq(
    prompt: str,
    api_key: str,
    *,
    temperature: float = 0.2,
    max_output_tokens: Optional[int] = 1024,
) -> str:
    """Generate text via Groq."""
    from groq import Groq  # type: ignore[reportMissingImports]
    client = Groq(api_key=api_key)
    max_tokens = max_output_tokens if max_output_tokens is not None else 1024

    response = client.chat.completions.create(
        model=GROQ_MODEL,
        messages=[{"role": "user", "content": prompt}],
        temperature=temperature,
        max_tokens=max_tokens,
    )
    if not response or not response.choices:
        return ""
    return (response.choices[0].message.content or "").strip()


def _generate_text_cerebras(
    prompt: str,
    api_key: str,
    *,
    temperature: float = 0.2,
    max_output_tokens: Optional[int] = 1024,
) -> str:
    """Generate text via Cerebras."""
    from cerebras.cloud.sdk import Cerebras  # type: ignore[reportMissingImports]
    client = Cerebras(api_key=api_key)
    max_tokens = max_output_tokens if max_output_tokens is not None else 1024

    response = client.chat.completions.create(
        model=CEREBRAS_MODEL,
        messages=[{"role": "user", "content": prompt}],
        temperature=temperature,
        max_tokens=max_tokens,
    )
    if not response or not response.choices:
        return ""
    return (response.choices[0].message.content or "").strip()


def _configure_gemini_once(api_key: str) -> None:
    """genai.configure is process-global; only redo it when the key changes."""
    import google.generativeai as genai  # type: ignore[reportMissingImports]
    with _genai_lock:
        if getattr(_configure_gemini_once, "_key", None) == api_key:
            return
        genai.configure(api_key=api_key)
        _configure_gemini_once._key = api_key  # type: ignore[attr-defined]


def _generate_text_gemini(
    prompt: str,
    api_key: str,
    model_name: str,
    *,
    temperature: float = 0.2,
    max_output_tokens: Optional[int] = 1024,
) -> str:
    """Generate text via Google Gemini, tolerating safety-filtered responses."""
    import google.generativeai as genai  # type: ignore[reportMissingImports]
    _configure_gemini_once(api_key)
    model = genai.GenerativeModel(model_name)

    kwargs: Any = {}
    config_kw: Any = {}
    if temperature is not None:
        config_kw["temperature"] = temperature
    if max_output_tokens is not None:
        config_kw["max_output_tokens"] = max_output_tokens
    if config_kw:
        kwargs["generation_config"] = genai.GenerationConfig(**config_kw)

    response = model.generate_content(prompt, **kwargs)
    if not response:
        return ""

    # response.text raises ValueError when the safety filter blocked the candidate
    try:
        return response.text.strip()
    except ValueError:
        logger.warning("Gemini safety filter blocked the response.")
        if response.parts:
            return response.parts[0].text.strip()
        return ""


class LLMClient:
    """Groq → Cerebras → Gemini cascade. A failing provider immediately hands over to the next."""

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def available(self) -> bool:
        return self.settings.has_llm

    def generate_text(
        self,
        prompt: str,
        *,
        temperature: float = 0.2,
        max_output_tokens: Optional[int] = 1024,
    ) -> str:
        s = self.settings
        if not self.available:
            raise LLMUnavailableError(
                "No LLM configured. Set at least one of GROQ_API_KEY, CEREBRAS_API_KEY or GOOGLE_API_KEY."
            )

        errors: list[str] = []

        if s.groq_api_key:
            try:
                return _generate_text_groq(
                    prompt, s.groq_api_key,
                    temperature=temperature, max_output_tokens=max_output_tokens,
                )
            except Exception as e:
                errors.append(f"Groq: {e}")
                logger.warning("Groq failed, falling back to Cerebras. Error: %s", e)

        if s.cerebras_api_key:
            try:
                return _generate_text_cerebras(
                    prompt, s.cerebras_api_key,
                    temperature=temperature, max_output_tokens=max_output_tokens,
                )
            except Exception as e:
                errors.append(f"Cerebras: {e}")
                logger.warning("Cerebras failed, falling back to Gemini. Error: %s", e)

        if s.google_api_key:
            try:
                return _generate_text_gemini(
                    prompt, s.google_api_key, s.gemini_model,
                    temperature=temperature, max_output_tokens=max_output_tokens,
                )
            except Exception as e:
                errors.append(f"Gemini: {e}")
                logger.warning("Gemini failed. Error: %s", e)

        raise LLMUnavailableError("All LLM providers failed. Errors: " + "; ".join(errors))

    async def generate_async(
        self,
        prompt: str,
        *,
        temperature: float = 0.2,
        max_output_tokens: Optional[int] = 1024,
    ) -> str:
        """Async wrapper: runs generate_text in the default thread pool."""
        return await asyncio.to_thread(
            self.generate_text,
            prompt,
            temperature=temperature,
            max_output_tokens=max_output_tokens,
        )
