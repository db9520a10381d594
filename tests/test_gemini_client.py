import pytest

from autofounder import gemini_client
from autofounder.config import Settings
from autofounder.errors import LLMUnavailableError
from autofounder.gemini_client import LLMClient, _configure_gemini_once, _generate_text_gemini

genai = pytest.importorskip("google.generativeai")


class FakeResponse:
    text = " pitch "
    parts = []


class FakeModel:
    def __init__(self, name):
        self.name = name

    def generate_content(self, prompt, **kwargs):
        return FakeResponse()


@pytest.fixture
def configure_calls(monkeypatch):
    calls = []
    monkeypatch.setattr(genai, "configure", lambda api_key: calls.append(api_key))
    monkeypatch.setattr(genai, "GenerativeModel", FakeModel)
    monkeypatch.setattr(_configure_gemini_once, "_key", None, raising=False)
    return calls


def test_gemini_is_configured_once_per_key(configure_calls):
    assert _generate_text_gemini("a", "key-1", "gemini-2.0-flash") == "pitch"
    assert _generate_text_gemini("b", "key-1", "gemini-2.0-flash") == "pitch"
    assert configure_calls == ["key-1"]


def test_new_key_reconfigures_gemini(configure_calls):
    _configure_gemini_once("key-1")
    _configure_gemini_once("key-2")
    _configure_gemini_once("key-2")
    assert configure_calls == ["key-1", "key-2"]


def test_cascade_falls_back_to_next_provider(monkeypatch):
    def groq_down(prompt, api_key, **kwargs):
        raise RuntimeError("rate limited")

    monkeypatch.setattr(gemini_client, "_generate_text_groq", groq_down)
    monkeypatch.setattr(gemini_client, "_generate_text_cerebras", lambda prompt, api_key, **kwargs: "from cerebras")
    client = LLMClient(Settings(groq_api_key="g", cerebras_api_key="c"))
    assert client.generate_text("hello") == "from cerebras"


def test_no_keys_is_unavailable():
    with pytest.raises(LLMUnavailableError):
        LLMClient(Settings()).generate_text("hello")
