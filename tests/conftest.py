"""
AutoFounder - Test Configuration and Fixtures
"""
from typing import Dict

import pytest

from autofounder.config import Settings
from autofounder.models import Deck, Slide


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        store_dir=tmp_path / "decks",
        output_dir=tmp_path / "output",
        resolve_timeout=0.05,
        broadcast_close_after=0.05,
        enhance_timeout=1.0,
    )


@pytest.fixture
def answers() -> Dict[str, str]:
    return {
        "startupName": "Kova",
        "oneLiner": "The fastest way from idea to investor inbox",
        "problem": "Founders waste weeks formatting decks",
        "solution": "Answer seven questions and get a themed deck",
        "customer": "Pre-seed founders and accelerators",
        "traction": "1,200 decks generated in beta",
        "ask": "$500k for 12 months of build and hires",
        "model": "",
        "market": "",
        "competition": "",
        "team": "",
        "roadmap": "",
        "contact": "",
    }


@pytest.fixture
def deck() -> Deck:
    return Deck.create(
        title="Café Ünïcode 🚀",
        slides=[
            Slide(heading="Café Ünïcode 🚀", bullets=["Pitch decks, façile"], kind="cover"),
            Slide(heading="Problem", bullets=["Décks take wéeks", "日本語も"], kind="problem"),
            Slide(heading="Ask", bullets=["€500k"], kind="ask", textTone="light"),
        ],
        meta={"version": 1, "source": "autofounder", "category": "other"},
        deck_id="abc123",
    )
