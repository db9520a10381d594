import pytest

from autofounder.codec import (
    decode_payload,
    deck_key,
    encode_payload,
    investors_url,
    parse_location,
    viewer_url,
)
from autofounder.errors import PayloadDecodeError
from autofounder.models import Deck


class TestPayload:
    def test_round_trip_non_ascii(self, deck):
        payload = deck.to_payload()
        encoded = encode_payload(payload)
        assert decode_payload(encoded) == payload
        assert Deck.from_payload(decode_payload(encoded)) == deck

    def test_url_safe_without_padding(self, deck):
        encoded = encode_payload(deck.to_payload())
        assert not set(encoded) & {"+", "/", "="}

    def test_padding_is_optional_on_decode(self):
        encoded = encode_payload({"a": "é"})
        padded = encoded + "=" * (-len(encoded) % 4)
        assert decode_payload(padded) == decode_payload(encoded) == {"a": "é"}

    @pytest.mark.parametrize("bad", ["", "!!!!", "bm90IGpzb24"])
    def test_garbage_raises(self, bad):
        with pytest.raises(PayloadDecodeError):
            decode_payload(bad)


class TestParseLocation:
    def test_full_url_with_id(self):
        loc = parse_location("http://localhost:8000/#deck=abc-123")
        assert loc.deck_id == "abc-123"
        assert loc.key == deck_key("abc-123") == "deck:abc-123"
        assert loc.inline_payload is None
        assert not loc.present

    def test_fragment_with_present(self):
        loc = parse_location("#deck=abc&present=1")
        assert loc.deck_id == "abc"
        assert loc.present

    def test_bare_fragment(self):
        assert parse_location("deck=abc").deck_id == "abc"

    def test_inline_payload_is_percent_decoded(self):
        encoded = encode_payload({"x": 1})
        loc = parse_location(f"https://example.com/#deckdata={encoded}%3D")
        assert loc.inline_payload == encoded + "="
        assert loc.deck_id is None

    def test_investors(self):
        encoded = encode_payload({"x": 1})
        assert parse_location(f"#investors={encoded}").investors_payload == encoded

    def test_nothing_to_find(self):
        loc = parse_location("https://example.com/")
        assert loc.deck_id is None and loc.inline_payload is None and loc.key is None


class TestViewerUrl:
    def test_by_id(self):
        assert viewer_url("http://host/", deck_id="abc") == "http://host/#deck=abc"

    def test_inline_with_present(self):
        assert viewer_url("http://host", payload="XYZ", present=True) == "http://host/#deckdata=XYZ&present=1"

    def test_needs_id_or_payload(self):
        with pytest.raises(ValueError):
            viewer_url("http://host")

    def test_investors_uses_same_encoding(self, deck):
        payload = deck.to_payload()
        url = investors_url("http://host", payload)
        assert url == f"http://host/#investors={encode_payload(payload)}"
        assert viewer_url("http://host", payload=encode_payload(payload)).endswith(encode_payload(payload))
