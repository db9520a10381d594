"""
AutoFounder URL protocol
========================
Viewer locations carry a deck by reference or inline:

  #deck=<id>                   look up "deck:<id>" in the store, then on the broadcast channel
  #deckdata=<url-safe-base64>  the whole deck, for when no store could be written
  #investors=<url-safe-base64> same encoding, consumed by the investor flow
  &present=1                   display hint, ignored by transport

Inline payloads are compact JSON -> UTF-8 -> base64 with '+'→'-', '/'→'_' and no padding.
"""

import base64
import binascii
import json
import re
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import unquote, urlsplit

from autofounder.errors import PayloadDecodeError

KEY_PREFIX = "deck:"

_DECKDATA_RE = re.compile(r"(?:^|[&#])deckdata=([^&]+)")
_INVESTORS_RE = re.compile(r"(?:^|[&#])investors=([^&]+)")
_DECK_ID_RE = re.compile(r"(?:^|[&#])deck=([a-z0-9\-]+)", re.IGNORECASE)
_PRESENT_RE = re.compile(r"(?:^|[&#])present=1(?:&|$)")


def deck_key(deck_id: str) -> str:
    return f"{KEY_PREFIX}{deck_id}"


def encode_payload(obj: Any) -> str:
    raw = json.dumps(obj, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    return base64.b64encode(raw).decode("ascii").replace("+", "-").replace("/", "_").rstrip("=")


def decode_payload(text: str) -> Any:
    b64 = (text or "").strip().replace("-", "+").replace("_", "/")
    if not b64:
        raise PayloadDecodeError("empty payload")
    b64 += "=" * (-len(b64) % 4)
    try:
        raw = base64.b64decode(b64, validate=True)
        return json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise PayloadDecodeError(f"invalid inline payload: {e}") from e


@dataclass(frozen=True)
class DeckLocation:
    raw: str = ""
    deck_id: Optional[str] = None
    inline_payload: Optional[str] = None
    investors_payload: Optional[str] = None
    present: bool = False

    @property
    def key(self) -> Optional[str]:
        return deck_key(self.deck_id) if self.deck_id else None


def _fragment(location: str) -> str:
    location = (location or "").strip()
    if location.startswith("#"):
        return location[1:]
    parts = urlsplit(location)
    if parts.scheme or parts.netloc or "#" in location:
        return parts.fragment
    return location


def parse_location(location: str) -> DeckLocation:
    """Accepts a full viewer URL, a '#...' fragment, or a bare 'deck=...' string."""
    frag = _fragment(location)
    data = _DECKDATA_RE.search(frag)
    investors = _INVESTORS_RE.search(frag)
    deck_id = _DECK_ID_RE.search(frag)
    return DeckLocation(
        raw=location or "",
        deck_id=deck_id.group(1) if deck_id else None,
        inline_payload=unquote(data.group(1)) if data else None,
        investors_payload=unquote(investors.group(1)) if investors else None,
        present=bool(_PRESENT_RE.search(frag)),
    )


def viewer_url(
    origin: str,
    deck_id: Optional[str] = None,
    payload: Optional[str] = None,
    present: bool = False,
) -> str:
    if payload is not None:
        frag = f"deckdata={payload}"
    elif deck_id:
        frag = f"deck={deck_id}"
    else:
        raise ValueError("viewer_url needs a deck id or an inline payload")
    if present:
        frag += "&present=1"
    return f"{origin.rstrip('/')}/#{frag}"


def investors_url(origin: str, deck_payload: Any) -> str:
    return f"{origin.rstrip('/')}/#investors={encode_payload(deck_payload)}"
