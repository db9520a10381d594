"""Test doubles shared across the suite."""
import struct
import zlib
from typing import Callable, List, Optional


class FakeLLMClient:
    """Stands in for LLMClient: answers every prompt with responder(prompt)."""

    def __init__(self, responder: Callable[[str], str]):
        self.responder = responder
        self.prompts: List[str] = []

    async def generate_async(self, prompt: str, **kwargs) -> str:
        self.prompts.append(prompt)
        return self.responder(prompt)


class FakeViewer:
    def __init__(self, fail_navigate: bool = False, fail_close: bool = False, closed: bool = False):
        self.fail_navigate = fail_navigate
        self.fail_close = fail_close
        self.closed = closed
        self.url: Optional[str] = None
        self.close_calls = 0

    def navigate(self, url: str) -> None:
        if self.fail_navigate:
            raise RuntimeError("viewer window is gone")
        self.url = url

    def close(self) -> None:
        self.close_calls += 1
        if self.fail_close:
            raise RuntimeError("cannot close")
        self.closed = True


class FakeNavigator:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.opened: List[str] = []

    def open(self, url: str):
        if self.fail:
            raise RuntimeError("popup blocked")
        self.opened.append(url)
        viewer = FakeViewer()
        viewer.url = url
        return viewer


def tiny_png() -> bytes:
    """A valid 1x1 white PNG."""
    def chunk(kind: bytes, data: bytes) -> bytes:
        return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data) & 0xFFFFFFFF)

    header = struct.pack(">IIBBBBB", 1, 1, 8, 2, 0, 0, 0)
    pixels = zlib.compress(b"\x00\xff\xff\xff")
    return b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", header) + chunk(b"IDAT", pixels) + chunk(b"IEND", b"")
