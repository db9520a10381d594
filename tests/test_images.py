import pytest
import requests

from autofounder.errors import ImageFetchError
from autofounder.images import PixabayImageFinder, fetch_image_bytes, is_image_relevant


class FakeResponse:
    def __init__(self, payload=None, content=b"", status=200):
        self.payload = payload
        self.content = content
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} error")

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params))
        return self.response


def test_relevance():
    assert is_image_relevant("team, meeting, office", "team")
    assert is_image_relevant("Startup, laptop", "market")
    assert not is_image_relevant("cat, kitten", "problem")


def test_finder_returns_relevant_hit():
    session = FakeSession(FakeResponse({"hits": [{"tags": "growth, chart", "webformatURL": "https://px/1.jpg"}]}))
    finder = PixabayImageFinder("key", session=session)
    assert finder.find_image_sync("traction") == "https://px/1.jpg"
    assert session.calls[0][1]["q"] == "growth chart"


def test_finder_rejects_irrelevant_hit():
    session = FakeSession(FakeResponse({"hits": [{"tags": "cat", "webformatURL": "https://px/cat.jpg"}]}))
    assert PixabayImageFinder("key", session=session).find_image_sync("problem") is None


def test_finder_skips_sections_without_query():
    session = FakeSession(FakeResponse({"hits": []}))
    assert PixabayImageFinder("key", session=session).find_image_sync("cover") is None
    assert session.calls == []


@pytest.mark.asyncio
async def test_finder_async():
    session = FakeSession(FakeResponse({"hits": []}))
    assert await PixabayImageFinder("key", session=session).find_image("ask") is None


def test_fetch_image_bytes():
    assert fetch_image_bytes("https://px/1.jpg", session=FakeSession(FakeResponse(content=b"png"))) == b"png"


@pytest.mark.parametrize("response", [FakeResponse(status=404), FakeResponse(content=b"")])
def test_fetch_image_bytes_failures(response):
    with pytest.raises(ImageFetchError):
        fetch_image_bytes("https://px/1.jpg", session=FakeSession(response))
