import hashlib
import threading

import pytest
import requests

from dicomtestfiles.config import ResolverConfig
from dicomtestfiles.fetcher import Fetcher
from dicomtestfiles.registry import Registry
from dicomtestfiles.resolver import FixtureResolver

BASE_URL = "https://example.org/data/"

LIVER = b"DICM" + b"\x00" * 128 + b"liver"
CT = b"DICM" + b"\x01" * 256 + b"ct"


def sha256(data: bytes) -> str:
    return "sha256:" + hashlib.sha256(data).hexdigest()


class DummyResponse:
    def __init__(self, url, content=b"", status_code=200, headers=None):
        self.url = url
        self.content = content
        self.status_code = status_code
        self.headers = headers if headers is not None else {"content-length": str(len(content))}
        self.closed = False

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error for url: {self.url}", response=self)

    def iter_content(self, chunk_size=1):
        for start in range(0, len(self.content), chunk_size):
            yield self.content[start:start + chunk_size]

    def close(self):
        self.closed = True


class DummySession:
    """Serves bytes per URL; anything else is a 404."""

    def __init__(self, files=None):
        self.files = dict(files or {})
        self.errors = {}
        self.calls = []
        self._lock = threading.Lock()

    def get(self, url, stream=False, timeout=None):
        with self._lock:
            self.calls.append({"url": url, "stream": stream, "timeout": timeout})
        if url in self.errors:
            raise self.errors[url]
        if url not in self.files:
            return DummyResponse(url, b"Not Found", status_code=404)
        return DummyResponse(url, self.files[url])


@pytest.fixture
def checksums():
    return {
        "pydicom/liver.dcm": sha256(LIVER),
        "CT/1.dcm": sha256(CT),
    }


@pytest.fixture
def session():
    return DummySession({
        BASE_URL + "pydicom/liver.dcm": LIVER,
        BASE_URL + "CT/1.dcm": CT,
    })


@pytest.fixture
def config(tmp_path):
    return ResolverConfig(cache_dir=tmp_path / "cache", base_url=BASE_URL)


@pytest.fixture
def resolver(config, checksums, session):
    return FixtureResolver(
        config,
        registry=Registry(checksums, base_url=BASE_URL),
        fetcher=Fetcher(timeout=config.timeout, session=session),
    )
