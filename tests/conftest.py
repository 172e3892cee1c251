"""
pytest configuration and shared fixtures for the VeriClip API tests.

Tests must not require a live MongoDB, network access, or a HuggingFace token:
  1. AI_MOCK_MODE=true so the inference gateway resolves every call to its
     fallback result without touching the network.
  2. The MongoDB lifecycle is patched to no-ops and db_client is left
     disconnected; tests that need persistence use the in-memory FakeDB.
"""

import base64
import os
from unittest.mock import AsyncMock, MagicMock, patch

import cv2
import numpy as np
import pytest
from bson import ObjectId
from httpx import ASGITransport, AsyncClient

# Set env vars BEFORE importing the app so Settings picks them up correctly
os.environ.setdefault("AI_MOCK_MODE", "true")
os.environ.setdefault("ENVIRONMENT", "test")


# ── In-memory Mongo stand-in ──────────────────────────────────────────────────

def _matches(doc: dict, query: dict) -> bool:
    for key, expected in query.items():
        if isinstance(expected, dict) and "$in" in expected:
            if doc.get(key) not in expected["$in"]:
                return False
        elif doc.get(key) != expected:
            return False
    return True


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs
        self._skip = 0
        self._limit = None

    def sort(self, key, direction):
        self._docs = sorted(self._docs, key=lambda d: d.get(key), reverse=direction < 0)
        return self

    def skip(self, n):
        self._skip = n
        return self

    def limit(self, n):
        self._limit = n
        return self

    async def __aiter__(self):
        end = None if self._limit is None else self._skip + self._limit
        for doc in self._docs[self._skip:end]:
            yield doc


class FakeCollection:
    def __init__(self):
        self.docs: dict[str, dict] = {}
        self.indexes: list = []

    async def insert_one(self, doc):
        oid = ObjectId()
        self.docs[str(oid)] = {**doc, "_id": oid}
        result = MagicMock()
        result.inserted_id = oid
        return result

    async def find_one(self, query):
        for doc in self.docs.values():
            if _matches(doc, query):
                return doc
        return None

    async def update_one(self, query, update):
        result = MagicMock()
        result.matched_count = 0
        result.modified_count = 0
        for doc in self.docs.values():
            if _matches(doc, query):
                doc.update(update.get("$set", {}))
                result.matched_count = 1
                result.modified_count = 1
                break
        return result

    async def delete_one(self, query):
        for key, doc in list(self.docs.items()):
            if _matches(doc, query):
                del self.docs[key]
                break

    async def count_documents(self, query):
        return sum(1 for d in self.docs.values() if _matches(d, query))

    async def create_index(self, keys):
        self.indexes.append(keys)

    def find(self, query=None):
        return FakeCursor([d for d in self.docs.values() if _matches(d, query or {})])


class FakeDB:
    def __init__(self):
        self._cols = {}

    def __getitem__(self, name):
        if name not in self._cols:
            self._cols[name] = FakeCollection()
        return self._cols[name]


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def mock_db():
    """Patch the MongoDB lifecycle for every test and leave db_client disconnected."""
    with (
        patch("vericlip.core.database.connect_to_mongo", new_callable=AsyncMock),
        patch("vericlip.core.database.close_mongo_connection", new_callable=AsyncMock),
    ):
        import vericlip.core.database as db_module

        original_client = db_module.db_client.client
        original_db = db_module.db_client.db

        db_module.db_client.client = None
        db_module.db_client.db = None

        yield

        db_module.db_client.client = original_client
        db_module.db_client.db = original_db


@pytest.fixture(autouse=True)
def offline_inference():
    """Force fallback-only inference regardless of the developer's .env."""
    from vericlip.core.config import settings

    original = settings.ai_mock_mode
    settings.ai_mock_mode = True
    yield
    settings.ai_mock_mode = original


@pytest.fixture()
def fake_db():
    return FakeDB()


@pytest.fixture()
async def client(fake_db):
    """HTTPX async client against the app, with get_db → FakeDB and rate limits reset."""
    from vericlip.core.database import get_db
    from vericlip.core.rate_limit import limiter
    from vericlip.main import app

    limiter.reset()
    app.dependency_overrides[get_db] = lambda: fake_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ── Media helpers ─────────────────────────────────────────────────────────────

def make_frame_b64(image: np.ndarray) -> str:
    ok, buf = cv2.imencode(".jpg", image, [cv2.IMWRITE_JPEG_QUALITY, 90])
    assert ok
    return base64.b64encode(buf.tobytes()).decode("ascii")


@pytest.fixture()
def textured_image():
    rng = np.random.default_rng(0)
    noise = rng.integers(0, 256, size=(16, 16), dtype=np.uint8)
    return cv2.resize(noise, (128, 128), interpolation=cv2.INTER_NEAREST)


@pytest.fixture()
def encode_frame():
    return make_frame_b64
