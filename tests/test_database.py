"""
test_database.py — Mongo lifecycle without a live server.
"""

from unittest.mock import AsyncMock, MagicMock, patch

from pymongo.errors import ServerSelectionTimeoutError

from vericlip.core.database import (
    REPORTS_COLLECTION,
    UPLOADS_COLLECTION,
    DatabaseClient,
    _redact_uri,
    ensure_indexes,
)


def _motor_client(db, ping=None):
    client = MagicMock()
    client.__getitem__.return_value = db
    client.admin.command = ping or AsyncMock(return_value={"ok": 1})
    return client


class TestConnect:
    async def test_connects_and_creates_indexes(self, fake_db):
        holder = DatabaseClient()
        with patch("vericlip.core.database.AsyncIOMotorClient", return_value=_motor_client(fake_db)):
            await holder.connect("mongodb://localhost:27017", "vericlip")

        assert holder.db is fake_db
        assert fake_db[UPLOADS_COLLECTION].indexes == [[("user_id", 1), ("status", 1)]]
        assert [("user_id", 1), ("created_at", -1)] in fake_db[REPORTS_COLLECTION].indexes

    async def test_unreachable_server_leaves_client_disconnected(self, fake_db):
        holder = DatabaseClient()
        ping = AsyncMock(side_effect=ServerSelectionTimeoutError("no servers"))
        with patch("vericlip.core.database.AsyncIOMotorClient", return_value=_motor_client(fake_db, ping)):
            await holder.connect("mongodb://localhost:27017", "vericlip")

        assert holder.client is None
        assert holder.db is None

    def test_close_resets_state(self, fake_db):
        holder = DatabaseClient()
        holder.client = _motor_client(fake_db)
        holder.db = fake_db
        client = holder.client

        holder.close()

        client.close.assert_called_once()
        assert holder.db is None

    def test_close_without_connection_is_noop(self):
        DatabaseClient().close()


async def test_ensure_indexes_covers_archive_queries(fake_db):
    await ensure_indexes(fake_db)
    assert [("video_id", 1)] in fake_db[REPORTS_COLLECTION].indexes


class TestRedactUri:
    def test_user_and_password(self):
        assert _redact_uri("mongodb://root:secret@db:27017/x") == "mongodb://<redacted>@db:27017/x"

    def test_user_only(self):
        assert "alice" not in _redact_uri("mongodb+srv://alice@cluster0.example.net/x")

    def test_no_credentials_unchanged(self):
        assert _redact_uri("mongodb://localhost:27017") == "mongodb://localhost:27017"
