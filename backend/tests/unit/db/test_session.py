"""
Tests for engine configuration.
"""

from practice_api.core.config import Settings
from practice_api.db.session import engine_options


class TestEngineOptions:
    def test_server_database_gets_pool_settings(self):
        config = Settings(
            DATABASE_URL="postgresql://practice:practice@db:5432/practice",
            DB_POOL_SIZE=5,
            DB_MAX_OVERFLOW=2,
        )

        options = engine_options(config)

        assert options["pool_pre_ping"] is True
        assert options["pool_size"] == 5
        assert options["max_overflow"] == 2
        assert options["pool_recycle"] == 1800

    def test_sqlite_gets_no_pool_settings(self):
        config = Settings(DATABASE_URL="sqlite+aiosqlite:///./practice.db", DEBUG=True)

        assert engine_options(config) == {"echo": True}
