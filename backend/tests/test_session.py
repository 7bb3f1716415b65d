"""Tests for engine configuration."""

from uniformtrack.db.session import engine_options


class TestEngineOptions:
    def test_sqlite_shared_across_request_threads(self):
        assert engine_options("sqlite:///./uniformtrack.db") == {"connect_args": {"check_same_thread": False}}

    def test_server_database_gets_pool(self):
        options = engine_options("postgresql://uniformtrack@localhost/uniformtrack")

        assert "connect_args" not in options
        assert options["pool_pre_ping"] is True
        assert options["pool_size"] == 5
