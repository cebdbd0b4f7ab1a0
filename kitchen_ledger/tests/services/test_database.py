"""Tests for engine setup and database initialization."""

from kitchen_ledger.services import database as db_module
from kitchen_ledger.services.database import (
    close_connections,
    create_database_engine,
    init_database,
    initialize_app_database,
    verify_database,
)


class TestDatabaseSetup:
    def test_initialize_from_configured_url(self, monkeypatch):
        """Test: KITCHEN_LEDGER_DB_URL drives the global engine."""
        monkeypatch.setenv("KITCHEN_LEDGER_DB_URL", "sqlite:///:memory:")
        close_connections()
        try:
            initialize_app_database()
            assert verify_database()
            assert db_module.get_engine().url.database == ":memory:"
        finally:
            close_connections()

        assert db_module._engine is None

    def test_init_database_on_explicit_engine(self):
        engine = create_database_engine("sqlite:///:memory:")
        try:
            init_database(engine)
            with engine.connect() as connection:
                foreign_keys = connection.exec_driver_sql("PRAGMA foreign_keys").scalar()
            assert foreign_keys == 1
        finally:
            engine.dispose()
