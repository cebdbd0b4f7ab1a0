"""Pytest configuration and fixtures for service layer tests."""

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, scoped_session
from sqlalchemy.pool import StaticPool

from kitchen_ledger.models.base import Base
from kitchen_ledger.utils.config import reset_config


@pytest.fixture(scope="function")
def test_db():
    """Provide a clean test database for each test function.

    This fixture:
    1. Creates an in-memory SQLite database shared across threads
    2. Creates all tables
    3. Provides the session factory to the test
    4. Drops all tables after the test completes
    """
    # A single shared connection so worker threads see the same database
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    import kitchen_ledger.models  # noqa: F401  (register tables)

    Base.metadata.create_all(engine)

    session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    Session = scoped_session(session_factory)

    # Monkey-patch the global session factory for tests
    import kitchen_ledger.services.database as db_module

    original_get_session_factory = db_module.get_session_factory
    db_module.get_session_factory = lambda: Session

    yield Session

    Session.remove()
    Base.metadata.drop_all(engine)
    engine.dispose()

    db_module.get_session_factory = original_get_session_factory


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch):
    """Isolate tests from KITCHEN_LEDGER_* variables and the config singleton."""
    for name in (
        "KITCHEN_LEDGER_ENV",
        "KITCHEN_LEDGER_DB_URL",
        "KITCHEN_LEDGER_DEFAULT_MARGIN",
        "KITCHEN_LEDGER_CONSUMPTION_WINDOW_DAYS",
        "KITCHEN_LEDGER_REORDER_HORIZON_DAYS",
        "KITCHEN_LEDGER_TIMEZONE",
    ):
        monkeypatch.delenv(name, raising=False)
    # Day boundaries must not depend on the machine running the tests
    monkeypatch.setenv("KITCHEN_LEDGER_TIMEZONE", "UTC")
    reset_config()
    yield
    reset_config()


@pytest.fixture
def reference_time():
    """A fixed Friday afternoon used as "now" by time-dependent tests."""
    return datetime(2026, 2, 13, 15, 30)


@pytest.fixture
def stocked_ingredients(test_db):
    """Two ingredients with stock: Harina (id 1) and Tomate (id 2)."""
    from kitchen_ledger.models import Ingredient
    from kitchen_ledger.services.database import session_scope

    with session_scope() as session:
        harina = Ingredient(
            nombre="Harina",
            unidad="kg",
            precio=Decimal("12.50"),
            stock_actual=Decimal("10"),
            stock_minimo=Decimal("2"),
            formato_compra="saco",
            cantidad_por_formato=Decimal("25"),
        )
        tomate = Ingredient(
            nombre="Tomate",
            unidad="kg",
            precio=Decimal("2.40"),
            stock_actual=Decimal("5"),
            stock_minimo=Decimal("1"),
        )
        session.add_all([harina, tomate])
        session.flush()
        ids = (harina.id, tomate.id)

    return ids
