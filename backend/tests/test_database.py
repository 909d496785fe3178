"""
Test suite for database configuration and model registration.

Covers driver URL conversion, engine creation per environment, the
registered schema, and settings validation for database URLs.
"""

from unittest.mock import patch

import pytest
from pydantic import ValidationError
from sqlalchemy.pool import NullPool

from tailorshop.core.config import Settings
from tailorshop.database.base import Base
from tailorshop.database.connection import (
    _convert_database_url_to_async,
    create_engine,
)
from tailorshop.database.models import RentalOrderItem


class TestDatabaseUrl:
    @pytest.mark.parametrize(
        "url,expected",
        [
            (
                "postgresql://u:p@localhost/shop",
                "postgresql+asyncpg://u:p@localhost/shop",
            ),
            ("sqlite:///./shop.db", "sqlite+aiosqlite:///./shop.db"),
            (
                "postgresql+asyncpg://u:p@localhost/shop",
                "postgresql+asyncpg://u:p@localhost/shop",
            ),
        ],
    )
    def test_async_driver_conversion(self, url: str, expected: str) -> None:
        assert _convert_database_url_to_async(url) == expected

    def test_unsupported_scheme_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(database_url="mysql://u:p@localhost/shop")

    def test_cors_origins_from_comma_separated_string(self) -> None:
        settings = Settings(cors_origins="http://a.test, http://b.test")
        assert settings.cors_origins == ["http://a.test", "http://b.test"]


class TestEngineCreation:
    def test_sqlite_uses_null_pool(self, tmp_path) -> None:
        settings = Settings(
            database_url=f"sqlite:///{tmp_path / 'x.db'}", environment="development"
        )

        engine = create_engine(settings)

        assert engine.dialect.name == "sqlite"
        assert isinstance(engine.pool, NullPool)

    def test_postgres_gets_sized_pool(self) -> None:
        settings = Settings(
            database_url="postgresql://u:p@localhost/shop",
            environment="production",
            db_pool_size=7,
        )

        with patch("tailorshop.database.connection.create_async_engine") as factory:
            create_engine(settings)

        args, kwargs = factory.call_args
        assert args[0].startswith("postgresql+asyncpg://")
        assert kwargs["pool_size"] == 7
        assert kwargs["pool_pre_ping"] is True


class TestSchema:
    def test_all_tables_registered(self) -> None:
        assert {
            "rental_inventory",
            "rental_orders",
            "rental_order_items",
            "rental_payments",
            "rental_status_history",
            "damage_records",
        } <= set(Base.metadata.tables)

    def test_ledger_and_history_have_no_foreign_key(self) -> None:
        assert not Base.metadata.tables["rental_payments"].foreign_keys
        assert not Base.metadata.tables["rental_status_history"].foreign_keys

    def test_order_items_are_versioned(self) -> None:
        mapper = RentalOrderItem.__mapper__
        assert mapper.version_id_col.name == "version_id"
