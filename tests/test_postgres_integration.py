import os
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect, text

pytestmark = pytest.mark.integration

PROJECT_ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture()
def postgres_url() -> str:
    url = os.getenv("TEST_POSTGRES_DATABASE_URL")
    if not url:
        pytest.skip("Set TEST_POSTGRES_DATABASE_URL to run Postgres integration tests.")
    return url


@pytest.fixture()
def alembic_cfg(postgres_url, monkeypatch) -> Config:
    monkeypatch.setenv("DATABASE_URL", postgres_url)
    return Config(str(PROJECT_ROOT / "alembic.ini"))


def test_migrated_schema_has_reporting_tables_and_indexes(postgres_url, alembic_cfg):
    command.upgrade(alembic_cfg, "head")

    engine = create_engine(postgres_url, pool_pre_ping=True)
    try:
        with engine.connect() as conn:
            assert conn.execute(text("SELECT 1")).scalar_one() == 1

        inspector = inspect(engine)
        assert {"users", "customers", "sales"} <= set(inspector.get_table_names())

        sale_columns = {column["name"]: column for column in inspector.get_columns("sales")}
        assert sale_columns["amount"]["type"].scale == 2
        assert sale_columns["sale_date"]["nullable"] is False

        sale_indexes = {index["name"] for index in inspector.get_indexes("sales")}
        assert {"ix_sales_owner_sale_date", "ix_sales_owner_customer"} <= sale_indexes

        customer_uniques = {
            constraint["name"] for constraint in inspector.get_unique_constraints("customers")
        }
        assert "uq_customers_owner_email" in customer_uniques
    finally:
        engine.dispose()


def test_alembic_downgrade_to_base_and_back(alembic_cfg):
    if os.getenv("ALLOW_DESTRUCTIVE_MIGRATION_TESTS") != "1":
        pytest.skip("Set ALLOW_DESTRUCTIVE_MIGRATION_TESTS=1 for downgrade smoke test.")

    command.upgrade(alembic_cfg, "head")
    command.downgrade(alembic_cfg, "base")
    command.upgrade(alembic_cfg, "head")
