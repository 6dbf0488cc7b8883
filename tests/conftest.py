import os

# Configure services before their settings modules are imported
os.environ.setdefault("OTLP_ENDPOINT", "")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
import pytest_asyncio
from doubles import VALID_VIN, create_tables, make_engine
from sqlalchemy.ext.asyncio import async_sessionmaker


@pytest.fixture
def counter_db_path(tmp_path):
    return tmp_path / "claims.db"


@pytest_asyncio.fixture
async def engine(counter_db_path):
    engine = make_engine(counter_db_path)
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
def valid_fields():
    """A dealer form that passes every server-side rule."""
    return {
        "vin": VALID_VIN.lower(),
        "claim_submitted_by": "Dealer",
        "is_sold_unit": "yes",
        "dealer_name": "Lakeside Marine",
        "dealer_first_name": "Dana",
        "dealer_last_name": "Reyes",
        "dealer_address": "12 Harbor Rd",
        "dealer_city": "Tampa",
        "dealer_region": "FL",
        "dealer_postal_code": "33602",
        "dealer_country": "US",
        "dealer_phone": "813-555-0100",
        "dealer_email": " Service@Lakeside.example ",
        "customer_first_name": "Sam",
        "customer_last_name": "Ortiz",
        "date_of_occurrence": "2026-09-14",
        "warranty_symptoms": "Axle bearing overheating",
        "warranty_request": "Replace hub assembly",
        "labor_hours": "2.5",
    }
