"""
Shared fixtures: in-memory database, a small booking dataset and a test client
wired to both through dependency overrides.
"""
import asyncio
from pathlib import Path
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.core.database import Base, get_db
from app.prediction.service import PredictionService, get_prediction_service

# Setup In-Memory Database for Testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

DATASET_HEADER = "date,property_id,surface_m2,bedrooms,location_score,listing_price,is_booked\n"

# Daily prices 90-110 surround 3042 / 30.42 = 100; the 200 listing is outside the +/-15% band
SAMPLE_ROWS = [
    "2024-01-01,P1,40,1,7.0,90,1\n",
    "2024-01-01,P2,55,2,8.0,110,0\n",
    "2024-01-01,P3,60,2,9.0,100,1\n",
    "2024-01-01,P4,120,4,6.0,200,0\n",
]


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


def make_service(path: Optional[Path]) -> PredictionService:
    """Prediction service reading a fixed file (or none) instead of downloading."""
    async def resolve() -> Optional[Path]:
        return path

    return PredictionService(resolve_path=resolve, days_per_month=30.42, price_margin=0.15)


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def dataset_file(tmp_path: Path) -> Path:
    path = tmp_path / "dataset.csv"
    path.write_text(DATASET_HEADER + "".join(SAMPLE_ROWS), encoding="utf-8")
    return path


@pytest.fixture
def prediction_service(dataset_file: Path) -> PredictionService:
    return make_service(dataset_file)


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session, prediction_service):
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_prediction_service] = lambda: prediction_service
    yield TestClient(app)
    app.dependency_overrides.clear()
