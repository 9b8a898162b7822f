"""Alembic migrations build the same schema the models describe."""

from pathlib import Path

import pytest
from sqlalchemy import create_engine, inspect

from src.leadflow.core.config import get_settings
from src.leadflow.core.db import run_migrations_async

pytestmark = [pytest.mark.asyncio, pytest.mark.integration]

PROJECT_ROOT = Path(__file__).resolve().parents[2]


@pytest.fixture
def migrations_db(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    db_file = tmp_path / "migrated.db"
    monkeypatch.chdir(PROJECT_ROOT)
    monkeypatch.setenv("DATABASE_MIGRATIONS_URL", f"sqlite+aiosqlite:///{db_file}")
    get_settings.cache_clear()
    yield db_file
    get_settings.cache_clear()


async def test_upgrade_head_creates_engine_tables(migrations_db: Path):
    await run_migrations_async()

    engine = create_engine(f"sqlite:///{migrations_db}")
    try:
        inspector = inspect(engine)
        tables = set(inspector.get_table_names())
        enrollment_indexes = {i["name"]: i for i in inspector.get_indexes("enrollments")}
    finally:
        engine.dispose()

    assert {
        "leads",
        "owner_plans",
        "workflows",
        "workflow_steps",
        "enrollments",
        "action_logs",
        "message_drafts",
        "message_signals",
    } <= tables
    assert "alembic_version" in tables
    assert enrollment_indexes["uq_enrollments_active_lead_workflow"]["unique"]
