from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import Text, create_engine, inspect

ROOT = Path(__file__).resolve().parents[2]


def _alembic_config() -> Config:
    cfg = Config()
    cfg.set_main_option("script_location", str(ROOT / "alembic"))
    return cfg


def test_upgrade_head_targets_aivora_database_url(tmp_path, monkeypatch):
    db_path = tmp_path / "migrated.db"
    monkeypatch.setenv("AIVORA_DATABASE_URL", f"sqlite:///{db_path}")

    command.upgrade(_alembic_config(), "head")

    engine = create_engine(f"sqlite:///{db_path}")
    try:
        inspector = inspect(engine)
        assert {
            "generation_jobs",
            "media_generations",
            "influencer_profiles",
            "influencer_references",
        } <= set(inspector.get_table_names())
        jobs = {column["name"]: column["type"] for column in inspector.get_columns("generation_jobs")}
        media = {
            column["name"]: column["type"] for column in inspector.get_columns("media_generations")
        }
    finally:
        engine.dispose()

    assert isinstance(jobs["shot_type"], Text)
    assert jobs["persona"].length == 64
    for name in ("shot_type", "aspect_ratio", "resolution"):
        assert isinstance(media[name], Text)
