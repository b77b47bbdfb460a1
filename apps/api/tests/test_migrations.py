"""
Migration graph checks

The chain must stay linear: one root, one head. New migrations chain off
the current head instead of starting a new root.
"""
import inspect
from pathlib import Path

from alembic.config import Config
from alembic.script import ScriptDirectory

from core.database import Base
import models  # noqa: F401  (registers tables on Base.metadata)

API_ROOT = Path(__file__).resolve().parents[1]
EXPECTED_HEADS = {"001"}


def script_directory():
    cfg = Config(str(API_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(API_ROOT / "alembic"))
    return ScriptDirectory.from_config(cfg)


def test_single_head():
    assert set(script_directory().get_heads()) == EXPECTED_HEADS


def test_single_root():
    revisions = list(script_directory().walk_revisions())
    roots = [r.revision for r in revisions if r.down_revision is None]
    assert roots == ["001"]


def test_initial_migration_creates_every_table():
    upgrade = inspect.getsource(script_directory().get_revision("001").module.upgrade)
    missing = [name for name in Base.metadata.tables if f"'{name}'" not in upgrade]
    assert missing == []
