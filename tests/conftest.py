"""
Shared fixtures: every test gets a disposable SQLite catalog.
"""
import os
import tempfile

# Point the import-time engine away from the dev DB before agentdocs loads
os.environ.setdefault("DATABASE_URL", f"sqlite:///{tempfile.gettempdir()}/agentdocs_test_import.db")
os.environ.setdefault("LOG_AS_JSON", "false")

import pytest

from agentdocs import db as dbmod


@pytest.fixture(autouse=True)
def fresh_db(tmp_path):
    dbmod.reconfigure(f"sqlite:///{tmp_path}/catalog.db")
    dbmod.init_db()
    yield
    dbmod.engine.dispose()
