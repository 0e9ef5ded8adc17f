import importlib
import sys
from pathlib import Path

import httpx
import pytest

# Ensure the package under test is importable without installation
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))


@pytest.fixture
def fresh_config(monkeypatch, tmp_path):
    """
    Reload config with a temporary database path to keep tests isolated.
    """
    db_path = tmp_path / "test.db"
    monkeypatch.setenv("LETTERBOXD_DB", str(db_path))
    import letterboxd_tracker.config as config

    importlib.reload(config)
    return config


@pytest.fixture
def fresh_db(monkeypatch, tmp_path):
    """
    Reload config/database/sync modules with a temp DB and close the connection after use.
    """
    db_path = tmp_path / "test.db"
    monkeypatch.setenv("LETTERBOXD_DB", str(db_path))

    import letterboxd_tracker.config as config
    import letterboxd_tracker.database as database
    import letterboxd_tracker.sync as sync
    import letterboxd_tracker.app as app

    importlib.reload(config)
    importlib.reload(database)
    importlib.reload(sync)
    importlib.reload(app)

    database.init_db()
    yield database
    database.close_db()


@pytest.fixture
def make_client():
    """Build an httpx client serving HTML by URL path; unknown paths get a 404."""
    requested = []

    def _make(pages: dict[str, str]) -> httpx.Client:
        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(request.url.path)
            html = pages.get(request.url.path)
            if html is None:
                return httpx.Response(404)
            return httpx.Response(200, text=html)

        return httpx.Client(transport=httpx.MockTransport(handler))

    _make.requested = requested
    return _make
