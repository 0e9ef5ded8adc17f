import importlib

from letterboxd_tracker import config


def test_env_overrides_and_validation(monkeypatch, tmp_path):
    monkeypatch.setenv("LETTERBOXD_SCRAPER_DELAY", "2.5")
    monkeypatch.setenv("LETTERBOXD_HTTP_TIMEOUT", "0.1")  # should clamp to min
    monkeypatch.setenv("LETTERBOXD_HTTP_RETRIES", "0")  # min clamp

    cfg = importlib.reload(config)

    assert cfg.DEFAULT_SCRAPER_DELAY == 2.5
    assert cfg.HTTP_TIMEOUT == 1.0
    assert cfg.MAX_HTTP_RETRIES == 1


def test_db_path_respects_env(fresh_config, tmp_path):
    assert fresh_config.DB_PATH == tmp_path / "test.db"


def test_invalid_env_values_fall_back_to_defaults(monkeypatch):
    monkeypatch.setenv("LETTERBOXD_SCRAPER_DELAY", "not-a-float")
    monkeypatch.setenv("LETTERBOXD_HTTP_TIMEOUT", "oops")
    monkeypatch.setenv("LETTERBOXD_HTTP_RETRIES", "bad-int")

    cfg = importlib.reload(config)

    assert cfg.DEFAULT_SCRAPER_DELAY == 0.5
    assert cfg.HTTP_TIMEOUT == 30.0
    assert cfg.MAX_HTTP_RETRIES == 3
