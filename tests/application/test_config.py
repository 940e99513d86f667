from pathlib import Path

from lexis.application.config import AppConfig, resolve_config


def test_defaults(mock_home):
    config = resolve_config()
    assert config.store_backend == "json"
    assert config.default_round_size == 50
    assert config.default_new_review_ratio == 50
    assert config.retry_minutes == 10
    assert config.seed is None


def test_env_overrides_toml(mock_home, monkeypatch):
    cfg = mock_home / ".config/lexis/config.toml"
    cfg.parent.mkdir(parents=True)
    cfg.write_text('default_round_size = 20\nretry_minutes = 5\nstore_backend = "memory"\n')
    monkeypatch.setenv("LEXIS_RETRY_MINUTES", "3")

    config = resolve_config()

    assert config.default_round_size == 20
    assert config.store_backend == "memory"
    assert config.retry_minutes == 3


def test_cli_overrides_win_and_none_is_ignored(mock_home, monkeypatch, tmp_path):
    monkeypatch.setenv("LEXIS_SEED", "11")
    config = resolve_config({"seed": 99, "data_dir": tmp_path / "data", "decks_dir": None})

    assert config.seed == 99
    assert config.data_dir == (tmp_path / "data").resolve()
    assert isinstance(config.decks_dir, Path)


def test_session_defaults(mock_home):
    config = AppConfig(default_round_size=12, default_new_review_ratio=70)
    assert config.session_defaults() == {"round_size": 12, "new_review_ratio": 70}
