import pytest
from pydantic import ValidationError

from bomb.server.settings import BombServerSettings


class TestBombServerSettings:
    @pytest.fixture(autouse=True)
    def _token_secret(self, monkeypatch):
        monkeypatch.setenv("BOMB_TOKEN_SECRET", "env-secret")

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("BOMB_CACHE_URL", raising=False)
        settings = BombServerSettings()
        assert settings.token_secret == "env-secret"
        assert settings.sweep_interval_seconds == 30
        assert settings.cache_url is None
        assert settings.cache_ttl_seconds == 6 * 3600
        assert settings.max_games == 500

    def test_token_secret_required(self, monkeypatch):
        monkeypatch.delenv("BOMB_TOKEN_SECRET")
        with pytest.raises(ValidationError, match="token_secret"):
            BombServerSettings()

    def test_token_secret_empty_rejected(self):
        with pytest.raises(ValidationError, match="token_secret"):
            BombServerSettings(token_secret="")

    def test_cors_origins_json_array(self, monkeypatch):
        monkeypatch.setenv("BOMB_CORS_ORIGINS", '["http://a.com","http://b.com"]')
        settings = BombServerSettings()
        assert settings.cors_origins == ["http://a.com", "http://b.com"]

    def test_cors_origins_csv(self, monkeypatch):
        monkeypatch.setenv("BOMB_CORS_ORIGINS", "http://a.com,http://b.com")
        settings = BombServerSettings()
        assert settings.cors_origins == ["http://a.com", "http://b.com"]

    def test_cors_origins_invalid_raises(self, monkeypatch):
        monkeypatch.setenv("BOMB_CORS_ORIGINS", "")
        with pytest.raises(ValidationError, match="cors_origins"):
            BombServerSettings()

    def test_cache_url_from_env(self, monkeypatch):
        monkeypatch.setenv("BOMB_CACHE_URL", "redis://cache:6379/0")
        assert BombServerSettings().cache_url == "redis://cache:6379/0"

    def test_short_cache_ttl_rejected(self):
        with pytest.raises(ValidationError, match="cache_ttl_seconds"):
            BombServerSettings(cache_ttl_seconds=10)

    def test_sweep_interval_must_be_positive(self):
        with pytest.raises(ValidationError, match="sweep_interval_seconds"):
            BombServerSettings(sweep_interval_seconds=0)

    def test_max_games_zero_rejected(self):
        with pytest.raises(ValidationError, match="max_games"):
            BombServerSettings(max_games=0)

    def test_log_dir_empty_rejected(self):
        with pytest.raises(ValidationError, match="log_dir"):
            BombServerSettings(log_dir="")

    def test_abandoned_game_ttl_default(self):
        assert BombServerSettings().abandoned_game_ttl_seconds == 300

    def test_negative_abandoned_game_ttl_rejected(self):
        with pytest.raises(ValidationError, match="abandoned_game_ttl_seconds"):
            BombServerSettings(abandoned_game_ttl_seconds=-1)
