"""Unit tests for configuration loading."""

import pytest
from pydantic import ValidationError

from metafuse.config import Config, HTTPConfig, load_config
from metafuse.exceptions import ConfigurationError


class TestConfigDefaults:
    """Test built-in defaults."""

    def test_defaults(self):
        """Defaults need no file and carry every provider."""
        config = load_config()

        assert config.providers.musicbrainz.base_url == "https://musicbrainz.org/ws/2"
        assert config.providers.theaudiodb.api_key == "2"
        assert config.cache.info_ttl_days == 7
        assert config.cache.image_ttl_days == 30
        assert config.cache.persist_path is None
        assert config.rate_limits["musicbrainz"].min_interval_ms == 1100

    def test_rate_limits_merge_with_builtins(self):
        """Overriding one provider keeps the others."""
        config = Config(rate_limits={"discogs": {"min_interval_ms": 2500}})

        assert config.rate_limits["discogs"].min_interval_ms == 2500
        assert config.rate_limits["musicbrainz"].min_interval_ms == 1100

    def test_retry_attempts_validated(self):
        with pytest.raises(ValidationError):
            HTTPConfig(retry_attempts=0)

    def test_worker_count_validated(self):
        with pytest.raises(ValidationError):
            Config(batch={"worker_count": 0})

    def test_log_format_validated(self):
        with pytest.raises(ValidationError):
            Config(logging={"format": "xml"})


class TestConfigFromYaml:
    """Test Config.from_yaml."""

    def test_env_substitution(self, tmp_path, monkeypatch):
        """${VAR} references are replaced from the environment."""
        monkeypatch.setenv("LASTFM_KEY", "secret")
        path = tmp_path / "config.yaml"
        path.write_text(
            "providers:\n"
            "  lastfm:\n"
            "    base_url: https://ws.audioscrobbler.com/2.0/\n"
            "    api_key: ${LASTFM_KEY}\n"
            "cache:\n"
            "  persist_path: /tmp/metafuse.db\n"
        )

        config = Config.from_yaml(path)

        assert config.providers.lastfm.api_key == "secret"
        assert config.providers.discogs.base_url == "https://api.discogs.com"
        assert config.cache.persist_path == "/tmp/metafuse.db"

    def test_missing_env_var(self, tmp_path, monkeypatch):
        monkeypatch.delenv("METAFUSE_MISSING", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text("api:\n  host: ${METAFUSE_MISSING}\n")

        with pytest.raises(ConfigurationError):
            Config.from_yaml(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("api: [unclosed\n")

        with pytest.raises(ConfigurationError):
            Config.from_yaml(path)

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")

        assert Config.from_yaml(path).api.port == 9494

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")
