"""
Settings tests

Tests defaults and GOSP_-prefixed environment overrides.
"""

import pytest
from pydantic import ValidationError

from gosp.config import AppSettings


class TestDefaults:
    """Test built-in defaults"""

    def test_values(self, monkeypatch, tmp_path):
        """Defaults apply without environment or .env file"""
        monkeypatch.chdir(tmp_path)
        settings = AppSettings()
        assert settings.max_top == 1
        assert settings.max_include_depth == 10
        assert settings.allowed_imports == "ALL"
        assert settings.max_idle == 300.0
        assert settings.http_headers == "structured"
        assert settings.request_timeout == 10.0
        assert settings.metadata_capacity == 5
        assert settings.change_directory is False


class TestEnvironment:
    """Test environment overrides"""

    def test_override(self, monkeypatch, tmp_path):
        """Environment variables override defaults"""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("GOSP_MAX_TOP", "3")
        monkeypatch.setenv("GOSP_ALLOWED_IMPORTS", "NONE,json")
        monkeypatch.setenv("GOSP_HTTP_HEADERS", "raw")
        monkeypatch.setenv("GOSP_CHANGE_DIRECTORY", "true")
        settings = AppSettings()
        assert settings.max_top == 3
        assert settings.allowed_imports == "NONE,json"
        assert settings.http_headers == "raw"
        assert settings.change_directory is True

    def test_dotenv_file(self, monkeypatch, tmp_path):
        """Values are read from a .env file"""
        monkeypatch.chdir(tmp_path)
        (tmp_path / ".env").write_text("GOSP_MAX_IDLE=0\n")
        assert AppSettings().max_idle == 0.0

    def test_invalid_format_rejected(self, monkeypatch, tmp_path):
        """An unknown header format is rejected"""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("GOSP_HTTP_HEADERS", "xml")
        with pytest.raises(ValidationError):
            AppSettings()

    def test_negative_limit_rejected(self, monkeypatch, tmp_path):
        """A negative limit is rejected"""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("GOSP_MAX_INCLUDE_DEPTH", "-1")
        with pytest.raises(ValidationError):
            AppSettings()
