"""Tests for application settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from issuesync.config import Settings
from issuesync.utils.lock import DEFAULT_LOCK_TIMEOUT


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("ISSUESYNC_LOCK_TIMEOUT", raising=False)
        monkeypatch.delenv("ISSUESYNC_PROJECT_ROOT", raising=False)

        settings = Settings()

        assert settings.project_root == Path()
        assert settings.verbose == 0
        assert settings.log_file is None
        assert settings.lock_timeout == DEFAULT_LOCK_TIMEOUT

    def test_environment_prefix(self, monkeypatch, tmp_path):
        """Settings are read from ISSUESYNC_* variables."""
        monkeypatch.setenv("ISSUESYNC_PROJECT_ROOT", str(tmp_path))
        monkeypatch.setenv("ISSUESYNC_LOCK_TIMEOUT", "2.5")

        settings = Settings()

        assert settings.project_root == tmp_path
        assert settings.lock_timeout == 2.5

    def test_editor_unset_by_default(self, monkeypatch):
        """Without ISSUESYNC_EDITOR the issue service picks an editor itself."""
        monkeypatch.delenv("ISSUESYNC_EDITOR", raising=False)

        assert Settings().editor is None

    def test_editor_from_environment(self, monkeypatch):
        monkeypatch.setenv("ISSUESYNC_EDITOR", "code --wait")

        assert Settings().editor == "code --wait"

    def test_negative_verbosity(self):
        with pytest.raises(ValidationError):
            Settings(verbose=-1)

    def test_lock_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(lock_timeout=0)

    def test_explicit_values_win(self, tmp_path):
        settings = Settings(project_root=tmp_path, verbose=2)

        assert settings.project_root == tmp_path
        assert settings.verbose == 2
