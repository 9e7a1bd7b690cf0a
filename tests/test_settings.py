"""Tests for config.settings."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest

from config.settings import Settings
from domain.errors import ConfigError


def _settings(**overrides) -> Settings:
    values = dict(
        IMAP_HOST="imap.test.com",
        IMAP_USERNAME="testuser",
        IMAP_PASSWORD="testpass",
    )
    values.update(overrides)
    return Settings(**values)


class TestHelpers:
    def test_allowed_exts_normalised(self):
        st = _settings(ALLOWED_FILE_TYPES="pdf, .JPG ,, .Png")
        assert st.allowed_exts() == {".pdf", ".jpg", ".png"}

    def test_allowed_exts_empty(self):
        assert _settings(ALLOWED_FILE_TYPES="").allowed_exts() == set()

    def test_credentials(self):
        creds = _settings(IMAP_PORT=1993, IMAP_FOLDER_INBOX="Impresora").credentials()
        assert creds.host == "imap.test.com"
        assert creds.port == 1993
        assert creds.mailbox == "Impresora"
        assert "testpass" not in repr(creds)

    def test_staging_and_retention(self, tmp_path: Path):
        st = _settings(STAGING_DIR=str(tmp_path / "staging"), STAGING_MAX_AGE_HOURS=12)
        assert st.staging_dir_path() == (tmp_path / "staging").resolve()
        assert st.staging_max_age() == timedelta(hours=12)

    def test_ledger_disabled_by_default(self, tmp_path: Path):
        assert _settings(PROCESSED_LEDGER="").ledger_path() is None
        assert _settings(PROCESSED_LEDGER=str(tmp_path / "l.txt")).ledger_path() == (tmp_path / "l.txt").resolve()

    def test_redacted_hides_password(self):
        st = _settings()
        assert "testpass" not in repr(st.redacted())
        assert st.IMAP_PASSWORD == "testpass"


class TestValidate:
    def test_valid(self):
        _settings().validate()

    @pytest.mark.parametrize("field", ["IMAP_HOST", "IMAP_USERNAME", "IMAP_PASSWORD"])
    def test_missing_required(self, field: str):
        with pytest.raises(ConfigError, match=field):
            _settings(**{field: " "}).validate()

    def test_invalid_retention(self):
        with pytest.raises(ConfigError):
            _settings(STAGING_MAX_AGE_HOURS=0).validate()
