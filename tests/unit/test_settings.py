"""
Unit tests for runtime settings.
"""

from unittest.mock import patch

import pytest

from retentiond.config.settings import RetentionSettings, load_settings
from retentiond.storage.retention_config import RetentionConfigError


class TestRetentionSettings:

    def test_require_cron_secret(self):
        assert RetentionSettings(cron_secret='s3cret').require_cron_secret() == 's3cret'

    @pytest.mark.parametrize('secret', [None, ''])
    def test_missing_cron_secret(self, secret):
        with pytest.raises(RetentionConfigError, match='CRON_SECRET'):
            RetentionSettings(cron_secret=secret).require_cron_secret()

    def test_missing_blob_token(self):
        with pytest.raises(RetentionConfigError, match='BLOB_READ_WRITE_TOKEN'):
            RetentionSettings().require_blob_token()


class TestLoadSettings:

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv('CRON_SECRET', 'from-env')
        monkeypatch.setenv('BLOB_READ_WRITE_TOKEN', 'token')
        monkeypatch.setenv('RETENTION_ROOT_PREFIX', 'other.site/')
        monkeypatch.setenv('BLOB_LIST_PAGE_SIZE', '50')

        with patch('retentiond.config.settings.load_dotenv'):
            settings = load_settings()

        assert settings.cron_secret == 'from-env'
        assert settings.require_blob_token() == 'token'
        assert settings.root_prefix == 'other.site/'
        assert settings.list_page_size == 50

    def test_empty_secret_treated_as_missing(self, monkeypatch):
        monkeypatch.setenv('CRON_SECRET', '')

        with patch('retentiond.config.settings.load_dotenv'):
            settings = load_settings()

        assert settings.cron_secret is None
