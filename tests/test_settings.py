"""
Тесты настроек и выбора хранилища
"""
from mdserver.domain.sync import FailedEntryPolicy
from mdserver.infrastructure.database import InMemoryPostRepository, build_repository
from mdserver.settings import Settings


class TestSettings:

    def test_csv_lists(self):
        settings = Settings(
            ALLOWED_EXTENSIONS=".md, .MARKDOWN",
            EXCLUDED_DIRS="drafts,,node_modules",
            EXCLUDED_PATTERNS="~*",
        )
        assert settings.allowed_extensions == [".md", ".markdown"]
        assert settings.excluded_dirs == ["drafts", "node_modules"]
        assert settings.excluded_patterns == ["~*"]

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("SCAN_INTERVAL_SECONDS", "0.5")
        monkeypatch.setenv("FAILED_ENTRY_POLICY", "retry")
        settings = Settings()
        assert settings.SCAN_INTERVAL_SECONDS == 0.5
        assert FailedEntryPolicy(settings.FAILED_ENTRY_POLICY) is FailedEntryPolicy.RETRY

    def test_empty_database_url_uses_memory(self):
        assert isinstance(build_repository(Settings(DATABASE_URL="")), InMemoryPostRepository)
