"""Test models and settings"""
import pytest
from urlqa.config import Settings, get_settings, reset_settings
from urlqa.models import ChatMessage, MessageKind, MessageSender, UrlContextMetadataItem


class TestChatMessage:
    def test_defaults(self):
        message = ChatMessage(text="hi", sender=MessageSender.USER)

        assert message.id.startswith("msg-")
        assert message.kind == MessageKind.NORMAL
        assert message.is_loading is False
        assert message.url_context is None
        assert message.timestamp.tzinfo is not None

    def test_ids_are_unique(self):
        ids = {ChatMessage(text="x", sender=MessageSender.USER).id for _ in range(100)}
        assert len(ids) == 100

    def test_successful_urls(self):
        message = ChatMessage(
            text="answer",
            sender=MessageSender.MODEL,
            url_context=[
                UrlContextMetadataItem(
                    retrieved_url="https://a.example",
                    url_retrieval_status="URL_RETRIEVAL_STATUS_SUCCESS",
                ),
                UrlContextMetadataItem(
                    retrieved_url="https://b.example",
                    url_retrieval_status="URL_RETRIEVAL_STATUS_UNSAFE",
                ),
                UrlContextMetadataItem(retrieved_url="https://c.example", url_retrieval_status="OK"),
            ],
        )

        assert message.successful_urls() == ["https://a.example", "https://c.example"]

    def test_successful_urls_without_context(self):
        assert ChatMessage(text="x", sender=MessageSender.MODEL).successful_urls() == []


class TestSettings:
    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for name in ("GEMINI_API_KEY", "API_KEY", "MODEL_NAME", "MAX_URLS"):
            monkeypatch.delenv(name, raising=False)
        reset_settings()
        yield
        reset_settings()

    def test_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)  # no stray .env

        settings = Settings()

        assert settings.gemini_api_key == ""
        assert settings.has_api_key is False
        assert settings.model_name == "gemini-2.5-flash"
        assert settings.max_urls == 20
        assert settings.max_files == 50

    def test_gemini_api_key_env(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("GEMINI_API_KEY", "secret")

        assert Settings().has_api_key is True

    def test_api_key_alias(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("API_KEY", "secret")

        assert Settings().gemini_api_key == "secret"

    def test_get_settings_cached(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        first = get_settings()
        monkeypatch.setenv("MAX_URLS", "5")

        assert get_settings() is first
        reset_settings()
        assert get_settings().max_urls == 5
