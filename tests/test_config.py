"""Tests for settings defaults and computed values."""

import logging

from config import Settings
from utils.logging_setup import configure_logging


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestSettings:
    """Tests for Settings."""

    def test_polling_defaults(self) -> None:
        cfg = make_settings()
        assert cfg.LAYOUT_POLL_INTERVAL_SECONDS == 2.0
        assert cfg.LAYOUT_MAX_POLL_ATTEMPTS == 60

    def test_layout_url(self) -> None:
        cfg = make_settings(AZURE_DOCUMENT_ENDPOINT="https://di.example.test/")
        assert cfg.layout_analyze_url == (
            "https://di.example.test/documentintelligence/documentModels/"
            "prebuilt-layout:analyze?api-version=2023-10-31-preview"
        )

    def test_chat_url(self) -> None:
        cfg = make_settings(AZURE_OPENAI_ENDPOINT="https://aoai.example.test", AZURE_OPENAI_DEPLOYMENT="gpt-4o")
        assert cfg.azure_openai_chat_url == (
            "https://aoai.example.test/openai/deployments/gpt-4o/chat/completions"
            "?api-version=2025-01-01-preview"
        )

    def test_input_limits(self) -> None:
        cfg = make_settings(MAX_UPLOAD_SIZE_MB=2, PDF_RENDER_SCALE=2.0)
        assert cfg.max_upload_bytes == 2 * 1024 * 1024
        assert cfg.pdf_render_dpi == 144
        assert "image/jpg" in cfg.allowed_content_types_list

    def test_strategy_override(self) -> None:
        assert make_settings(EXTRACTION_STRATEGY="vision").EXTRACTION_STRATEGY == "vision"


class TestLogging:
    """Tests for configure_logging."""

    def test_applies_level_and_quiets_http_loggers(self) -> None:
        level = configure_logging("debug")
        assert level == logging.DEBUG
        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING
        logging.getLogger().setLevel(logging.WARNING)
