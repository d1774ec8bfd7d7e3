"""
Backend Configuration Module
============================
Centralized configuration using Pydantic Settings.
All settings are loaded from environment variables with sensible defaults.

Usage:
    from config import settings
    print(settings.EXTRACTION_STRATEGY)
    print(settings.layout_analyze_url)
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import computed_field
from functools import lru_cache
from typing import List, Literal


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Uses Pydantic Settings for validation and type coercion.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # ===== APPLICATION =====
    APP_NAME: str = "FormExtract"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # ===== STRATEGY =====
    EXTRACTION_STRATEGY: Literal["layout", "vision"] = "layout"

    # ===== LAYOUT ANALYSIS (Azure Document Intelligence) =====
    AZURE_DOCUMENT_ENDPOINT: str = ""
    AZURE_DOCUMENT_API_KEY: str = ""
    AZURE_DOCUMENT_API_VERSION: str = "2023-10-31-preview"
    AZURE_DOCUMENT_MODEL: str = "prebuilt-layout"
    LAYOUT_POLL_INTERVAL_SECONDS: float = 2.0
    LAYOUT_MAX_POLL_ATTEMPTS: int = 60

    # ===== VISION (multimodal language model) =====
    VISION_PROVIDER: Literal["gemini", "azure_openai"] = "gemini"
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash"
    AZURE_OPENAI_ENDPOINT: str = ""
    AZURE_OPENAI_API_KEY: str = ""
    AZURE_OPENAI_DEPLOYMENT: str = ""
    AZURE_OPENAI_API_VERSION: str = "2025-01-01-preview"
    VISION_TEMPERATURE: float = 0.1
    VISION_MAX_OUTPUT_TOKENS: int = 4096

    # ===== INPUT =====
    ALLOWED_CONTENT_TYPES: str = "application/pdf,image/jpeg,image/jpg,image/png"
    MAX_UPLOAD_SIZE_MB: int = 20
    PDF_RENDER_SCALE: float = 2.0
    PAGE_IMAGE_JPEG_QUALITY: int = 90
    MAX_IMAGE_DIMENSION: int = 3000

    # ===== HTTP =====
    HTTP_TIMEOUT_SECONDS: float = 60.0

    # ===== COMPUTED PROPERTIES =====

    @computed_field
    @property
    def allowed_content_types_list(self) -> List[str]:
        """List of accepted MIME types"""
        return [ct.strip().lower() for ct in self.ALLOWED_CONTENT_TYPES.split(",") if ct.strip()]

    @computed_field
    @property
    def max_upload_bytes(self) -> int:
        """Max upload size in bytes"""
        return self.MAX_UPLOAD_SIZE_MB * 1024 * 1024

    @computed_field
    @property
    def pdf_render_dpi(self) -> int:
        """Render DPI for PDF pages (PDF user space is 72 points per inch)"""
        return int(round(72 * self.PDF_RENDER_SCALE))

    @computed_field
    @property
    def layout_analyze_url(self) -> str:
        """Submission URL for the layout-analysis model"""
        endpoint = self.AZURE_DOCUMENT_ENDPOINT.rstrip("/")
        return (
            f"{endpoint}/documentintelligence/documentModels/"
            f"{self.AZURE_DOCUMENT_MODEL}:analyze?api-version={self.AZURE_DOCUMENT_API_VERSION}"
        )

    @computed_field
    @property
    def azure_openai_chat_url(self) -> str:
        """Chat completions URL for the Azure OpenAI vision deployment"""
        endpoint = self.AZURE_OPENAI_ENDPOINT.rstrip("/")
        return (
            f"{endpoint}/openai/deployments/{self.AZURE_OPENAI_DEPLOYMENT}"
            f"/chat/completions?api-version={self.AZURE_OPENAI_API_VERSION}"
        )

    @computed_field
    @property
    def is_development(self) -> bool:
        """Check if running in development mode"""
        return self.APP_ENV == "development"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Use this function to access settings throughout the application.

    Example:
        from config import get_settings
        settings = get_settings()
    """
    return Settings()


# Convenience: Direct access to settings singleton
settings = get_settings()
