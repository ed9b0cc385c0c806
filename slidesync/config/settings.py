"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables (and a local .env file)
with sensible defaults. Type errors surface at startup rather than on the
first upload.

Mock modes enable local development without an API key or FFmpeg.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.sync.synchronizer import SizePolicy


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    For lists (like api_keys), use comma-separated values in env.
    """

    # API Configuration
    api_title: str = "SlideSync API"
    api_version: str = "v1"
    api_keys: str = Field(
        default="dev-key-1,dev-key-2",
        description="Comma-separated API keys. Using a list enables key rotation without downtime."
    )

    # Anthropic Configuration
    anthropic_api_key: str = Field(
        default="",
        description="Claude API key. Required unless in mock mode."
    )
    anthropic_model: str = Field(
        default="claude-sonnet-4-20250514",
        description="Claude model used to match frames to slides."
    )
    anthropic_max_tokens: int = Field(
        default=8192,
        description="Max tokens for the response. Long lectures produce many events."
    )
    anthropic_temperature: float = Field(
        default=0.2,
        description="Sampling temperature. Low values keep matching deterministic."
    )
    model_mock_mode: bool = Field(
        default=False,
        description="Use a deterministic mock model instead of Claude. Enables local dev without an API key."
    )

    # Video decoding
    video_mock_mode: bool = Field(
        default=False,
        description="Use synthetic frame sources instead of FFmpeg."
    )
    ffmpeg_path: str = Field(default="ffmpeg", description="Path to the ffmpeg binary")
    ffprobe_path: str = Field(default="ffprobe", description="Path to the ffprobe binary")

    # Size policy
    video_direct_limit_mb: float = Field(
        default=20,
        description="Videos larger than this are sampled into frames instead of sent whole."
    )
    document_direct_limit_mb: float = Field(
        default=10,
        description="PDFs larger than this are rasterized into page images."
    )

    # Extraction knobs
    target_frame_count: int = Field(
        default=800,
        description="Approximate number of frames to sample from a video."
    )
    frame_max_dimension: int = Field(default=256, description="Longest side of a sampled frame, in pixels")
    frame_jpeg_quality: int = Field(default=30, description="JPEG quality for sampled frames (1-95)")
    page_max_dimension: int = Field(default=1024, description="Longest side of a rendered page, in pixels")
    page_base_scale: float = Field(default=1.5, description="Render scale for pages that fit the cap")
    page_jpeg_quality: int = Field(default=60, description="JPEG quality for rendered pages (1-95)")

    # Application Behavior
    reasoning_language: str = Field(
        default="English",
        description="Language the model writes its per-event reasoning in."
    )
    sync_timeout_seconds: float = Field(
        default=600,
        description="Upper bound for one synchronization request, extraction included."
    )
    max_upload_size_mb: int = Field(
        default=500,
        description="Maximum size of each uploaded file in MB. Prevents abuse and controls costs."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins. Use * for development only."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        protected_namespaces=(),
    )

    @property
    def api_keys_list(self) -> list[str]:
        """Parse comma-separated API keys into a list."""
        return [key.strip() for key in self.api_keys.split(",") if key.strip()]

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def size_policy(self) -> SizePolicy:
        return SizePolicy.from_megabytes(self.video_direct_limit_mb, self.document_direct_limit_mb)

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    def validate_required_fields(self) -> list[str]:
        """
        Validate that required fields are set based on mock mode settings.

        Returns list of missing required fields.
        This is separate from Pydantic validation because requirements
        depend on whether we're in mock mode.
        """
        missing = []

        if not self.model_mock_mode and not self.anthropic_api_key:
            missing.append("ANTHROPIC_API_KEY")

        if not self.api_keys_list:
            missing.append("API_KEYS")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are loaded once per process. Tests call
    get_settings.cache_clear() or override the dependency.
    """
    return Settings()
