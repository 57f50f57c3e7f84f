from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Loads keys from process env, and also from a local .env file for convenience.
    model_config = SettingsConfigDict(
        env_prefix="CREATIVE_",
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    log_level: str = "INFO"

    # Image generation
    provider: str = "pollinations"  # pollinations|gemini
    pollinations_url: str = "https://image.pollinations.ai/prompt"
    gemini_api_key: str | None = None
    gemini_image_model: str = "imagen-3.0-generate-002"
    provider_timeout_s: float = 60.0

    generate_min_size: int = 512
    generate_max_size: int = 2048
    generate_default_size: int = 1024

    # Where the editor posts generation requests (the proxy below).
    generate_endpoint: str = "http://127.0.0.1:8000/api/generate"

    # Export
    export_pixel_ratio: float = 2.0
    export_filename: str = "creative-ad.png"
    export_dir: str = "exports"
    export_anchor: str = "design"  # design|viewport

    reset_background_on_template_change: bool = False

    # Extra directories probed for TTF/OTF files before the system locations.
    font_dirs: list[str] = ["assets/fonts"]


settings = Settings()
