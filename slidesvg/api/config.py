"""
config.py — Environment configuration for the API and renderer defaults.

Settings are read from environment variables; a .env file at the project
root is loaded first when present.
"""

import os
from functools import lru_cache
from pathlib import Path

from slidesvg.renderer.svg_renderer import RendererOptions


# Load .env file if it exists
def _load_dotenv():
    env_path = Path(__file__).parent.parent.parent / ".env"
    if env_path.exists():
        with open(env_path) as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#") and "=" in line:
                    key, value = line.split("=", 1)
                    key = key.strip()
                    value = value.strip()
                    if key and value and key not in os.environ:
                        os.environ[key] = value

_load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self):
        # Application
        self.app_name: str = os.environ.get("APP_NAME", "slidesvg")
        self.app_version: str = os.environ.get("APP_VERSION", "0.1.0")
        self.api_prefix: str = os.environ.get("API_PREFIX", "/api")

        # Server settings
        self.host: str = os.environ.get("HOST", "0.0.0.0")
        self.port: int = int(os.environ.get("PORT", "8000"))
        self.debug: bool = _env_bool("DEBUG", "false")
        self.log_level: str = os.environ.get("LOG_LEVEL", "INFO").upper()

        # CORS settings
        self.allowed_origins: list = os.environ.get(
            "CORS_ORIGINS",
            "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173"
        ).split(",")

        # Renderer defaults
        self.embed_image: bool = _env_bool("SLIDESVG_EMBED_IMAGE", "true")
        self.embed_text: bool = _env_bool("SLIDESVG_EMBED_TEXT", "true")
        self.image_timeout: float = float(os.environ.get("SLIDESVG_IMAGE_TIMEOUT", "30"))

    def renderer_options(self, **overrides) -> RendererOptions:
        """Renderer options from these settings, with per-request overrides."""
        values = {
            "embed_image": self.embed_image,
            "embed_text": self.embed_text,
            "image_timeout": self.image_timeout,
            # Clients must never read files from the server
            "allow_local_files": False,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return RendererOptions(**values)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
