"""Application configuration using pydantic-settings."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    app_env: str = "development"
    app_debug: bool = True

    # Marketplace REST API (source of the category records)
    marketplace_api_url: str = "http://localhost:8080/api"
    marketplace_api_token: str = ""
    marketplace_timeout: float = 15.0  # seconds per request

    # Images
    image_base_url: str = "https://groceryapp-production-d3fc.up.railway.app"
    default_image_url: str = (
        "https://images.pexels.com/photos/315755/pexels-photo-315755.jpeg"
        "?auto=compress&cs=tinysrgb&w=300"
    )

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # CORS
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",")]

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()
