"""
Configuration management for DRONEFLEET API.
Loads environment variables and provides typed configuration.
"""
from typing import List, Optional
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ========================================================================
    # Database Configuration
    # ========================================================================
    database_url: str = "sqlite:///./dronefleet.db"
    db_echo: bool = False

    # ========================================================================
    # Fleet Store
    # ========================================================================
    # "database" (SQLAlchemy) or "memory" (process-local, lost on restart)
    fleet_store: str = "database"
    fleet_key: str = "default"
    default_fleet_name: str = "Default Drone"
    write_conflict_retries: int = 3

    @property
    def uses_memory_store(self) -> bool:
        return self.fleet_store.lower() == "memory"

    # ========================================================================
    # API Configuration
    # ========================================================================
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    max_upload_size_bytes: int = 5 * 1024 * 1024

    # ========================================================================
    # CORS Configuration
    # ========================================================================
    cors_origins: str = "http://localhost:3000"
    cors_credentials: bool = True
    cors_methods: str = "GET,POST,PUT,DELETE,OPTIONS"
    cors_headers: str = "*"

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def cors_methods_list(self) -> List[str]:
        return [method.strip().upper() for method in self.cors_methods.split(",") if method.strip()]

    @property
    def cors_headers_list(self) -> List[str]:
        return [header.strip() for header in self.cors_headers.split(",") if header.strip()]

    # ========================================================================
    # Place Search (Mapbox geocoding)
    # ========================================================================
    mapbox_access_token: Optional[str] = None
    mapbox_geocoding_url: str = "https://api.mapbox.com/geocoding/v5/mapbox.places"
    place_search_limit: int = 5
    place_search_types: str = "place,poi"
    place_search_timeout: float = 10.0

    @property
    def has_mapbox_credentials(self) -> bool:
        return bool(self.mapbox_access_token)

    # ========================================================================
    # Application Configuration
    # ========================================================================
    environment: str = "development"
    log_level: str = "info"
    debug: bool = False

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment.lower() == "development"

    # ========================================================================
    # Pydantic Settings Configuration
    # ========================================================================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings
    """
    return Settings()


# Convenience exports
settings = get_settings()

# Validate critical settings in production
if settings.is_production:
    if "localhost" in settings.cors_origins.lower():
        raise ValueError(
            "CORS_ORIGINS must not include localhost in production!"
        )

    if settings.uses_memory_store:
        raise ValueError("FLEET_STORE=memory is not allowed in production!")
