from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    jwt_secret: str = "dev"
    jwt_alg: str = "HS256"
    access_ttl_min: int = 60

    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "zerohunger"
    store_backend: Literal["mongo", "memory"] = "mongo"

    # geocoder = opencage | nominatim | google
    geocoder: Literal["opencage", "nominatim", "google"] = "opencage"
    opencage_key: str | None = None
    google_maps_key: str | None = None
    admin_contact: str = "mailto:admin@example.com"
    geocode_timeout_s: float = 10.0

    notifier: Literal["memory", "outbox"] = "memory"
    notify_radius_km: float = 10.0
    public_default_radius_km: float = 5.0

    cors_origins: list[str] = ["*"]

    # ZEROHUNGER_LOG_LEVEL
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_prefix="ZEROHUNGER_", extra="ignore")

@lru_cache
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
