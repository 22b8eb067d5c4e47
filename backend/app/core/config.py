from pydantic_settings import BaseSettings
from pydantic import AnyUrl
from functools import lru_cache


class Settings(BaseSettings):
    # core
    ENV: str = "dev"
    API_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    # database & redis
    DATABASE_URL: AnyUrl
    # Keep this as a plain string so redis:// URLs are always accepted
    REDIS_URL: str

    # tenancy
    # Hostname of the tenant served when the Host header matches no active domain.
    DEFAULT_TENANT_HOSTNAME: str | None = None
    # 0 disables the Domain Registry cache
    DOMAIN_CACHE_TTL_SECONDS: int = 300

    # listings
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # external APIs
    GOOGLE_MAPS_API_KEY: str | None = None
    GOOGLE_PLACES_BASE_URL: str = "https://maps.googleapis.com/maps/api/place"
    GOOGLE_PLACES_TIMEOUT_SECONDS: int = 20
    GOOGLE_PLACES_LANGUAGE: str = "fr"
    GOOGLE_PLACE_ID_CACHE_TTL_SECONDS: int = 86400
    # nightly review sync (UTC)
    REVIEW_SYNC_HOUR: int = 3
    REVIEW_SYNC_MINUTE: int = 30

    # auth / security
    API_AUTH_KEY: str | None = None
    FRONTEND_ORIGIN: str | None = None
    # Explicit debug-only switch for wide-open CORS in non-prod envs
    CORS_ALLOW_ALL_ORIGINS: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
