"""Crawler configuration via environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict

from fare_scout_core.schemas import CabinClass


class CrawlerSettings(BaseSettings):
    """Settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CRAWLER_", env_file=".env", extra="ignore"
    )

    # Search portal
    base_url: str = "https://www.flightsfinder.com"
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
    )
    accept_language: str = "en-US,en;q=0.5"

    # Timeouts (seconds)
    request_timeout: int = 30
    search_deadline: float = 120.0

    # Polling
    max_polls: int = 20
    poll_delay: float = 1.0
    initial_retries: int = 2

    # Range scraping
    combination_delay: float = 2.0

    # Search defaults
    currency: str = "EUR"
    cabin_class: CabinClass = CabinClass.ECONOMY
    deal_source: str = "skyscanner"

    # Celery
    celery_broker_url: str = "redis://localhost:6379/1"
    celery_result_backend: str = "redis://localhost:6379/2"


settings = CrawlerSettings()
