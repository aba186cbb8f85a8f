from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    log_level: str = "INFO"

    mongo_uri: str = "mongodb://localhost:27017"
    db_name: str = "maps_reviews"
    reviews_collection: str = "reviews"

    scraper_headless: bool = True
    scraper_slow_mo_ms: int = 0
    scraper_user_data_dir: str = "playwright-data"
    scraper_browser_channel: str = ""
    scraper_timeout_ms: int = 30000
    scraper_navigation_timeout_ms: int = 60000
    scraper_initial_wait_ms: int = 3000
    scraper_settle_ms: int = 1500
    scraper_click_settle_ms: int = 2000
    scraper_locale: str = "en"
    scraper_force_locale: bool = True
    scraper_dismiss_consent: bool = True
    scraper_sort_newest: bool = True
    scraper_extra_chromium_args: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["--no-sandbox", "--disable-setuid-sandbox"]
    )

    target_urls: Annotated[list[str], NoDecode] = Field(default_factory=list)
    max_items_per_target: int = 100

    output_sink: str = "json"
    output_dir: str = "output"
    review_origin: str = "Google"

    @field_validator("target_urls", "scraper_extra_chromium_args", mode="before")
    @classmethod
    def parse_comma_separated(cls, value: object) -> object:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
