"""Application configuration using Pydantic Settings."""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings."""

    # Application
    APP_NAME: str = "Manufacturer Intel"
    APP_VERSION: str = "1.0.0"
    APP_ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "./logs/manufacturer_intel.log"

    # API
    API_V1_PREFIX: str = "/api/v1"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_RELOAD: bool = False
    API_WORKERS: int = 1
    CORS_ORIGINS: List[str] = ["*"]

    # Crawler
    CRAWLER_TIMEOUT: float = 15.0
    CRAWLER_USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    CRAWLER_MAX_PAGES: int = 20  # Also the upper bound accepted from callers
    CRAWLER_REQUEST_DELAY: float = 0.3
    CRAWLER_PAGE_CHAR_LIMIT: int = 50000
    CRAWLER_AGGREGATE_CHAR_LIMIT: int = 80000

    # Website discovery
    DISCOVERY_VERIFY_TOP_N: int = 3
    DISCOVERY_VERIFY_TIMEOUT: float = 15.0
    DISCOVERY_REQUEST_DELAY: float = 0.3
    DISCOVERY_BATCH_DELAY: float = 1.0
    DISCOVERY_DOMAIN_KEYWORDS: List[str] = [
        "pet", "dog", "cat", "grooming", "animal", "veterinary", "vet",
        "canine", "feline", "clipper", "shear", "blade",
    ]
    DISCOVERY_EXCLUDED_DOMAINS: List[str] = [
        "amazon.", "ebay.", "chewy.com", "petsmart.com", "petco.com",
        "walmart.com", "target.com", "etsy.com", "aliexpress.", "alibaba.com",
        "facebook.com", "instagram.com", "linkedin.com", "twitter.com",
        "x.com", "youtube.com", "tiktok.com", "pinterest.com",
        "wikipedia.org", "yelp.com", "reddit.com",
    ]
    # Storefront hosts that mean "no real website known yet"
    DISCOVERY_STOREFRONT_MARKERS: List[str] = ["myshopify.com", "petstoredirect"]

    # Catalog matching
    MATCH_CONFIDENCE_THRESHOLD: float = 0.6
    MATCH_MAX_CATALOG_ITEMS: int = 50
    MATCH_MAX_STORE_PRODUCTS: int = 100
    MATCH_MAX_UNMATCHED_DOCUMENTS: int = 50

    # LLM (OpenAI-compatible endpoint)
    LLM_BASE_URL: str = "https://api.openai.com/v1"
    LLM_API_KEY: str = "changeme"
    LLM_MODEL_NAME: str = "gpt-4.1-mini"
    LLM_TEMPERATURE: float = 0.1
    LLM_TIMEOUT: float = 60.0
    LLM_MAX_TOKENS: int = 4000
    LLM_WEB_SEARCH: bool = True

    # Storage
    STORAGE_DIR: str = "./storage"
    DATABASE_PATH: str = "./storage/manufacturer_intel.db"

    # Celery
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/1"

    # How non-blocking scrape requests are dispatched: "background" or "celery"
    SCRAPE_DISPATCH: str = "background"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )


settings = Settings()
