"""Application configuration using Pydantic settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # App Settings
    log_level: str = "INFO"
    logs_dir: str = "logs"  # Empty string disables JSON file logging

    # Catalog (empty = bundled helsinki_deals/data/stores.json)
    catalog_path: str = ""

    # ==========================================================================
    # Fetch Settings
    # ==========================================================================
    request_timeout: float = 10.0  # Hard timeout for a static GET
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    accept_language: str = "fi-FI,fi;q=0.9,en;q=0.8"
    browser_locale: str = "fi-FI"

    # ==========================================================================
    # Rendering Engine Settings
    # ==========================================================================
    rendering_enabled: bool = True
    # Sites known to expose their content only after client-side rendering
    rendered_domains: list[str] = [
        "zara.com",
        "hm.com",
        "nike.com",
        "cos.com",
        "stories.com",
        "weekday.com",
        "arket.com",
        "monki.com",
        "mango.com",
        "hugoboss.com",
        "filippa-k.com",
        "uniqlo.com",
    ]
    render_timeout_ms: int = 15000
    render_settle_seconds: float = 3.0  # Fixed quiescence delay after DOM load
    blocked_resource_types: list[str] = ["image", "font", "media"]

    # ==========================================================================
    # Crawl Pacing Settings
    # ==========================================================================
    batch_size_rendered: int = 3  # Rendering is far heavier than plain fetches
    batch_size_static: int = 5
    batch_pause_seconds: float = 1.0
    sale_page_pause_seconds: float = 0.5
    site_timeout_seconds: float = 90.0

    # ==========================================================================
    # Extraction Settings
    # ==========================================================================
    max_sale_links: int = 2
    max_deals_per_site: int = 8
    dedupe_prefix_length: int = 50
    scoring_policy: str = "v2"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
