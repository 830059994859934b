"""Provider configuration."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Provider settings loaded from environment variables."""

    # API settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    debug: bool = False

    # Browser settings
    browser_name: str = "chrome"
    temp_profile_prefix: str = "chrome-provider-"

    # DevTools settings
    default_cdp_host: str = "localhost"
    default_cdp_port: int = 9222
    cdp_command_timeout: float = 30.0

    # Process termination
    browser_closing_timeout: float = 5.0
    kill_attempts: int = 2

    # Configuration cache
    config_cache_ttl_seconds: float = 120.0

    # Logging
    log_level: str = "INFO"

    class Config:
        env_prefix = "CHROME_PROVIDER_"
        env_file = ".env"


settings = Settings()
