"""Application configuration management."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    app_name: str = Field(default="only-good-reads", alias="APP_NAME")
    app_env: str = Field(default="development", alias="APP_ENV")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")

    # Goodreads
    target_domain: str = Field(default="goodreads.com", alias="TARGET_DOMAIN")
    goodreads_origin: str = Field(default="https://www.goodreads.com", alias="GOODREADS_ORIGIN")
    graphql_endpoint: str = Field(
        default="https://kxbwmqov6jgg3daaamb744ycu4.appsync-api.us-east-1.amazonaws.com/graphql",
        alias="GRAPHQL_ENDPOINT"
    )
    # Used only when neither the book page nor the caller provides a key
    fallback_api_key: str = Field(default="da2-xpgsdydkbregjhpr6ejzqdhuwy", alias="FALLBACK_API_KEY")
    reviews_page_size: int = Field(default=30, alias="REVIEWS_PAGE_SIZE")

    # HTTP client
    http_timeout_seconds: float = Field(default=30.0, alias="HTTP_TIMEOUT_SECONDS")
    user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        ),
        alias="USER_AGENT"
    )
    accept_language: str = Field(default="en-US,en;q=0.5", alias="ACCEPT_LANGUAGE")

    # Monitoring
    metrics_enabled: bool = Field(default=True, alias="METRICS_ENABLED")

    def get_referer(self) -> str:
        """Get the Referer header value sent to the review service."""
        return self.goodreads_origin.rstrip("/") + "/"


# Global settings instance
settings = Settings()
