"""
Application configuration management.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # GitHub REST API
    github_api_url: str = "https://api.github.com"
    github_api_version: str = "2022-11-28"
    http_timeout_seconds: float = 30.0

    # Page sizes for list endpoints
    branches_per_page: int = 100
    pulls_per_page: int = 30
    comments_per_page: int = 50
    files_per_page: int = 100
    repositories_per_page: int = 100

    # Workspace behaviour
    comment_refresh_interval_seconds: float = 5.0
    review_min_loading_seconds: float = 3.0

    # Application
    log_level: str = "INFO"
    environment: str = "development"

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
