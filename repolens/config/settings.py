from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    debug: bool = False
    cors_origins: list[str] = ["http://localhost:3000"]

    # GitHub REST API
    github_api_url: str = "https://api.github.com"
    github_api_version: str = "2022-11-28"
    github_request_timeout: float = 30.0
    commit_detail_timeout: float = 5.0

    # Report cache (anonymous requests only)
    report_cache_ttl_seconds: float = 600.0  # 10 minutes
    report_cache_max_size: int = 100
    # Standalone code-frequency lookups keep their own, smaller cache
    stats_cache_max_size: int = 50

    # Commit sampling
    commit_list_limit: int = 50  # GitHub caps per_page at 100
    commit_sample_size: int = 50
    commit_detail_concurrency: int = 10

    # Asynchronous statistics polling
    # Code frequency: fixed delay between attempts
    code_frequency_max_attempts: int = 3
    code_frequency_retry_delay: float = 2.0
    # Contributor stats: linear backoff (attempt * step seconds)
    contributor_stats_max_attempts: int = 5
    contributor_stats_retry_step: float = 1.0
    fallback_contributor_limit: int = 100

    # Authenticated repo listing: 5 pages x 100 = 500 repos max
    user_repos_max_pages: int = 5

    # Deadline applied by the HTTP layer around a whole analysis (None disables)
    analysis_timeout_seconds: float | None = 60.0


settings = Settings()
